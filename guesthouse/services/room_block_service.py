import uuid
from datetime import datetime
from sqlalchemy.orm import Session
from guesthouse.models.room import Room
from guesthouse.models.room_block import RoomBlock
from guesthouse.services.availability_service import intervals_overlap
from guesthouse.services.pricing import as_utc

BLOCK_REASONS = ("maintenance", "renovation", "owner_use", "other")


def list_blocks(db: Session, room_id: str | None = None, active_from: datetime | None = None) -> list[RoomBlock]:
    q = db.query(RoomBlock)
    if room_id:
        q = q.filter(RoomBlock.room_id == room_id)
    if active_from:
        q = q.filter(RoomBlock.end_date > as_utc(active_from))
    return q.order_by(RoomBlock.start_date.asc()).all()


def create_block(db: Session, *, room_id: str, start_date: datetime, end_date: datetime, reason: str,
                 notes: str = "", created_by: str | None = None) -> RoomBlock:
    if not db.get(Room, room_id):
        raise LookupError("room not found")
    start, end = as_utc(start_date), as_utc(end_date)
    if end <= start:
        raise ValueError("end_date must be after start_date")
    if reason not in BLOCK_REASONS:
        raise ValueError(f"reason must be one of {', '.join(BLOCK_REASONS)}")
    for other in list_blocks(db, room_id=room_id):
        if intervals_overlap(other.start_date, other.end_date, start, end):
            raise ValueError("Room is already blocked for part of this period")

    block = RoomBlock(
        id=str(uuid.uuid4()),
        room_id=room_id,
        start_date=start,
        end_date=end,
        reason=reason,
        notes=notes or "",
        created_by=created_by,
    )
    db.add(block)
    db.commit()
    db.refresh(block)
    return block


def delete_block(db: Session, block_id: str) -> None:
    block = db.get(RoomBlock, block_id)
    if not block:
        raise LookupError("block not found")
    db.delete(block)
    db.commit()


def block_out(b: RoomBlock) -> dict:
    return {
        "id": b.id,
        "roomId": b.room_id,
        "startDate": as_utc(b.start_date).isoformat(),
        "endDate": as_utc(b.end_date).isoformat(),
        "reason": b.reason,
        "notes": b.notes,
        "createdBy": b.created_by,
    }
