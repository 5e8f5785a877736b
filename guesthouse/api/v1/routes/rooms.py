from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from guesthouse.db.session import get_db
from guesthouse.schemas.room import AvailabilityQuery
from guesthouse.services.availability_service import availability_payload, compute_availability
from guesthouse.services.catalog_service import get_room, list_rooms, room_out

router = APIRouter(tags=["rooms"])


@router.get("/rooms")
def list_public_rooms(check_in: Optional[datetime] = None, check_out: Optional[datetime] = None,
                      room_type: Optional[str] = None, db: Session = Depends(get_db)):
    """Catalog, narrowed to the free units when both dates are given."""
    if check_in and check_out:
        result = compute_availability(db, check_in, check_out, room_type=room_type)
        return {
            "success": True,
            "rooms": [room_out(r) for r in result.rooms],
            "availability": availability_payload(result),
        }
    return {"success": True, "rooms": [room_out(r) for r in list_rooms(db, room_type=room_type)], "availability": None}


@router.post("/rooms/check-availability")
def check_availability(body: AvailabilityQuery, db: Session = Depends(get_db)):
    # Missing or reversed dates are an empty answer with a message, not an error.
    result = compute_availability(db, body.check_in, body.check_out, room_type=body.room_type)
    return availability_payload(result)


@router.get("/rooms/{room_id}")
def room_detail(room_id: str, check_in: Optional[datetime] = None, check_out: Optional[datetime] = None,
                db: Session = Depends(get_db)):
    room = get_room(db, room_id)
    if not room or not room.is_active:
        raise HTTPException(status_code=404, detail="Room not found")
    out = room_out(room)
    if check_in and check_out:
        result = compute_availability(db, check_in, check_out, room_type=room.room_type)
        out["availableUnits"] = result.counts_by_type.get(room.room_type, 0)
        out["nights"] = result.nights
    return out
