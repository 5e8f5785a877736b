import uuid
from decimal import Decimal
from sqlalchemy.orm import Session
from guesthouse.models.room import Room
from guesthouse.services.pricing import DEFAULT_GST_PERCENTAGE

ROOM_FIELDS = (
    "room_number", "room_type", "floor", "max_guests", "base_price", "gst_percentage",
    "amenities", "images", "bed_type", "view_type", "size", "description",
    "is_available", "is_active",
)


def list_rooms(db: Session, room_type: str | None = None, include_hidden: bool = False) -> list[Room]:
    """Customer catalog (active + available) by default; admins see every room."""
    q = db.query(Room)
    if not include_hidden:
        q = q.filter(Room.is_active == True, Room.is_available == True)  # noqa: E712
    if room_type:
        q = q.filter(Room.room_type == room_type)
    return q.order_by(Room.base_price.asc(), Room.room_number.asc()).all()


def get_room(db: Session, room_id: str) -> Room | None:
    return db.get(Room, room_id)


def rooms_by_id(db: Session, room_ids) -> dict[str, Room]:
    ids = list({str(r) for r in room_ids})
    if not ids:
        return {}
    return {r.id: r for r in db.query(Room).filter(Room.id.in_(ids)).all()}


def _validate(data: dict) -> None:
    if "base_price" in data and data["base_price"] is not None and Decimal(str(data["base_price"])) < 0:
        raise ValueError("base_price must be >= 0")
    if "max_guests" in data and data["max_guests"] is not None and int(data["max_guests"]) < 1:
        raise ValueError("max_guests must be >= 1")
    gst = data.get("gst_percentage")
    if gst is not None and not (0 <= Decimal(str(gst)) <= 100):
        raise ValueError("gst_percentage must be between 0 and 100")


def _coerce(key: str, value):
    if key in ("base_price", "gst_percentage"):
        return Decimal(str(value))
    return value


def create_room(db: Session, data: dict) -> Room:
    _validate(data)
    if not (data.get("room_number") or "").strip():
        raise ValueError("room_number required")
    if not (data.get("room_type") or "").strip():
        raise ValueError("room_type required")
    if db.query(Room).filter(Room.room_number == data["room_number"].strip()).first():
        raise ValueError("room_number already exists")

    room = Room(id=str(uuid.uuid4()))
    for key in ROOM_FIELDS:
        if key in data and data[key] is not None:
            setattr(room, key, _coerce(key, data[key]))
    room.room_number = room.room_number.strip()
    if room.gst_percentage is None:
        room.gst_percentage = DEFAULT_GST_PERCENTAGE
    db.add(room)
    db.commit()
    db.refresh(room)
    return room


def update_room(db: Session, room_id: str, data: dict) -> Room:
    room = db.get(Room, room_id)
    if not room:
        raise LookupError("room not found")
    _validate(data)
    number = data.get("room_number")
    if number and number.strip() != room.room_number:
        if db.query(Room).filter(Room.room_number == number.strip()).first():
            raise ValueError("room_number already exists")
    for key in ROOM_FIELDS:
        if key in data and data[key] is not None:
            setattr(room, key, _coerce(key, data[key]))
    db.commit()
    db.refresh(room)
    return room


def delete_room(db: Session, room_id: str) -> None:
    room = db.get(Room, room_id)
    if not room:
        raise LookupError("room not found")
    db.delete(room)
    db.commit()


def room_out(room: Room) -> dict:
    return {
        "id": room.id,
        "roomNumber": room.room_number,
        "roomType": room.room_type,
        "floor": room.floor,
        "maxGuests": room.max_guests,
        "basePrice": float(room.base_price or 0),
        "gstPercentage": float(room.gst_percentage if room.gst_percentage is not None else DEFAULT_GST_PERCENTAGE),
        "amenities": list(room.amenities or []),
        "images": list(room.images or []),
        "bedType": room.bed_type,
        "viewType": room.view_type,
        "size": room.size,
        "description": room.description,
        "isAvailable": room.is_available,
        "isActive": room.is_active,
    }
