import random
import re
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from sqlalchemy.orm import Session
from sqlalchemy import select
from guesthouse.core.config import settings
from guesthouse.core.logging import get_logger
from guesthouse.models.user import User
from guesthouse.models.booking import Booking
from guesthouse.models.booking_item import BookingItem
from guesthouse.models.booking_guest import BookingGuest
from guesthouse.models.room import Room
from guesthouse.services.availability_service import RESERVING_STATUSES, occupied_room_ids
from guesthouse.services.pricing import (
    DEFAULT_GST_PERCENTAGE,
    PriceBreakdown,
    as_utc,
    compute_special_discount_totals,
    compute_totals,
    count_nights,
    money,
)

logger = get_logger(__name__)

AADHAAR_RE = re.compile(r"^\d{12}$")
BOOKING_STATUSES = ("pending", "confirmed", "checked-in", "checked-out", "cancelled")
PAYMENT_STATUSES = ("pending", "verification_pending", "paid", "failed")
ITEM_STATUSES = ("reserved", "checked-in", "checked-out", "cancelled")


class BookingValidationError(ValueError):
    pass


class RoomUnavailableError(ValueError):
    """The requested units were taken between search and submit."""


@dataclass
class BookingLine:
    room_id: str
    quantity: int = 1


@dataclass
class BookingRequest:
    check_in: datetime
    check_out: datetime
    lines: list[BookingLine]
    guest_name: str = ""
    guest_email: str = ""
    guest_phone: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    pincode: str = ""
    id_type: str = ""
    id_number: str = ""
    booking_for: str = "self"
    guest_relation: str | None = None
    guest_id_number: str | None = None
    bank_id_number: str | None = None
    govt_id_path: str | None = None
    bank_id_path: str | None = None
    guest_id_path: str | None = None
    guests: list[dict] = field(default_factory=list)  # [{"name":..., "age":...}]
    num_guests: int | None = None
    special_requests: str = ""


def make_booking_number() -> str:
    return f"BK{int(time.time() * 1000)}{random.randint(0, 999):03d}"


def _validate_request(req: BookingRequest) -> tuple[datetime, datetime]:
    if not req.lines:
        raise BookingValidationError("No rooms selected")
    if req.check_in is None or req.check_out is None:
        raise BookingValidationError("Check-in and check-out dates are required")
    check_in, check_out = as_utc(req.check_in), as_utc(req.check_out)
    if count_nights(check_in, check_out) <= 0:
        raise BookingValidationError("Invalid date range")
    for line in req.lines:
        if line.quantity < 1:
            raise BookingValidationError("quantity must be >= 1")
    if req.booking_for not in ("self", "relative"):
        raise BookingValidationError("booking_for must be self or relative")
    if req.id_type == "aadhaar" and req.id_number and not AADHAAR_RE.match(req.id_number):
        raise BookingValidationError("Aadhaar Number must be exactly 12 digits")
    for g in req.guests:
        if not str(g.get("name") or "").strip():
            raise BookingValidationError("Every guest needs a name")
    return check_in, check_out


def allocate_rooms(db: Session, line: BookingLine, check_in: datetime, check_out: datetime,
                   taken: set[str]) -> list[Room]:
    """Lock and pick ``quantity`` free units: the requested room first, then siblings of its type."""
    target = db.execute(select(Room).where(Room.id == line.room_id).with_for_update()).scalar_one_or_none()
    if not target or not target.is_active:
        raise BookingValidationError(f"Room {line.room_id} not found")

    siblings = db.execute(
        select(Room)
        .where(
            Room.room_type == target.room_type,
            Room.is_active == True,  # noqa: E712
            Room.is_available == True,  # noqa: E712
            Room.id != target.id,
        )
        .order_by(Room.room_number.asc())
        .with_for_update()
    ).scalars().all()

    held = occupied_room_ids(db, check_in, check_out, statuses=RESERVING_STATUSES) | taken
    candidates = ([target] if target.is_available else []) + list(siblings)
    chosen = [r for r in candidates if r.id not in held][: line.quantity]
    if len(chosen) < line.quantity:
        raise RoomUnavailableError(
            f'Not enough available rooms of type "{target.room_type}". '
            f"Requested: {line.quantity}, Available: {len(chosen)}. These rooms are no longer available."
        )
    return chosen


def _price(rooms: list[Room], check_in: datetime, check_out: datetime, special_discount: bool) -> PriceBreakdown:
    entries = [{"room_id": r.id, "price": r.base_price, "quantity": 1} for r in rooms]
    if special_discount:
        return compute_special_discount_totals(entries, check_in, check_out)
    details = {r.id: (r.gst_percentage if r.gst_percentage is not None else DEFAULT_GST_PERCENTAGE) for r in rooms}
    return compute_totals(entries, check_in, check_out, details)


def create_booking(db: Session, req: BookingRequest, booker: User, *, created_by_role: str = "customer",
                   special_discount: bool = False, status: str = "pending",
                   payment_status: str = "pending") -> Booking:
    """Reserve every requested room-night in one transaction, or none of them."""
    check_in, check_out = _validate_request(req)

    try:
        rooms: list[Room] = []
        taken: set[str] = set()
        for line in req.lines:
            chosen = allocate_rooms(db, line, check_in, check_out, taken)
            rooms.extend(chosen)
            taken.update(r.id for r in chosen)

        guests = [g for g in req.guests if str(g.get("name") or "").strip()]
        num_guests = req.num_guests or len(guests) or 1
        capacity = sum(r.max_guests or 0 for r in rooms)
        if max(num_guests, len(guests)) > capacity:
            raise BookingValidationError(
                f"Too many guests for the selected rooms. Maximum allowed: {capacity}"
            )

        totals = _price(rooms, check_in, check_out, special_discount)

        # booking_number must be unique
        for _ in range(10):
            number = make_booking_number()
            if not db.query(Booking).filter(Booking.booking_number == number).first():
                break
        else:
            raise ValueError("could not allocate booking number")

        room_charges = money(totals.subtotal)
        gst_amount = money(totals.tax)
        total_amount = room_charges + gst_amount

        booking = Booking(
            id=str(uuid.uuid4()),
            booking_number=number,
            user_id=booker.id,
            check_in=check_in,
            check_out=check_out,
            total_nights=totals.nights,
            status=status,
            payment_status=payment_status,
            created_by_role=created_by_role,
            is_offline=created_by_role != "customer",
            special_discount=special_discount,
            guest_name=req.guest_name or booker.full_name or "",
            guest_email=(req.guest_email or booker.email or "").lower(),
            guest_phone=req.guest_phone or booker.phone or "",
            address=req.address,
            city=req.city,
            state=req.state,
            pincode=req.pincode,
            id_type=req.id_type,
            id_number=req.id_number,
            booking_for=req.booking_for,
            guest_relation=req.guest_relation,
            guest_id_number=req.guest_id_number,
            bank_id_number=req.bank_id_number,
            govt_id_path=req.govt_id_path,
            bank_id_path=req.bank_id_path,
            guest_id_path=req.guest_id_path,
            num_guests=num_guests,
            special_requests=req.special_requests or "",
            room_charges=room_charges,
            gst_amount=gst_amount,
            total_amount=total_amount,
            # Advance is the full amount; nothing is collected at the desk.
            advance_paid=total_amount,
            balance_amount=Decimal("0"),
        )
        db.add(booking)

        for line, room in zip(totals.lines, rooms):
            db.add(BookingItem(
                id=str(uuid.uuid4()),
                booking_id=booking.id,
                room_id=room.id,
                nightly_rate=money(line.price),
                gst_percentage=line.gst_percentage,
                line_subtotal=money(line.subtotal),
                line_tax=money(line.tax),
                status="reserved",
            ))

        for g in guests:
            db.add(BookingGuest(
                id=str(uuid.uuid4()),
                booking_id=booking.id,
                name=str(g.get("name")).strip(),
                age=int(g.get("age") or 0),
            ))

        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(booking)
    logger.info(
        "booking_created",
        booking_number=booking.booking_number,
        rooms=[r.room_number for r in rooms],
        nights=booking.total_nights,
        total_amount=str(booking.total_amount),
        created_by_role=created_by_role,
    )
    return booking


def get_booking_items(db: Session, booking_id: str) -> list[BookingItem]:
    return db.query(BookingItem).filter(BookingItem.booking_id == booking_id).all()


def update_booking_status(db: Session, booking: Booking, status: str | None = None,
                          payment_status: str | None = None) -> Booking:
    if status is not None:
        if status not in BOOKING_STATUSES:
            raise BookingValidationError("invalid status")
        booking.status = status
        # Order-level transitions carry the items along; item-level check-in is separate.
        items = get_booking_items(db, booking.id)
        for item in items:
            if status == "cancelled":
                item.status = "cancelled"
            elif status == "checked-in" and item.status == "reserved":
                item.status = "checked-in"
            elif status == "checked-out" and item.status in ("reserved", "checked-in"):
                item.status = "checked-out"
    if payment_status is not None:
        if payment_status not in PAYMENT_STATUSES:
            raise BookingValidationError("invalid payment status")
        booking.payment_status = payment_status
    db.commit()
    db.refresh(booking)
    return booking


def update_item_status(db: Session, item: BookingItem, status: str) -> BookingItem:
    if status not in ITEM_STATUSES:
        raise BookingValidationError("invalid item status")
    item.status = status
    booking = db.get(Booking, item.booking_id)
    if booking and status == "checked-in" and booking.status in ("pending", "confirmed"):
        booking.status = "checked-in"
    db.commit()
    db.refresh(item)
    return item


def expire_pending_bookings(db: Session, now: datetime | None = None) -> int:
    """Cancel pending, unpaid bookings older than the hold window. Returns how many."""
    now = now or datetime.now(timezone.utc)
    threshold = now - timedelta(minutes=settings.PENDING_HOLD_MINUTES)
    expired = db.query(Booking).filter(
        Booking.status == "pending",
        Booking.payment_status == "pending",
        Booking.created_at < threshold,
    ).all()
    for b in expired:
        b.status = "cancelled"
        for item in get_booking_items(db, b.id):
            item.status = "cancelled"
    db.commit()
    if expired:
        logger.info("pending_bookings_expired", count=len(expired))
    return len(expired)


def booking_out(db: Session, b: Booking, include_items: bool = True) -> dict:
    out = {
        "id": b.id,
        "bookingNumber": b.booking_number,
        "userId": b.user_id,
        "checkIn": as_utc(b.check_in).isoformat(),
        "checkOut": as_utc(b.check_out).isoformat(),
        "totalNights": b.total_nights,
        "status": b.status,
        "paymentStatus": b.payment_status,
        "guestName": b.guest_name,
        "guestEmail": b.guest_email,
        "guestPhone": b.guest_phone,
        "bookingFor": b.booking_for,
        "numGuests": b.num_guests,
        "specialRequests": b.special_requests,
        "isOffline": b.is_offline,
        "specialDiscount": b.special_discount,
        "roomCharges": float(b.room_charges or 0),
        "gstAmount": float(b.gst_amount or 0),
        "totalAmount": float(b.total_amount or 0),
        "advancePaid": float(b.advance_paid or 0),
        "balanceAmount": float(b.balance_amount or 0),
        "createdAt": as_utc(b.created_at).isoformat() if b.created_at else None,
    }
    if include_items:
        items = get_booking_items(db, b.id)
        rooms = {r.id: r for r in db.query(Room).filter(Room.id.in_([i.room_id for i in items])).all()} if items else {}
        out["items"] = [
            {
                "id": i.id,
                "roomId": i.room_id,
                "roomNumber": rooms[i.room_id].room_number if i.room_id in rooms else None,
                "roomType": rooms[i.room_id].room_type if i.room_id in rooms else None,
                "nightlyRate": float(i.nightly_rate or 0),
                "gstPercentage": float(i.gst_percentage or 0),
                "lineSubtotal": float(i.line_subtotal or 0),
                "lineTax": float(i.line_tax or 0),
                "status": i.status,
            }
            for i in items
        ]
        out["guests"] = [
            {"name": g.name, "age": g.age}
            for g in db.query(BookingGuest).filter(BookingGuest.booking_id == b.id).all()
        ]
    return out
