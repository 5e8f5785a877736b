"""Which room units are free for a stay.

Every caller (search, room detail, pre-checkout re-check, admin view and the
booking-creation lock) goes through ``intervals_overlap`` so the overlap rule
is defined once. Results are advisory: nothing is held while a guest browses.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from guesthouse.core.config import settings
from guesthouse.core.logging import get_logger
from guesthouse.models.booking import Booking
from guesthouse.models.booking_item import BookingItem
from guesthouse.models.room import Room
from guesthouse.models.room_block import RoomBlock
from guesthouse.services.pricing import DEFAULT_GST_PERCENTAGE, as_utc, count_nights

logger = get_logger(__name__)

# Statuses whose reservations take a room out of the advisory search.
BLOCKING_STATUSES = ("confirmed", "checked-in")
# Statuses that hold a room when a new booking is written (pending holds expire).
RESERVING_STATUSES = ("pending", "confirmed", "checked-in")

MSG_SELECT_DATES = "Please select check-in and check-out dates"
MSG_BAD_RANGE = "Check-out must be after check-in"
MSG_NONE_AVAILABLE = "No rooms available for the selected dates"


def intervals_overlap(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Half-open [start, end) overlap test."""
    return as_utc(a_start) < as_utc(b_end) and as_utc(a_end) > as_utc(b_start)


@dataclass
class RoomTypeAvailability:
    room_type: str
    room_id: str  # representative unit used as the cart key
    price: Decimal
    gst_percentage: Decimal
    max_guests: int
    available: int

    def as_dict(self) -> dict:
        return {
            "roomType": self.room_type,
            "roomId": self.room_id,
            "price": float(self.price),
            "gstPercentage": float(self.gst_percentage),
            "maxGuests": self.max_guests,
            "available": self.available,
        }


@dataclass
class AvailabilityResult:
    check_in: datetime | None
    check_out: datetime | None
    nights: int = 0
    rooms: list = field(default_factory=list)
    counts_by_type: dict[str, int] = field(default_factory=dict)
    room_types: list[RoomTypeAvailability] = field(default_factory=list)
    booked_room_ids: list[str] = field(default_factory=list)
    message: str = ""

    @property
    def total_available(self) -> int:
        return len(self.rooms)

    def count_for_room(self, room_id: str) -> int:
        """Free units of the same type as ``room_id`` (0 if that type is gone)."""
        for rt in self.room_types:
            if rt.room_id == room_id:
                return rt.available
        for room in self.rooms:
            if room.id == room_id:
                return self.counts_by_type.get(room.room_type, 0)
        return 0


def _empty(check_in, check_out, message: str) -> AvailabilityResult:
    return AvailabilityResult(check_in=check_in, check_out=check_out, message=message)


def find_available_rooms(
    rooms: Iterable[Room],
    occupied_room_ids: Iterable[str],
    check_in: datetime | None,
    check_out: datetime | None,
) -> AvailabilityResult:
    """Pure part of the calculation: filter candidates and aggregate per room type."""
    if check_in is None or check_out is None:
        return _empty(check_in, check_out, MSG_SELECT_DATES)
    nights = count_nights(check_in, check_out)
    if nights <= 0:
        return _empty(check_in, check_out, MSG_BAD_RANGE)

    occupied = set(occupied_room_ids)
    free = [r for r in rooms if r.is_active and r.is_available and r.id not in occupied]
    free.sort(key=lambda r: (Decimal(r.base_price or 0), r.room_number))

    counts: dict[str, int] = {}
    by_type: dict[str, RoomTypeAvailability] = {}
    for room in free:
        counts[room.room_type] = counts.get(room.room_type, 0) + 1
        if room.room_type not in by_type:
            by_type[room.room_type] = RoomTypeAvailability(
                room_type=room.room_type,
                room_id=room.id,
                price=Decimal(room.base_price or 0),
                gst_percentage=Decimal(room.gst_percentage) if room.gst_percentage is not None else DEFAULT_GST_PERCENTAGE,
                max_guests=room.max_guests,
                available=0,
            )
    for rt in by_type.values():
        rt.available = counts[rt.room_type]

    if free:
        message = f"{len(free)} room{'' if len(free) == 1 else 's'} available for {nights} night{'' if nights == 1 else 's'}"
    else:
        message = MSG_NONE_AVAILABLE

    return AvailabilityResult(
        check_in=check_in,
        check_out=check_out,
        nights=nights,
        rooms=free,
        counts_by_type=counts,
        room_types=list(by_type.values()),
        booked_room_ids=sorted(occupied),
        message=message,
    )


def occupied_room_ids(
    db: Session,
    check_in: datetime,
    check_out: datetime,
    statuses: tuple[str, ...] = BLOCKING_STATUSES,
    exclude_booking_id: str | None = None,
) -> set[str]:
    """Rooms held by an overlapping booking in ``statuses`` or by an overlapping block."""
    q = (
        select(BookingItem.room_id, Booking.check_in, Booking.check_out)
        .join(Booking, Booking.id == BookingItem.booking_id)
        .where(
            Booking.status.in_(statuses),
            BookingItem.status != "cancelled",
            Booking.check_in < check_out,
            Booking.check_out > check_in,
        )
    )
    if exclude_booking_id:
        q = q.where(Booking.id != exclude_booking_id)

    occupied: set[str] = set()
    # The SQL filter narrows the scan; the shared rule decides.
    for room_id, b_in, b_out in db.execute(q).all():
        if intervals_overlap(b_in, b_out, check_in, check_out):
            occupied.add(room_id)

    blocks = db.execute(
        select(RoomBlock.room_id, RoomBlock.start_date, RoomBlock.end_date).where(
            RoomBlock.start_date < check_out,
            RoomBlock.end_date > check_in,
        )
    ).all()
    for room_id, start, end in blocks:
        if intervals_overlap(start, end, check_in, check_out):
            occupied.add(room_id)
    return occupied


def compute_availability(
    db: Session,
    check_in: datetime | None,
    check_out: datetime | None,
    room_type: str | None = None,
    statuses: tuple[str, ...] = BLOCKING_STATUSES,
) -> AvailabilityResult:
    """Free active+available rooms for the stay, cheapest first, with per-type counts.

    The desk view passes RESERVING_STATUSES so unpaid holds show as taken.
    """
    if check_in is None or check_out is None:
        return _empty(check_in, check_out, MSG_SELECT_DATES)
    if count_nights(check_in, check_out) <= 0:
        return _empty(check_in, check_out, MSG_BAD_RANGE)
    check_in, check_out = as_utc(check_in), as_utc(check_out)

    q = select(Room).where(Room.is_active == True, Room.is_available == True)  # noqa: E712
    if room_type:
        q = q.where(Room.room_type == room_type)
    rooms = db.execute(q).scalars().all()

    occupied = occupied_room_ids(db, check_in, check_out, statuses=statuses)
    result = find_available_rooms(rooms, occupied, check_in, check_out)
    logger.info(
        "availability_computed",
        check_in=check_in.isoformat(),
        check_out=check_out.isoformat(),
        candidates=len(rooms),
        occupied=len(occupied),
        available=result.total_available,
    )
    return result


def availability_payload(result: AvailabilityResult) -> dict:
    return {
        "success": result.total_available > 0,
        "checkIn": result.check_in.isoformat() if result.check_in else None,
        "checkOut": result.check_out.isoformat() if result.check_out else None,
        "nights": result.nights,
        "totalAvailable": result.total_available,
        "countsByType": result.counts_by_type,
        "roomTypes": [rt.as_dict() for rt in result.room_types],
        "availableRoomIds": [r.id for r in result.rooms],
        "bookedRoomIds": result.booked_room_ids,
        "message": result.message,
        "refreshIntervalSeconds": settings.AVAILABILITY_REFRESH_SECONDS,
    }
