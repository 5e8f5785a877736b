"""Dashboard and report figures for the admin console.

Everything is derived from the bookings, booking items and rooms tables on
every request; nothing here is stored. Records that are incomplete (no dates,
unknown room, unparsable amounts) contribute zero instead of failing the view.
"""
from __future__ import annotations

from collections import Counter, defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Iterable

from sqlalchemy.orm import Session

from guesthouse.core.logging import get_logger
from guesthouse.models.booking import Booking
from guesthouse.models.booking_item import BookingItem
from guesthouse.models.room import Room
from guesthouse.services.booking_service import BOOKING_STATUSES
from guesthouse.services.pricing import as_utc

logger = get_logger(__name__)

PERIODS = {"weekly": 8, "monthly": 12, "yearly": 5}
ZERO = Decimal("0")


@dataclass
class ReportData:
    bookings: list
    items: list
    rooms: list


def load_report_data(db: Session) -> ReportData:
    return ReportData(
        bookings=db.query(Booking).all(),
        items=db.query(BookingItem).all(),
        rooms=db.query(Room).all(),
    )


def _amount(value) -> Decimal:
    if value is None:
        return ZERO
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return ZERO


def _as_datetime(value) -> datetime | None:
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, str) and value:
        try:
            return as_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
        except ValueError:
            return None
    return None


def _stay(b) -> tuple[datetime, datetime] | None:
    ci = _as_datetime(getattr(b, "check_in", None))
    co = _as_datetime(getattr(b, "check_out", None))
    if ci is None or co is None or co <= ci:
        return None
    return ci, co


def _night_dates(b) -> list[date]:
    """Calendar dates of each night of the stay (the night starting on that date)."""
    stay = _stay(b)
    if not stay:
        return []
    ci, co = stay
    nights = getattr(b, "total_nights", None)
    if not isinstance(nights, int) or nights <= 0:
        nights = max(1, (co.date() - ci.date()).days)
    start = ci.date()
    return [start + timedelta(days=k) for k in range(nights)]


def _is_live(b) -> bool:
    return getattr(b, "status", None) in BOOKING_STATUSES and b.status != "cancelled"


def _items_by_booking(items: Iterable) -> dict[str, list]:
    out: dict[str, list] = defaultdict(list)
    for i in items:
        if getattr(i, "booking_id", None) and getattr(i, "status", None) != "cancelled":
            out[i.booking_id].append(i)
    return out


def _active_room_count(rooms: Iterable) -> int:
    return sum(1 for r in rooms if getattr(r, "is_active", False))


def dashboard_stats(data: ReportData, today: date | None = None) -> dict:
    today = today or datetime.now(timezone.utc).date()
    statuses = Counter(getattr(b, "status", None) for b in data.bookings)
    check_ins = check_outs = 0
    month_revenue = ZERO
    for b in data.bookings:
        stay = _stay(b)
        if not stay or not _is_live(b):
            continue
        ci, co = stay
        if ci.date() == today:
            check_ins += 1
        if co.date() == today:
            check_outs += 1
        if b.payment_status == "paid" and (ci.year, ci.month) == (today.year, today.month):
            month_revenue += _amount(b.total_amount)

    rooms = list(data.rooms)
    active_rooms = _active_room_count(rooms)
    occupied_tonight = set()
    items = _items_by_booking(data.items)
    for b in data.bookings:
        if _is_live(b) and today in _night_dates(b):
            occupied_tonight.update(i.room_id for i in items.get(b.id, []))

    return {
        "totalBookings": len(data.bookings),
        "activeBookings": statuses.get("confirmed", 0) + statuses.get("checked-in", 0),
        "pendingBookings": statuses.get("pending", 0),
        "checkedIn": statuses.get("checked-in", 0),
        "totalRooms": len(rooms),
        "activeRooms": active_rooms,
        "todayCheckIns": check_ins,
        "todayCheckOuts": check_outs,
        "occupiedTonight": len(occupied_tonight),
        "occupancyToday": round(len(occupied_tonight) / active_rooms, 4) if active_rooms else 0,
        "occupancyTodayPercent": round(100 * len(occupied_tonight) / active_rooms, 1) if active_rooms else 0,
        "monthlyRevenue": float(month_revenue),
    }


def _buckets(period: str, today: date) -> list[tuple[str, date, date]]:
    """(label, first_day, day_after_last) for the trailing windows of ``period``."""
    count = PERIODS[period]
    out = []
    if period == "weekly":
        monday = today - timedelta(days=today.weekday())
        for k in range(count - 1, -1, -1):
            start = monday - timedelta(weeks=k)
            out.append((start.isoformat(), start, start + timedelta(days=7)))
    elif period == "monthly":
        y, m = today.year, today.month
        months = []
        for _ in range(count):
            months.append((y, m))
            y, m = (y, m - 1) if m > 1 else (y - 1, 12)
        for y, m in reversed(months):
            start = date(y, m, 1)
            end = date(y + 1, 1, 1) if m == 12 else date(y, m + 1, 1)
            out.append((start.strftime("%Y-%m"), start, end))
    else:
        for y in range(today.year - count + 1, today.year + 1):
            out.append((str(y), date(y, 1, 1), date(y + 1, 1, 1)))
    return out


def revenue_series(data: ReportData, period: str = "monthly", today: date | None = None) -> list[dict]:
    """Revenue, bookings and occupancy per week / month / year.

    Revenue is attributed to the bucket holding the check-in date of paid bookings.
    Occupancy is booked room-nights over active rooms times days in the bucket.
    """
    if period not in PERIODS:
        raise ValueError(f"period must be one of {', '.join(PERIODS)}")
    today = today or datetime.now(timezone.utc).date()
    buckets = _buckets(period, today)
    active_rooms = _active_room_count(data.rooms)
    items = _items_by_booking(data.items)

    revenue = [ZERO] * len(buckets)
    bookings = [0] * len(buckets)
    room_nights = [0] * len(buckets)

    def _index(d: date) -> int | None:
        for n, (_, start, end) in enumerate(buckets):
            if start <= d < end:
                return n
        return None

    for b in data.bookings:
        if not _is_live(b):
            continue
        nights = _night_dates(b)
        if not nights:
            continue
        n = _index(nights[0])
        if n is not None:
            bookings[n] += 1
            if b.payment_status == "paid":
                revenue[n] += _amount(b.total_amount)
        units = len(items.get(b.id, []))
        for night in nights:
            k = _index(night)
            if k is not None:
                room_nights[k] += units

    out = []
    for n, (label, start, end) in enumerate(buckets):
        days = (end - start).days
        capacity = active_rooms * days
        out.append({
            "period": label,
            "start": start.isoformat(),
            "end": end.isoformat(),
            "revenue": float(revenue[n]),
            "bookings": bookings[n],
            "bookedRoomNights": room_nights[n],
            # booked room-nights over available room-nights
            "occupancy": round(room_nights[n] / capacity, 4) if capacity else 0,
            "occupancyPercent": round(100 * room_nights[n] / capacity, 1) if capacity else 0,
        })
    return out


def room_type_ranking(data: ReportData) -> list[dict]:
    """Per room type: bookings, paid revenue and room-nights, highest revenue first."""
    rooms = {r.id: r for r in data.rooms if getattr(r, "id", None)}
    bookings = {b.id: b for b in data.bookings if _is_live(b)}
    stats: dict[str, dict] = {}
    for item in data.items:
        if getattr(item, "status", None) == "cancelled":
            continue
        room = rooms.get(getattr(item, "room_id", None))
        b = bookings.get(getattr(item, "booking_id", None))
        if room is None or b is None:
            continue
        s = stats.setdefault(room.room_type, {"bookings": set(), "revenue": ZERO, "roomNights": 0})
        s["bookings"].add(b.id)
        s["roomNights"] += len(_night_dates(b))
        if b.payment_status == "paid":
            s["revenue"] += _amount(item.line_subtotal) + _amount(item.line_tax)

    ranking = [
        {
            "roomType": room_type,
            "bookings": len(s["bookings"]),
            "revenue": float(s["revenue"]),
            "roomNights": s["roomNights"],
        }
        for room_type, s in stats.items()
    ]
    ranking.sort(key=lambda r: (-r["revenue"], -r["bookings"], r["roomType"]))
    return ranking


def status_distribution(data: ReportData) -> list[dict]:
    counts = Counter(getattr(b, "status", None) or "unknown" for b in data.bookings)
    total = sum(counts.values())
    keys = list(BOOKING_STATUSES) + sorted(k for k in counts if k not in BOOKING_STATUSES)
    return [
        {
            "status": k,
            "count": counts.get(k, 0),
            "percentage": round(100 * counts.get(k, 0) / total, 1) if total else 0,
        }
        for k in keys
    ]
