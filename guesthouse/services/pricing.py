"""Nights, subtotal, GST and grand total for a set of room selections.

The same functions price the search page, the cart, checkout and the booking
row that is finally persisted, so the numbers a guest sees are the numbers the
guest is charged.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Iterable, Mapping

# Applied when the live room record (and so its exact GST rate) is not known.
DEFAULT_GST_PERCENTAGE = Decimal("12")

ONE_DAY = timedelta(days=1)
ZERO = Decimal("0")


@dataclass(frozen=True)
class PriceLine:
    room_id: str
    price: Decimal
    quantity: int
    gst_percentage: Decimal
    subtotal: Decimal
    tax: Decimal


@dataclass(frozen=True)
class PriceBreakdown:
    nights: int
    subtotal: Decimal
    tax: Decimal
    grand_total: Decimal
    lines: list[PriceLine] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "nights": self.nights,
            "subtotal": float(self.subtotal),
            "tax": float(self.tax),
            "grandTotal": float(self.grand_total),
        }


EMPTY_BREAKDOWN = PriceBreakdown(nights=0, subtotal=ZERO, tax=ZERO, grand_total=ZERO)


def to_decimal(value: Any) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def money(value: Decimal) -> Decimal:
    """Round to paise for persistence and display."""
    return to_decimal(value).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def as_utc(dt: datetime) -> datetime:
    # Naive timestamps (SQLite, legacy rows) are treated as UTC.
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def count_nights(check_in: datetime | None, check_out: datetime | None) -> int:
    """Number of started 24-hour slots between the two timestamps, never negative."""
    if check_in is None or check_out is None:
        return 0
    delta = as_utc(check_out) - as_utc(check_in)
    if delta <= timedelta(0):
        return 0
    days, rest = divmod(delta, ONE_DAY)
    return days + (1 if rest else 0)


def _entry_value(entry: Any, *names: str, default=None):
    for name in names:
        if isinstance(entry, Mapping):
            if name in entry:
                return entry[name]
        elif hasattr(entry, name):
            return getattr(entry, name)
    return default


def gst_for(room_id: str, room_details: Mapping[str, Any] | None) -> Decimal:
    """GST percentage of the live room record, or the default when it is not known."""
    if not room_details:
        return DEFAULT_GST_PERCENTAGE
    details = room_details.get(room_id)
    if details is None:
        return DEFAULT_GST_PERCENTAGE
    if isinstance(details, (int, float, Decimal, str)):
        return to_decimal(details)
    gst = _entry_value(details, "gst_percentage", "gstPercentage")
    if gst is None:
        return DEFAULT_GST_PERCENTAGE
    return to_decimal(gst)


def compute_totals(
    entries: Iterable[Any],
    check_in: datetime | None,
    check_out: datetime | None,
    room_details: Mapping[str, Any] | None = None,
) -> PriceBreakdown:
    """Price cart entries (anything with room_id/roomId, price and quantity).

    room_details maps room id to the live room (or its GST percentage).
    """
    nights = count_nights(check_in, check_out)
    if nights <= 0:
        return EMPTY_BREAKDOWN

    lines: list[PriceLine] = []
    for entry in entries:
        room_id = str(_entry_value(entry, "room_id", "roomId", default=""))
        price = to_decimal(_entry_value(entry, "price", default=0))
        quantity = int(_entry_value(entry, "quantity", default=0) or 0)
        if quantity <= 0:
            continue
        gst = gst_for(room_id, room_details)
        line_subtotal = price * quantity * nights
        line_tax = line_subtotal * gst / 100
        lines.append(PriceLine(room_id, price, quantity, gst, line_subtotal, line_tax))

    subtotal = sum((line.subtotal for line in lines), ZERO)
    tax = sum((line.tax for line in lines), ZERO)
    return PriceBreakdown(nights=nights, subtotal=subtotal, tax=tax, grand_total=subtotal + tax, lines=lines)


def compute_special_discount_totals(
    entries: Iterable[Any],
    check_in: datetime | None,
    check_out: datetime | None,
) -> PriceBreakdown:
    """Admin offline bookings only: every room is priced at zero, so GST is zero too."""
    zeroed = [
        {"room_id": _entry_value(e, "room_id", "roomId", default=""), "price": ZERO,
         "quantity": _entry_value(e, "quantity", default=0)}
        for e in entries
    ]
    return compute_totals(zeroed, check_in, check_out, room_details={z["room_id"]: ZERO for z in zeroed})
