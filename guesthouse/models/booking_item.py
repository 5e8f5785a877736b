from decimal import Decimal
from sqlalchemy import String, DateTime, Numeric
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, timezone
from guesthouse.db.session import Base

class BookingItem(Base):
    """One reserved room unit inside a booking. Dates come from the parent booking."""
    __tablename__ = "booking_items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    booking_id: Mapped[str] = mapped_column(String(36), index=True)
    room_id: Mapped[str] = mapped_column(String(36), index=True)

    nightly_rate: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    gst_percentage: Mapped[Decimal] = mapped_column(Numeric(5, 2))
    line_subtotal: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    line_tax: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))

    status: Mapped[str] = mapped_column(String(20), default="reserved")  # reserved, checked-in, checked-out, cancelled

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
