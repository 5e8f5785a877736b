from decimal import Decimal
from sqlalchemy import String, Integer, Boolean, DateTime, Numeric, JSON, Text
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, timezone
from guesthouse.db.session import Base

class Room(Base):
    __tablename__ = "rooms"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    room_number: Mapped[str] = mapped_column(String(20), unique=True, index=True)
    room_type: Mapped[str] = mapped_column(String(80), index=True)  # e.g. Deluxe Room
    floor: Mapped[int] = mapped_column(Integer, default=0)
    max_guests: Mapped[int] = mapped_column(Integer, default=2)

    base_price: Mapped[Decimal] = mapped_column(Numeric(10, 2))  # nightly, rupees
    gst_percentage: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=True, default=Decimal("12"))

    amenities: Mapped[list] = mapped_column(JSON, default=list)
    images: Mapped[list] = mapped_column(JSON, default=list)  # ordered URLs
    bed_type: Mapped[str] = mapped_column(String(40), default="")
    view_type: Mapped[str] = mapped_column(String(40), default="")
    size: Mapped[str] = mapped_column(String(40), default="")  # e.g. "320 sq ft"
    description: Mapped[str] = mapped_column(Text, default="")

    is_available: Mapped[bool] = mapped_column(Boolean, default=True)  # bookable
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)     # visible to customers

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
