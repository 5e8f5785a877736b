from decimal import Decimal
from sqlalchemy import String, Integer, Boolean, DateTime, Numeric, Text
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, timezone
from guesthouse.db.session import Base

class Booking(Base):
    """One order. Owns the status, payment status and the aggregate amounts."""
    __tablename__ = "bookings"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    booking_number: Mapped[str] = mapped_column(String(24), unique=True, index=True)
    user_id: Mapped[str] = mapped_column(String(36), index=True)  # booker

    check_in: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
    check_out: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
    total_nights: Mapped[int] = mapped_column(Integer, default=0)

    status: Mapped[str] = mapped_column(String(20), default="pending", index=True)          # pending, confirmed, checked-in, checked-out, cancelled
    payment_status: Mapped[str] = mapped_column(String(30), default="pending", index=True)  # pending, verification_pending, paid, failed
    created_by_role: Mapped[str] = mapped_column(String(12), default="customer")            # customer, or the staff role that entered it
    is_offline: Mapped[bool] = mapped_column(Boolean, default=False)
    special_discount: Mapped[bool] = mapped_column(Boolean, default=False)

    guest_name: Mapped[str] = mapped_column(String(200), default="")
    guest_email: Mapped[str] = mapped_column(String(320), default="")
    guest_phone: Mapped[str] = mapped_column(String(20), default="")
    address: Mapped[str] = mapped_column(String(300), default="")
    city: Mapped[str] = mapped_column(String(100), default="")
    state: Mapped[str] = mapped_column(String(100), default="")
    pincode: Mapped[str] = mapped_column(String(10), default="")
    id_type: Mapped[str] = mapped_column(String(30), default="")  # aadhaar, pan, passport, driving_license, voter_id
    id_number: Mapped[str] = mapped_column(String(40), default="")

    booking_for: Mapped[str] = mapped_column(String(10), default="self")  # self|relative
    guest_relation: Mapped[str] = mapped_column(String(60), nullable=True)
    guest_id_number: Mapped[str] = mapped_column(String(40), nullable=True)
    bank_id_number: Mapped[str] = mapped_column(String(40), nullable=True)

    # storage paths, never public URLs
    govt_id_path: Mapped[str] = mapped_column(String(512), nullable=True)
    bank_id_path: Mapped[str] = mapped_column(String(512), nullable=True)
    guest_id_path: Mapped[str] = mapped_column(String(512), nullable=True)

    num_guests: Mapped[int] = mapped_column(Integer, default=1)
    special_requests: Mapped[str] = mapped_column(Text, default="")

    room_charges: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    gst_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    advance_paid: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    balance_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
