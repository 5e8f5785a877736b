"""Desk bookings entered by staff for walk-in or phone guests.

These skip the online hold: the guest has paid at the desk, so the order is
written confirmed and paid in one go, with a matching cash payment row.
"""
import uuid
from decimal import Decimal
from sqlalchemy.orm import Session
from sqlalchemy import or_
from guesthouse.core.logging import get_logger
from guesthouse.core.security import hash_password
from guesthouse.models.booking import Booking
from guesthouse.models.payment import Payment
from guesthouse.models.user import User
from guesthouse.services.audit_service import log_audit
from guesthouse.services.booking_service import BookingRequest, create_booking

logger = get_logger(__name__)

OFFLINE_DEFAULT_REQUEST = "Admin Offline Booking"


def get_or_create_guest(db: Session, email: str, name: str, phone: str = "") -> User:
    email_l = (email or "").strip().lower()
    if not email_l:
        raise ValueError("guest email required")
    q = db.query(User).filter(User.email == email_l)
    if phone:
        q = db.query(User).filter(or_(User.email == email_l, User.phone == phone))
    u = q.first()
    if u:
        return u
    u = User(
        id=str(uuid.uuid4()),
        email=email_l,
        full_name=name or "",
        phone=phone or "",
        role="customer",
        password_hash=hash_password(str(uuid.uuid4())),  # random; guest can reset later
        is_active=True,
    )
    db.add(u)
    db.commit()
    return u


def create_offline_booking(db: Session, req: BookingRequest, actor: User, *, special_discount: bool = False,
                           payment_method: str = "cash") -> Booking:
    guest = get_or_create_guest(db, req.guest_email, req.guest_name, req.guest_phone)
    if not req.special_requests:
        req.special_requests = OFFLINE_DEFAULT_REQUEST

    booking = create_booking(
        db, req, guest,
        created_by_role=actor.role,
        special_discount=special_discount,
        status="confirmed",
        payment_status="paid",
    )

    db.add(Payment(
        id=str(uuid.uuid4()),
        booking_id=booking.id,
        method=payment_method,
        amount=booking.total_amount or Decimal("0"),
        status="paid",
        reference=f"OFFLINE_{booking.booking_number}",
        verified_by=actor.id,
    ))
    log_audit(db, actor.id, "booking.create_offline", "booking", booking.id, {
        "bookingNumber": booking.booking_number,
        "specialDiscount": special_discount,
        "totalAmount": str(booking.total_amount),
    })
    db.commit()
    logger.info("offline_booking_created", booking_number=booking.booking_number, actor=actor.email,
                special_discount=special_discount)
    return booking
