import uuid
from decimal import Decimal
from sqlalchemy.orm import Session
from guesthouse.core.logging import get_logger
from guesthouse.models.booking import Booking
from guesthouse.models.payment import Payment
from guesthouse.models.user import User
from guesthouse.services.audit_service import log_audit
from guesthouse.services.booking_service import update_booking_status

logger = get_logger(__name__)

PAYMENT_METHODS = ("upi", "bank_transfer", "cash", "online")


class PaymentError(ValueError):
    pass


def submit_manual_payment(db: Session, booking: Booking, *, method: str, reference: str,
                          screenshot_path: str | None = None, amount: Decimal | None = None) -> Payment:
    """Guest reports a UPI / bank transfer; staff verify it against the statement later."""
    if booking.status == "cancelled":
        raise PaymentError("Booking is cancelled")
    if booking.payment_status == "paid":
        raise PaymentError("Booking is already paid")
    if method not in PAYMENT_METHODS:
        raise PaymentError("invalid payment method")
    if not (reference or "").strip() and not screenshot_path:
        raise PaymentError("Transaction reference or screenshot is required")

    p = Payment(
        id=str(uuid.uuid4()),
        booking_id=booking.id,
        method=method,
        amount=amount if amount is not None else (booking.total_amount or Decimal("0")),
        status="verification_pending",
        reference=(reference or "").strip(),
        screenshot_path=screenshot_path,
    )
    db.add(p)
    booking.payment_status = "verification_pending"
    db.commit()
    db.refresh(p)
    logger.info("payment_submitted", booking_number=booking.booking_number, method=method)
    return p


def latest_payment(db: Session, booking_id: str) -> Payment | None:
    return (
        db.query(Payment)
        .filter(Payment.booking_id == booking_id)
        .order_by(Payment.created_at.desc())
        .first()
    )


def verify_payment(db: Session, booking: Booking, actor: User, approve: bool, note: str = "") -> Booking:
    p = latest_payment(db, booking.id)
    if booking.payment_status == "paid" and approve:
        return booking  # idempotent
    if p:
        p.status = "paid" if approve else "failed"
        p.verified_by = actor.id
    if approve:
        # A paid booking holds its rooms for good, so it leaves the pending state too.
        status = "confirmed" if booking.status == "pending" else None
        update_booking_status(db, booking, status=status, payment_status="paid")
    else:
        update_booking_status(db, booking, payment_status="failed")
    log_audit(db, actor.id, "payment.verify" if approve else "payment.reject", "booking", booking.id,
              {"bookingNumber": booking.booking_number, "note": note})
    db.commit()
    logger.info("payment_verified", booking_number=booking.booking_number, approved=approve, actor=actor.email)
    return booking


def payment_out(p: Payment) -> dict:
    return {
        "id": p.id,
        "bookingId": p.booking_id,
        "method": p.method,
        "amount": float(p.amount or 0),
        "status": p.status,
        "reference": p.reference,
        "screenshotPath": p.screenshot_path,
        "verifiedBy": p.verified_by,
        "createdAt": p.created_at.isoformat() if p.created_at else None,
    }
