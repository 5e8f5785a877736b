from sqlalchemy.orm import Session
from sqlalchemy.exc import ProgrammingError
from guesthouse.db.session import SessionLocal
from guesthouse.services import booking_service

def expire_pending_bookings(db: Session | None = None) -> dict:
    """Cancel unpaid holds past PENDING_HOLD_MINUTES so their rooms return to sale."""
    own = db is None
    db = db or SessionLocal()
    try:
        try:
            expired = booking_service.expire_pending_bookings(db)
        except ProgrammingError:
            # DB not migrated yet; don't crash the worker.
            db.rollback()
            return {"skipped": True, "reason": "missing_tables"}
        return {"expired": expired}
    finally:
        if own:
            db.close()
