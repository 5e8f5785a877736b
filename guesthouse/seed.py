import os
import uuid
from decimal import Decimal

from sqlalchemy.orm import Session
from sqlalchemy import text
from sqlalchemy.exc import ProgrammingError

from guesthouse.db.session import SessionLocal
from guesthouse.core.logging import get_logger
from guesthouse.core.security import hash_password
from guesthouse.models.user import User
from guesthouse.models.room import Room
from guesthouse.services.permission_service import seed_defaults
from guesthouse.services.settings_service import PROPERTY_KEY, set_property_settings
from guesthouse.models.setting import Setting

logger = get_logger(__name__)

# room_type, price, max_guests, bed, view, numbers
ROOMS = [
    ("Standard Room", "2000", 2, "Double", "Garden", ["101", "102", "103"]),
    ("Deluxe Room", "2500", 3, "Queen", "Valley", ["201", "202", "203"]),
    ("Family Suite", "4000", 4, "King + Single", "Valley", ["301", "302"]),
]


def ensure_user(db: Session, email: str, password: str, role: str, name: str):
    u = db.query(User).filter(User.email == email).first()
    if u:
        return
    db.add(
        User(
            id=str(uuid.uuid4()),
            email=email,
            full_name=name,
            role=role,
            password_hash=hash_password(password),
            is_active=True,
        )
    )
    db.commit()


def ensure_rooms(db: Session) -> int:
    created = 0
    for room_type, price, guests, bed, view, numbers in ROOMS:
        for number in numbers:
            if db.query(Room).filter(Room.room_number == number).first():
                continue
            db.add(Room(
                id=str(uuid.uuid4()),
                room_number=number,
                room_type=room_type,
                floor=int(number[0]),
                max_guests=guests,
                base_price=Decimal(price),
                gst_percentage=Decimal("12"),
                amenities=["WiFi", "Hot Water", "TV"],
                images=[],
                bed_type=bed,
                view_type=view,
                is_available=True,
                is_active=True,
            ))
            created += 1
    db.commit()
    return created


def run(db=None):
    if db is None:
        db = SessionLocal()
    try:
        # If migrations haven't been applied yet, seeding must not crash the API.
        try:
            db.execute(text("SELECT 1 FROM users LIMIT 1"))
        except ProgrammingError:
            db.rollback()
            logger.warning("seed_skipped", reason="users table not found; run alembic upgrade head")
            return

        ensure_user(db, os.getenv("SEED_OWNER_EMAIL", "owner@guesthouse.local"),
                    os.getenv("SEED_OWNER_PASSWORD", "owner12345"), "owner", "Owner")
        ensure_user(db, "manager@guesthouse.local", "manager12345", "manager", "Manager")
        ensure_user(db, "desk@guesthouse.local", "desk12345", "staff", "Front Desk")
        ensure_user(db, "accounts@guesthouse.local", "accounts12345", "accountant", "Accountant")

        rooms = ensure_rooms(db)
        permissions = seed_defaults(db)
        if not db.get(Setting, PROPERTY_KEY):
            set_property_settings(db, {})
        logger.info("seed_completed", rooms_created=rooms, permissions_created=permissions)
    finally:
        db.close()


if __name__ == "__main__":
    run()
