import os
from datetime import datetime, timedelta, timezone
from decimal import Decimal

# Settings are read at import time, so the environment must be ready first.
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi.testclient import TestClient

from guesthouse.core.config import settings
from guesthouse.core.security import create_access_token, hash_password
from guesthouse.db.session import Base, SessionLocal, engine
from guesthouse.models.audit_log import AuditLog  # noqa: F401
from guesthouse.models.booking import Booking  # noqa: F401
from guesthouse.models.booking_guest import BookingGuest  # noqa: F401
from guesthouse.models.booking_item import BookingItem  # noqa: F401
from guesthouse.models.payment import Payment  # noqa: F401
from guesthouse.models.permission import Permission  # noqa: F401
from guesthouse.models.room import Room
from guesthouse.models.room_block import RoomBlock  # noqa: F401
from guesthouse.models.setting import Setting  # noqa: F401
from guesthouse.models.user import User
from guesthouse.services.cart import MemoryCartStorage


@pytest.fixture
def db():
    """Fresh schema per test on the shared in-memory engine."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def make_user(db, email: str, role: str = "customer", password: str = "secret123", name: str = "") -> User:
    user = User(
        id=f"user-{email.split('@')[0]}",
        email=email,
        full_name=name or email.split("@")[0].title(),
        phone="9876543210",
        role=role,
        password_hash=hash_password(password),
        is_active=True,
    )
    db.add(user)
    db.commit()
    return user


def make_room(db, number: str, room_type: str = "Deluxe", price: str = "2500", gst=Decimal("12"),
              max_guests: int = 2, **extra) -> Room:
    room = Room(
        id=f"room-{number}",
        room_number=number,
        room_type=room_type,
        floor=int(number[0]) if number[0].isdigit() else 0,
        max_guests=max_guests,
        base_price=Decimal(price),
        gst_percentage=gst,
        amenities=[],
        images=[],
        is_active=extra.pop("is_active", True),
        is_available=extra.pop("is_available", True),
        **extra,
    )
    db.add(room)
    db.commit()
    return room


def stay(days_ahead: int = 10, nights: int = 2) -> tuple[datetime, datetime]:
    check_in = datetime.now(timezone.utc).replace(hour=12, minute=0, second=0, microsecond=0) + timedelta(days=days_ahead)
    return check_in, check_in + timedelta(days=nights)


@pytest.fixture
def customer(db):
    return make_user(db, "guest@example.com")


@pytest.fixture
def owner(db):
    return make_user(db, "owner@example.com", role="owner")


@pytest.fixture
def staff(db):
    return make_user(db, "desk@example.com", role="staff")


@pytest.fixture
def rooms(db):
    """Two Standard units at 2000, three Deluxe at 2500 and one Suite at 4000."""
    return [
        make_room(db, "101", "Standard", "2000"),
        make_room(db, "102", "Standard", "2000"),
        make_room(db, "201", "Deluxe", "2500"),
        make_room(db, "202", "Deluxe", "2500"),
        make_room(db, "203", "Deluxe", "2500"),
        make_room(db, "301", "Family Suite", "4000", max_guests=4),
    ]


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture
def cart_storage():
    return MemoryCartStorage()


@pytest.fixture
def documents_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "DOCUMENT_LOCAL_DIR", str(tmp_path / "documents"))
    monkeypatch.setattr(settings, "API_PUBLIC_URL", "http://testserver")
    monkeypatch.setattr(settings, "GCS_BUCKET_NAME", "")
    return tmp_path / "documents"


@pytest.fixture
def client(db, cart_storage):
    from guesthouse.api.v1.routes.cart import get_cart_storage
    from guesthouse.main import app

    app.dependency_overrides[get_cart_storage] = lambda: cart_storage
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
