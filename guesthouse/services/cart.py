"""Per-session room selections kept between search, room detail and checkout.

The store never reads ambient state: the storage backend and the identity are
passed in, so the same object works for the API (Redis, keyed by user) and for
tests (in memory).
"""
from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from decimal import Decimal
from typing import Mapping, Protocol

import structlog

# Shared with the checkout client, so no server settings are imported here.
logger = structlog.get_logger(__name__)


class CartError(ValueError):
    pass


class LoginRequiredError(CartError):
    """Raised when an anonymous caller tries to start a cart."""

    def __init__(self, message: str = "Please login to book a room"):
        super().__init__(message)


@dataclass(frozen=True)
class RoomSnapshot:
    room_type: str
    price: float
    max_guests: int
    max_available: int


@dataclass
class CartEntry:
    room_id: str
    quantity: int
    room_type: str
    price: float
    max_guests: int
    max_available: int

    def as_dict(self) -> dict:
        return {
            "roomId": self.room_id,
            "quantity": self.quantity,
            "roomType": self.room_type,
            "price": self.price,
            "maxGuests": self.max_guests,
            "maxAvailable": self.max_available,
        }


class CartStorage(Protocol):
    def load(self, key: str) -> dict | None: ...
    def save(self, key: str, data: dict) -> None: ...
    def delete(self, key: str) -> None: ...


class MemoryCartStorage:
    def __init__(self):
        self._data: dict[str, str] = {}

    def load(self, key: str) -> dict | None:
        raw = self._data.get(key)
        return json.loads(raw) if raw else None

    def save(self, key: str, data: dict) -> None:
        self._data[key] = json.dumps(data)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class RedisCartStorage:
    """Carts as JSON strings in Redis with a sliding TTL."""

    def __init__(self, client, ttl_seconds: int):
        self.client = client
        self.ttl_seconds = ttl_seconds

    def load(self, key: str) -> dict | None:
        raw = self.client.get(key)
        if not raw:
            return None
        try:
            return json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            logger.warning("cart_unreadable", key=key)
            return None

    def save(self, key: str, data: dict) -> None:
        self.client.set(key, json.dumps(data), ex=self.ttl_seconds)

    def delete(self, key: str) -> None:
        self.client.delete(key)


class CartStore:
    def __init__(self, storage: CartStorage, key: str, user_id: str | None = None):
        self.storage = storage
        self.key = key
        self.user_id = user_id
        self._entries: dict[str, CartEntry] = {}
        for room_id, raw in (storage.load(key) or {}).items():
            try:
                self._entries[room_id] = CartEntry(**raw)
            except TypeError:
                logger.warning("cart_entry_dropped", key=key, room_id=room_id)

    def entries(self) -> list[CartEntry]:
        return list(self._entries.values())

    def get(self, room_id: str) -> CartEntry | None:
        return self._entries.get(room_id)

    @property
    def total_items(self) -> int:
        return sum(e.quantity for e in self._entries.values())

    @property
    def subtotal(self) -> Decimal:
        """Nightly total before nights and GST are applied."""
        return sum((Decimal(str(e.price)) * e.quantity for e in self._entries.values()), Decimal("0"))

    @property
    def total_capacity(self) -> int:
        return sum(e.max_guests * e.quantity for e in self._entries.values())

    def update_cart(self, room_id: str, delta: int, snapshot: RoomSnapshot | None = None) -> CartEntry | None:
        """Adjust a room's quantity; returns the entry, or None once it is removed."""
        current = self._entries.get(room_id)
        if current is None:
            if delta <= 0:
                return None
            if not self.user_id:
                raise LoginRequiredError()
            if snapshot is None:
                raise CartError("room details are required when adding a room")
            current = CartEntry(
                room_id=room_id,
                quantity=0,
                room_type=snapshot.room_type,
                price=snapshot.price,
                max_guests=snapshot.max_guests,
                max_available=snapshot.max_available,
            )
        elif snapshot is not None:
            current = CartEntry(
                room_id=room_id,
                quantity=current.quantity,
                room_type=snapshot.room_type,
                price=snapshot.price,
                max_guests=snapshot.max_guests,
                max_available=snapshot.max_available,
            )

        quantity = max(0, min(current.quantity + delta, current.max_available))
        if quantity == 0:
            self._entries.pop(room_id, None)
            self._persist()
            return None

        current.quantity = quantity
        self._entries[room_id] = current
        self._persist()
        return current

    def reconcile(self, available_by_room: Mapping[str, int]) -> list[str]:
        """Clamp quantities to live availability; returns the room ids that changed."""
        changed = []
        for room_id, entry in list(self._entries.items()):
            live = int(available_by_room.get(room_id, 0))
            if live <= 0:
                del self._entries[room_id]
                changed.append(room_id)
                continue
            if entry.max_available != live or entry.quantity > live:
                entry.max_available = live
                if entry.quantity > live:
                    entry.quantity = live
                    changed.append(room_id)
        self._persist()
        if changed:
            logger.info("cart_reconciled", key=self.key, rooms=changed)
        return changed

    def clear_cart(self) -> None:
        self._entries = {}
        self.storage.delete(self.key)

    def as_dict(self) -> dict:
        return {room_id: e.as_dict() for room_id, e in self._entries.items()}

    def _persist(self) -> None:
        if not self._entries:
            self.storage.delete(self.key)
            return
        self.storage.save(self.key, {room_id: asdict(e) for room_id, e in self._entries.items()})
