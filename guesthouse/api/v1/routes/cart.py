import redis
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from guesthouse.api.deps import get_optional_user
from guesthouse.core.config import settings
from guesthouse.db.session import get_db
from guesthouse.models.room import Room
from guesthouse.models.user import User
from guesthouse.schemas.cart import CartUpdate
from guesthouse.services.availability_service import compute_availability
from guesthouse.services.cart import CartError, CartStore, LoginRequiredError, RedisCartStorage, RoomSnapshot
from guesthouse.services.pricing import DEFAULT_GST_PERCENTAGE, compute_totals

router = APIRouter(tags=["cart"])

_storage = None


def get_cart_storage():
    global _storage
    if _storage is None:
        _storage = RedisCartStorage(redis.Redis.from_url(settings.REDIS_URL), settings.CART_TTL_SECONDS)
    return _storage


def _cart_for(user: User | None, storage) -> CartStore:
    if not user:
        raise HTTPException(status_code=401, detail="Please login to book a room")
    return CartStore(storage, key=f"cart:{user.id}", user_id=user.id)


def _snapshot(db: Session, body: CartUpdate) -> RoomSnapshot | None:
    room = db.get(Room, body.roomId)
    if not room or not room.is_active:
        return None
    if body.checkIn and body.checkOut:
        units = compute_availability(db, body.checkIn, body.checkOut).counts_by_type.get(room.room_type, 0)
    else:
        units = db.query(Room).filter(
            Room.room_type == room.room_type, Room.is_active == True, Room.is_available == True  # noqa: E712
        ).count()
    return RoomSnapshot(room_type=room.room_type, price=float(room.base_price or 0),
                        max_guests=room.max_guests, max_available=units)


def _cart_out(db: Session, cart: CartStore, body: CartUpdate | None = None) -> dict:
    out = {
        "items": [e.as_dict() for e in cart.entries()],
        "totalItems": cart.total_items,
        "nightlySubtotal": float(cart.subtotal),
        "totalCapacity": cart.total_capacity,
    }
    if body and body.checkIn and body.checkOut:
        rooms = {r.id: r for r in db.query(Room).filter(Room.id.in_([e.room_id for e in cart.entries()])).all()}
        details = {rid: (r.gst_percentage if r.gst_percentage is not None else DEFAULT_GST_PERCENTAGE) for rid, r in rooms.items()}
        out["totals"] = compute_totals(cart.entries(), body.checkIn, body.checkOut, details).as_dict()
    return out


@router.get("/cart")
def get_cart(db: Session = Depends(get_db), user: User | None = Depends(get_optional_user),
             storage=Depends(get_cart_storage)):
    return _cart_out(db, _cart_for(user, storage))


@router.post("/cart/items")
def update_cart_item(body: CartUpdate, db: Session = Depends(get_db),
                     user: User | None = Depends(get_optional_user), storage=Depends(get_cart_storage)):
    if not user:
        raise HTTPException(status_code=401, detail=str(LoginRequiredError()))
    cart = _cart_for(user, storage)
    snapshot = _snapshot(db, body) if body.delta > 0 else None
    if body.delta > 0 and snapshot is None and cart.get(body.roomId) is None:
        raise HTTPException(status_code=404, detail="Room not found")
    try:
        cart.update_cart(body.roomId, body.delta, snapshot)
    except LoginRequiredError as e:
        raise HTTPException(status_code=401, detail=str(e))
    except CartError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _cart_out(db, cart, body)


@router.delete("/cart")
def clear_cart(user: User | None = Depends(get_optional_user), storage=Depends(get_cart_storage)):
    _cart_for(user, storage).clear_cart()
    return {"ok": True}
