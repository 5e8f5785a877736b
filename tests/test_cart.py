"""Tests for the cart store."""

import pytest

from guesthouse.services.cart import (
    CartError,
    CartStore,
    LoginRequiredError,
    MemoryCartStorage,
    RoomSnapshot,
)

DELUXE = RoomSnapshot(room_type="Deluxe", price=2500.0, max_guests=2, max_available=3)
SUITE = RoomSnapshot(room_type="Family Suite", price=4000.0, max_guests=4, max_available=1)


@pytest.fixture
def storage():
    return MemoryCartStorage()


@pytest.fixture
def cart(storage):
    return CartStore(storage, key="cart:user-1", user_id="user-1")


class TestUpdateCart:
    """Tests for CartStore.update_cart."""

    def test_add_room(self, cart):
        entry = cart.update_cart("room-201", 1, DELUXE)
        assert entry.quantity == 1
        assert entry.room_type == "Deluxe"
        assert cart.total_items == 1

    def test_quantity_is_capped_at_max_available(self, cart):
        cart.update_cart("room-201", 2, DELUXE)
        cart.update_cart("room-201", 5)
        assert cart.get("room-201").quantity == 3

    def test_increment_at_cap_is_a_no_op(self, cart, storage):
        cart.update_cart("room-301", 1, SUITE)
        before = storage.load("cart:user-1")
        cart.update_cart("room-301", 1)
        assert storage.load("cart:user-1") == before

    def test_decrement_to_zero_removes_entry(self, cart, storage):
        cart.update_cart("room-201", 1, DELUXE)
        assert cart.update_cart("room-201", -1) is None
        assert cart.get("room-201") is None
        assert storage.load("cart:user-1") is None

    def test_decrement_below_zero_clamps(self, cart):
        cart.update_cart("room-201", 2, DELUXE)
        assert cart.update_cart("room-201", -10) is None
        assert cart.entries() == []

    def test_removing_unknown_room_is_ignored(self, cart):
        assert cart.update_cart("room-999", -1) is None
        assert cart.entries() == []

    def test_plus_then_minus_restores_state(self, cart, storage):
        cart.update_cart("room-201", 1, DELUXE)
        cart.update_cart("room-301", 1, SUITE)
        before = storage.load("cart:user-1")

        cart.update_cart("room-201", 1)
        cart.update_cart("room-201", -1)
        assert storage.load("cart:user-1") == before

    def test_anonymous_caller_cannot_add(self, storage):
        anonymous = CartStore(storage, key="cart:anon")
        with pytest.raises(LoginRequiredError):
            anonymous.update_cart("room-201", 1, DELUXE)
        assert storage.load("cart:anon") is None

    def test_new_room_needs_snapshot(self, cart):
        with pytest.raises(CartError):
            cart.update_cart("room-201", 1)

    def test_fresh_snapshot_replaces_pricing(self, cart):
        cart.update_cart("room-201", 2, DELUXE)
        cheaper = RoomSnapshot(room_type="Deluxe", price=2200.0, max_guests=2, max_available=1)
        entry = cart.update_cart("room-201", 0, cheaper)
        assert entry.price == 2200.0
        assert entry.quantity == 1


class TestCartTotals:
    def test_subtotal_and_capacity(self, cart):
        cart.update_cart("room-201", 2, DELUXE)
        cart.update_cart("room-301", 1, SUITE)
        assert float(cart.subtotal) == 9000.0
        assert cart.total_capacity == 8
        assert cart.total_items == 3


class TestPersistence:
    def test_cart_survives_a_new_store(self, cart, storage):
        cart.update_cart("room-201", 2, DELUXE)
        again = CartStore(storage, key="cart:user-1", user_id="user-1")
        assert again.get("room-201").quantity == 2
        assert again.get("room-201").max_available == 3

    def test_malformed_entry_is_dropped(self, storage):
        storage.save("cart:user-1", {"room-201": {"quantity": 1}})
        assert CartStore(storage, key="cart:user-1", user_id="user-1").entries() == []

    def test_clear(self, cart, storage):
        cart.update_cart("room-201", 1, DELUXE)
        cart.clear_cart()
        assert cart.entries() == []
        assert storage.load("cart:user-1") is None


class TestReconcile:
    """Tests for clamping the cart to live availability."""

    def test_shrinks_and_removes(self, cart):
        cart.update_cart("room-201", 3, DELUXE)
        cart.update_cart("room-301", 1, SUITE)

        changed = cart.reconcile({"room-201": 1, "room-301": 0})
        assert sorted(changed) == ["room-201", "room-301"]
        assert cart.get("room-201").quantity == 1
        assert cart.get("room-201").max_available == 1
        assert cart.get("room-301") is None

    def test_nothing_changes_when_enough_is_free(self, cart):
        cart.update_cart("room-201", 2, DELUXE)
        assert cart.reconcile({"room-201": 3}) == []
        assert cart.get("room-201").quantity == 2
