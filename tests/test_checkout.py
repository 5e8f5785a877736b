"""Tests for the customer checkout orchestrator, using a recording fake API client."""

import pytest
import requests

from conftest import stay

from guesthouse.client.api_client import DocumentFile
from guesthouse.client.checkout import (
    CheckoutDocuments,
    CheckoutForm,
    CheckoutOrchestrator,
    GuestDetail,
    describe_missing,
    validate_form,
)
from guesthouse.client.errors import (
    ApiError,
    AuthorizationRequiredError,
    AvailabilityConflictError,
    BookingFailedError,
    CheckoutNetworkError,
    CheckoutValidationError,
    UploadFailedError,
)
from guesthouse.services.cart import CartStore, MemoryCartStorage, RoomSnapshot

ID_FILE = DocumentFile(filename="aadhaar.jpg", content_type="image/jpeg", data=b"\xff\xd8jpeg")


class FakeClient:
    """Records every call; answers from canned values."""

    def __init__(self, token="token", counts=None, upload_error=None, booking_error=None, booking_response=None):
        self.token = token
        self.calls = []
        self.counts = counts if counts is not None else {"Deluxe": 3, "Family Suite": 1}
        self.upload_error = upload_error
        self.booking_error = booking_error
        self.booking_response = booking_response or {"success": True, "booking_ids": ["b-1"]}

    def check_availability(self, check_in, check_out, room_type=None):
        self.calls.append(("check_availability", check_in, check_out))
        return {"success": True, "countsByType": self.counts}

    def upload_document(self, document, document_type):
        self.calls.append(("upload_document", document_type))
        if self.upload_error:
            raise self.upload_error
        return f"user-1/{document_type}_abc.jpg"

    def create_booking(self, payload):
        self.calls.append(("create_booking", payload))
        if self.booking_error:
            raise self.booking_error
        return self.booking_response


def valid_form(**changes) -> CheckoutForm:
    form = CheckoutForm(
        first_name="Asha",
        last_name="Rao",
        email="asha@example.com",
        phone="9876543210",
        address="12 Lake Road",
        city="Pune",
        state="Maharashtra",
        pincode="411001",
        id_type="aadhaar",
        id_number="123412341234",
        guests=[GuestDetail(name="Asha Rao", age="34")],
    )
    for key, value in changes.items():
        setattr(form, key, value)
    return form


@pytest.fixture
def cart():
    store = CartStore(MemoryCartStorage(), key="cart:user-1", user_id="user-1")
    store.update_cart("room-201", 2, RoomSnapshot("Deluxe", 2500.0, 2, 3))
    return store


def submit(client, cart, form=None, documents=None, phone_verified=True, dates=None):
    check_in, check_out = dates or stay()
    return CheckoutOrchestrator(client, cart).submit(
        check_in=check_in,
        check_out=check_out,
        form=form or valid_form(),
        documents=documents if documents is not None else CheckoutDocuments(govt_id=ID_FILE),
        phone_verified=phone_verified,
    )


class TestValidationBeforeNetwork:
    """Nothing is sent while the form is incomplete."""

    def test_missing_government_id_makes_no_calls(self, cart):
        client = FakeClient()
        with pytest.raises(CheckoutValidationError, match="Government ID"):
            submit(client, cart, documents=CheckoutDocuments())
        assert client.calls == []
        assert cart.total_items == 2

    def test_unverified_phone(self, cart):
        client = FakeClient()
        with pytest.raises(CheckoutValidationError, match="verify your phone"):
            submit(client, cart, phone_verified=False)
        assert client.calls == []

    def test_missing_login(self, cart):
        client = FakeClient(token=None)
        with pytest.raises(AuthorizationRequiredError) as exc:
            submit(client, cart)
        assert exc.value.redirect_to == "/login"
        assert client.calls == []

    def test_empty_cart(self):
        client = FakeClient()
        empty = CartStore(MemoryCartStorage(), key="cart:user-1", user_id="user-1")
        with pytest.raises(CheckoutValidationError, match="cart is empty"):
            submit(client, empty)
        assert client.calls == []

    def test_too_many_guests_for_the_cart(self, cart):
        client = FakeClient()
        guests = [GuestDetail(name=f"Guest {n}", age="30") for n in range(5)]
        with pytest.raises(CheckoutValidationError, match="at most 4 guests") as exc:
            submit(client, cart, form=valid_form(guests=guests))
        assert exc.value.fields == ["guests"]
        assert client.calls == []

    def test_guests_up_to_capacity_are_fine(self, cart):
        client = FakeClient()
        guests = [GuestDetail(name=f"Guest {n}", age="30") for n in range(4)]
        submit(client, cart, form=valid_form(guests=guests))
        assert client.calls[-1][0] == "create_booking"

    def test_reversed_dates(self, cart):
        client = FakeClient()
        check_in, check_out = stay()
        with pytest.raises(CheckoutValidationError, match="dates"):
            submit(client, cart, dates=(check_out, check_in))
        assert client.calls == []


class TestValidateForm:
    """Tests for validate_form messages."""

    def test_guest_fields_are_named(self):
        form = valid_form(guests=[GuestDetail(name="", age=""), GuestDetail(name="B", age="x")])
        with pytest.raises(CheckoutValidationError) as exc:
            validate_form(form, CheckoutDocuments(govt_id=ID_FILE), True)
        assert exc.value.fields == ["Guest 1 name", "Guest 1 age", "Guest 2 age"]
        assert exc.value.category == "validation"

    def test_address_fields(self):
        form = valid_form(address="", city=" ", state="", pincode="")
        with pytest.raises(CheckoutValidationError) as exc:
            validate_form(form, CheckoutDocuments(govt_id=ID_FILE), True)
        assert str(exc.value) == "Please fill your address: Address, City, State and 1 more"

    def test_aadhaar_must_have_twelve_digits(self):
        with pytest.raises(CheckoutValidationError, match="12 digits"):
            validate_form(valid_form(id_number="12345"), CheckoutDocuments(govt_id=ID_FILE), True)

    def test_other_id_types_are_free_form(self):
        validate_form(valid_form(id_type="passport", id_number="P1234567"), CheckoutDocuments(govt_id=ID_FILE), True)

    def test_relative_booking_needs_guest_proof(self):
        form = valid_form(booking_for="relative", relation="Mother", guest_id_number="999988887777")
        with pytest.raises(CheckoutValidationError, match="Guest Identity Proof"):
            validate_form(form, CheckoutDocuments(govt_id=ID_FILE), True)

    def test_relative_booking_needs_relation(self):
        form = valid_form(booking_for="relative", guest_id_number="999988887777")
        with pytest.raises(CheckoutValidationError, match="relation"):
            validate_form(form, CheckoutDocuments(govt_id=ID_FILE, guest_id=ID_FILE), True)

    def test_describe_missing(self):
        assert describe_missing("Missing", ["a"]) == "Missing: a"
        assert describe_missing("Missing", ["a", "b", "c", "d", "e"]) == "Missing: a, b, c and 2 more"


class TestSubmit:
    """Tests for the network half of checkout."""

    def test_success_clears_cart_and_redirects(self, cart):
        client = FakeClient()
        result = submit(client, cart)

        assert result.booking_ids == ["b-1"]
        assert result.redirect_url == "/booking/payment/b-1"
        assert cart.entries() == []
        assert [c[0] for c in client.calls] == ["check_availability", "upload_document", "create_booking"]

        payload = client.calls[-1][1]
        assert payload["bookings"] == [{"room_id": "room-201", "quantity": 2}]
        assert payload["govt_id_path"] == "user-1/govt_id_abc.jpg"
        assert payload["guest_details"] == [{"name": "Asha Rao", "age": 34}]
        assert payload["guest_name"] == "Asha Rao"

    def test_optional_documents_are_uploaded(self, cart):
        client = FakeClient()
        form = valid_form(booking_for="relative", relation="Father", guest_id_number="999988887777")
        submit(client, cart, form=form,
               documents=CheckoutDocuments(govt_id=ID_FILE, bank_id=ID_FILE, guest_id=ID_FILE))
        uploads = [c[1] for c in client.calls if c[0] == "upload_document"]
        assert uploads == ["govt_id", "bank_id", "guest_id"]

    def test_availability_conflict_updates_cart(self, cart):
        client = FakeClient(counts={"Deluxe": 1})
        with pytest.raises(AvailabilityConflictError) as exc:
            submit(client, cart)

        assert exc.value.changed_rooms == ["room-201"]
        assert "no longer available" in str(exc.value)
        assert cart.get("room-201").quantity == 1
        assert [c[0] for c in client.calls] == ["check_availability"]

    def test_entries_of_one_type_share_the_free_units(self):
        client = FakeClient(counts={"Family Suite": 1})
        shared = CartStore(MemoryCartStorage(), key="cart:user-1", user_id="user-1")
        shared.update_cart("room-301", 1, RoomSnapshot("Family Suite", 4000.0, 4, 1))
        shared.update_cart("room-302", 1, RoomSnapshot("Family Suite", 4000.0, 4, 1))

        with pytest.raises(AvailabilityConflictError) as exc:
            submit(client, shared)

        assert exc.value.changed_rooms == ["room-302"]
        assert [(e.room_id, e.quantity) for e in shared.entries()] == [("room-301", 1)]
        assert [c[0] for c in client.calls] == ["check_availability"]

    def test_upload_failure_keeps_cart(self, cart):
        client = FakeClient(upload_error=ApiError(400, "File too large"))
        with pytest.raises(UploadFailedError) as exc:
            submit(client, cart)

        assert exc.value.document_type == "govt_id"
        assert "File too large" in str(exc.value)
        assert cart.total_items == 2
        assert "create_booking" not in [c[0] for c in client.calls]

    def test_server_conflict_is_a_booking_failure(self, cart):
        client = FakeClient(booking_error=ApiError(409, "These rooms are no longer available."))
        with pytest.raises(BookingFailedError, match="Booking failed"):
            submit(client, cart)
        assert cart.total_items == 2

    def test_expired_session(self, cart):
        client = FakeClient(booking_error=ApiError(401, "Invalid token"))
        with pytest.raises(AuthorizationRequiredError):
            submit(client, cart)
        assert cart.total_items == 2

    def test_upload_unauthorised_is_an_authorisation_error(self, cart):
        client = FakeClient(upload_error=ApiError(401, "Not authenticated"))
        with pytest.raises(AuthorizationRequiredError):
            submit(client, cart)

    def test_network_error(self, cart):
        client = FakeClient(booking_error=requests.ConnectionError("down"))
        with pytest.raises(CheckoutNetworkError) as exc:
            submit(client, cart)
        assert exc.value.category == "network"
        assert cart.total_items == 2

    def test_response_without_ids(self, cart):
        client = FakeClient(booking_response={"success": False, "error": "Something odd"})
        with pytest.raises(BookingFailedError, match="Something odd"):
            submit(client, cart)
        assert cart.total_items == 2
