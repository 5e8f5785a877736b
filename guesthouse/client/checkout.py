"""Customer checkout: validate the form, re-check rooms, upload IDs, book.

Nothing touches the network until every form check has passed, and the cart is
only cleared once the booking API has answered with booking ids.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime

import requests
import structlog

from guesthouse.client.api_client import DocumentFile, GuestHouseClient
from guesthouse.client.errors import (
    ApiError,
    AuthorizationRequiredError,
    AvailabilityConflictError,
    BookingFailedError,
    CheckoutNetworkError,
    CheckoutValidationError,
    UploadFailedError,
)
from guesthouse.services.cart import CartStore

logger = structlog.get_logger(__name__)

AADHAAR_RE = re.compile(r"^\d{12}$")
MAX_NAMED_FIELDS = 3


@dataclass
class GuestDetail:
    name: str
    age: str | int


@dataclass
class CheckoutForm:
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    pincode: str = ""
    id_type: str = ""
    id_number: str = ""
    booking_for: str = "self"  # self | relative
    relation: str = ""
    guest_id_number: str = ""
    bank_id_number: str = ""
    special_requests: str = ""
    guests: list[GuestDetail] = field(default_factory=list)


@dataclass
class CheckoutDocuments:
    govt_id: DocumentFile | None = None
    bank_id: DocumentFile | None = None
    guest_id: DocumentFile | None = None


@dataclass
class CheckoutResult:
    booking_ids: list[str]
    redirect_url: str


def describe_missing(prefix: str, items: list[str]) -> str:
    """'<prefix>: a, b, c and 2 more'."""
    shown = ", ".join(items[:MAX_NAMED_FIELDS])
    rest = len(items) - MAX_NAMED_FIELDS
    if rest > 0:
        shown += f" and {rest} more"
    return f"{prefix}: {shown}"


def _is_number(value) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return True
    try:
        float(str(value).strip())
    except ValueError:
        return False
    return True


def validate_form(form: CheckoutForm, documents: CheckoutDocuments, phone_verified: bool) -> None:
    """Run the checkout checks in order; the first failing group raises."""
    if not phone_verified:
        raise CheckoutValidationError("Please verify your phone number first", ["phone"])

    missing = []
    for n, guest in enumerate(form.guests, start=1):
        if not (guest.name or "").strip():
            missing.append(f"Guest {n} name")
        if guest.age in (None, "") or not _is_number(guest.age):
            missing.append(f"Guest {n} age")
    if missing:
        raise CheckoutValidationError(describe_missing("Please fill all guest details", missing), missing)

    missing = [label for label, value in (
        ("Address", form.address), ("City", form.city), ("State", form.state), ("Pincode", form.pincode),
    ) if not (value or "").strip()]
    if missing:
        raise CheckoutValidationError(describe_missing("Please fill your address", missing), missing)

    missing = [label for label, value in (("ID Type", form.id_type), ("ID Number", form.id_number))
               if not (value or "").strip()]
    if missing:
        raise CheckoutValidationError(describe_missing("Please provide your identity proof", missing), missing)
    if form.id_type == "aadhaar" and not AADHAAR_RE.match(form.id_number.strip()):
        raise CheckoutValidationError("Aadhaar Number must be exactly 12 digits", ["ID Number"])

    if form.booking_for == "relative":
        if not AADHAAR_RE.match((form.guest_id_number or "").strip()):
            raise CheckoutValidationError("Guest Aadhaar Number must be exactly 12 digits", ["Guest ID Number"])
        if not (form.relation or "").strip():
            raise CheckoutValidationError("Please enter your relation with the guest", ["Relation"])
        if documents.guest_id is None:
            raise CheckoutValidationError("Please upload Guest Identity Proof", ["Guest ID file"])

    if documents.govt_id is None:
        raise CheckoutValidationError("Please upload your Government ID document", ["Government ID file"])


class CheckoutOrchestrator:
    def __init__(self, client: GuestHouseClient, cart: CartStore):
        self.client = client
        self.cart = cart

    def submit(self, *, check_in: datetime | None, check_out: datetime | None, form: CheckoutForm,
               documents: CheckoutDocuments, phone_verified: bool) -> CheckoutResult:
        if not self.client.token:
            raise AuthorizationRequiredError("Please login to book")
        if not self.cart.entries():
            raise CheckoutValidationError("Your cart is empty", ["rooms"])
        if check_in is None or check_out is None or check_out <= check_in:
            raise CheckoutValidationError("Please select check-in and check-out dates", ["dates"])
        validate_form(form, documents, phone_verified)
        capacity = self.cart.total_capacity
        if len(form.guests) > capacity:
            raise CheckoutValidationError(
                f"The selected rooms can hold at most {capacity} guests. "
                "Please add a room or reduce the number of guests",
                ["guests"],
            )

        try:
            self._reverify(check_in, check_out)
            paths = self._upload(form, documents)
            response = self.client.create_booking(self._payload(check_in, check_out, form, paths))
        except ApiError as e:
            if e.status_code == 401:
                raise AuthorizationRequiredError("Your session has expired. Please login again") from e
            raise BookingFailedError(f"Booking failed: {e.detail}") from e
        except requests.RequestException as e:
            logger.warning("checkout_network_error", error=str(e))
            raise CheckoutNetworkError("An error occurred. Please check your connection and try again") from e

        booking_ids = response.get("booking_ids") or []
        if not response.get("success") or not booking_ids:
            raise BookingFailedError(response.get("error") or "Booking failed")

        self.cart.clear_cart()
        logger.info("checkout_completed", booking_ids=booking_ids)
        return CheckoutResult(booking_ids=booking_ids, redirect_url=f"/booking/payment/{booking_ids[0]}")

    def _reverify(self, check_in: datetime, check_out: datetime) -> None:
        live = self.client.check_availability(check_in, check_out)
        counts = live.get("countsByType") or {}
        entries = self.cart.entries()
        wanted: dict[str, int] = {}
        for e in entries:
            wanted[e.room_type] = wanted.get(e.room_type, 0) + e.quantity
        short_types = [t for t, qty in wanted.items() if qty > int(counts.get(t, 0))]
        if short_types:
            # entries of one type share its free units, in cart order
            remaining = {t: int(counts.get(t, 0)) for t in wanted}
            by_room = {}
            for e in entries:
                if e.room_type in short_types:
                    by_room[e.room_id] = min(e.quantity, remaining[e.room_type])
                    remaining[e.room_type] -= by_room[e.room_id]
                else:
                    by_room[e.room_id] = int(counts.get(e.room_type, 0))
            changed = self.cart.reconcile(by_room)
            raise AvailabilityConflictError(
                describe_missing("Some rooms are no longer available for your dates", short_types)
                + ". Your selection has been updated.",
                changed,
            )

    def _upload(self, form: CheckoutForm, documents: CheckoutDocuments) -> dict[str, str | None]:
        wanted = [("govt_id", documents.govt_id, "Government ID")]
        if documents.bank_id is not None:
            wanted.append(("bank_id", documents.bank_id, "Employee ID"))
        if form.booking_for == "relative" and documents.guest_id is not None:
            wanted.append(("guest_id", documents.guest_id, "Guest ID"))

        paths: dict[str, str | None] = {"govt_id": None, "bank_id": None, "guest_id": None}
        for document_type, document, label in wanted:
            try:
                paths[document_type] = self.client.upload_document(document, document_type)
            except ApiError as e:
                if e.status_code == 401:
                    raise
                raise UploadFailedError(f"Failed to upload {label}: {e.detail}", document_type) from e
            except requests.RequestException as e:
                raise UploadFailedError(f"Failed to upload {label}", document_type) from e
        return paths

    def _payload(self, check_in: datetime, check_out: datetime, form: CheckoutForm, paths: dict) -> dict:
        guests = [{"name": g.name.strip(), "age": int(float(g.age))} for g in form.guests]
        return {
            "check_in": check_in.isoformat(),
            "check_out": check_out.isoformat(),
            "bookings": [{"room_id": e.room_id, "quantity": e.quantity} for e in self.cart.entries()],
            "guest_details": guests,
            "num_guests": len(guests) or 1,
            "guest_name": f"{form.first_name} {form.last_name}".strip(),
            "email": form.email,
            "phone": form.phone,
            "address": form.address,
            "city": form.city,
            "state": form.state,
            "pincode": form.pincode,
            "id_type": form.id_type,
            "id_number": form.id_number.strip(),
            "booking_for": form.booking_for,
            "guest_relation": form.relation or None,
            "guest_id_number": form.guest_id_number or None,
            "bank_id_number": form.bank_id_number or None,
            "govt_id_path": paths["govt_id"],
            "bank_id_path": paths["bank_id"],
            "guest_id_path": paths["guest_id"],
            "special_requests": form.special_requests,
        }
