"""What a checkout can fail with, as the guest should hear about it.

Every lower-level problem (HTTP status, connection error, bad form field) is
converted into exactly one of these at the orchestration boundary.
"""


class CheckoutError(Exception):
    category = "unexpected"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class CheckoutValidationError(CheckoutError):
    """A form field is missing or malformed; nothing was sent."""
    category = "validation"

    def __init__(self, message: str, fields: list[str] | None = None):
        super().__init__(message)
        self.fields = fields or []


class AvailabilityConflictError(CheckoutError):
    """Some selected rooms were taken since the search; the cart has been adjusted."""
    category = "availability"

    def __init__(self, message: str, changed_rooms: list[str] | None = None):
        super().__init__(message)
        self.changed_rooms = changed_rooms or []


class UploadFailedError(CheckoutError):
    category = "upload"

    def __init__(self, message: str, document_type: str = ""):
        super().__init__(message)
        self.document_type = document_type


class AuthorizationRequiredError(CheckoutError):
    """Session missing or expired; send the guest to login, do not retry."""
    category = "authorization"
    redirect_to = "/login"


class BookingFailedError(CheckoutError):
    category = "booking"


class CheckoutNetworkError(CheckoutError):
    category = "network"


class ApiError(Exception):
    """Non-2xx answer from the booking API."""

    def __init__(self, status_code: int, detail: str):
        super().__init__(f"{status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail
