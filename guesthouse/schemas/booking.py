from datetime import datetime
from pydantic import BaseModel, Field
from typing import List, Optional


class BookingLineIn(BaseModel):
    room_id: str
    quantity: int = Field(default=1, ge=1)


class GuestIn(BaseModel):
    name: str
    age: int = 0


class BookingCreate(BaseModel):
    check_in: datetime
    check_out: datetime
    bookings: List[BookingLineIn]
    guest_details: List[GuestIn] = []
    num_guests: Optional[int] = None
    guest_name: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    pincode: str = ""
    id_type: str = ""
    id_number: str = ""
    booking_for: str = "self"
    guest_relation: Optional[str] = None
    guest_id_number: Optional[str] = None
    bank_id_number: Optional[str] = None
    govt_id_path: Optional[str] = None
    bank_id_path: Optional[str] = None
    guest_id_path: Optional[str] = None
    special_requests: str = ""


class PaymentSubmit(BaseModel):
    method: str = "upi"
    reference: str = ""
    screenshotPath: Optional[str] = None


class PermissionCodeIn(BaseModel):
    code: str
