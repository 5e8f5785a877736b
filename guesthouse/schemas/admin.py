from datetime import datetime
from pydantic import BaseModel
from typing import Dict, List, Optional

from guesthouse.schemas.booking import BookingCreate


class AdminBookingCreate(BookingCreate):
    """Desk booking. Unlike the public schema it can waive the room charges."""
    special_discount: bool = False
    payment_method: str = "cash"


class BookingStatusUpdate(BaseModel):
    status: Optional[str] = None
    paymentStatus: Optional[str] = None


class ItemStatusUpdate(BaseModel):
    status: str


class RoomBlockIn(BaseModel):
    room_id: str
    start_date: datetime
    end_date: datetime
    reason: str = "maintenance"
    notes: str = ""


class PermissionsUpdate(BaseModel):
    permissions: Dict[str, List[str]]


class PropertySettingsIn(BaseModel):
    name: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    gstin: Optional[str] = None
    checkInTime: Optional[str] = None
    checkOutTime: Optional[str] = None
    upiId: Optional[str] = None


class PermissionCodeSet(BaseModel):
    code: str


class PaymentDecision(BaseModel):
    approve: bool
    note: str = ""


class SignedUrlRequest(BaseModel):
    path: str
