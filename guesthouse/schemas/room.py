from datetime import datetime
from pydantic import BaseModel
from typing import List, Optional


class RoomIn(BaseModel):
    room_number: str
    room_type: str
    floor: int = 0
    max_guests: int = 2
    base_price: float
    gst_percentage: Optional[float] = None
    amenities: List[str] = []
    images: List[str] = []
    bed_type: str = ""
    view_type: str = ""
    size: str = ""
    description: str = ""
    is_available: bool = True
    is_active: bool = True


class RoomPatch(BaseModel):
    room_number: Optional[str] = None
    room_type: Optional[str] = None
    floor: Optional[int] = None
    max_guests: Optional[int] = None
    base_price: Optional[float] = None
    gst_percentage: Optional[float] = None
    amenities: Optional[List[str]] = None
    images: Optional[List[str]] = None
    bed_type: Optional[str] = None
    view_type: Optional[str] = None
    size: Optional[str] = None
    description: Optional[str] = None
    is_available: Optional[bool] = None
    is_active: Optional[bool] = None


class AvailabilityQuery(BaseModel):
    check_in: Optional[datetime] = None
    check_out: Optional[datetime] = None
    room_type: Optional[str] = None
