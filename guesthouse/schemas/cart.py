from datetime import datetime
from pydantic import BaseModel
from typing import Optional


class CartUpdate(BaseModel):
    roomId: str
    delta: int
    checkIn: Optional[datetime] = None
    checkOut: Optional[datetime] = None
