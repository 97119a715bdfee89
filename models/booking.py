from enum import Enum
from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from datetime import date, datetime
from models.restaurant import RestaurantOut, RestaurantSummary, TIME_PATTERN
from models.user import PHONE_PATTERN, UserSummary

class BookingStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"

# statuses whose guests count toward slot occupancy
ACTIVE_STATUSES = [BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value]

class BookingCreate(BaseModel):
    restaurant_id: str
    booking_date: date
    booking_time: str = Field(..., pattern=TIME_PATTERN, description='Slot label, e.g. "19:00"')
    guest_count: int = Field(..., ge=1, le=20)
    customer_name: str = Field(..., min_length=1)
    customer_phone: str = Field(..., pattern=PHONE_PATTERN)
    customer_email: Optional[EmailStr] = None
    special_requests: Optional[str] = None

class BookingUpdate(BaseModel):
    booking_date: Optional[date] = None
    booking_time: Optional[str] = Field(None, pattern=TIME_PATTERN)
    guest_count: Optional[int] = Field(None, ge=1, le=20)
    customer_name: Optional[str] = Field(None, min_length=1)
    customer_phone: Optional[str] = Field(None, pattern=PHONE_PATTERN)
    customer_email: Optional[EmailStr] = None
    special_requests: Optional[str] = None
    status: Optional[BookingStatus] = None
    # internal notes for restaurant staff
    notes: Optional[str] = None

class BookingBase(BaseModel):
    id: str
    restaurant_id: str
    user_id: str
    booking_date: date
    booking_time: str
    guest_count: int
    status: BookingStatus
    customer_name: str
    customer_phone: str
    customer_email: Optional[str] = None
    special_requests: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class BookingOut(BookingBase):
    restaurant: RestaurantOut
    user: UserSummary

class BookingListItem(BookingBase):
    restaurant: RestaurantSummary
    user: UserSummary

class RestaurantBookingItem(BookingBase):
    user: UserSummary
