from enum import Enum
from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from datetime import datetime

PHONE_PATTERN = r"^\+[1-9]\d{6,14}$"

class Role(str, Enum):
    USER = "USER"
    ADMIN = "ADMIN"
    RESTAURANT_OWNER = "RESTAURANT_OWNER"

class UserOut(BaseModel):
    id: str
    email: Optional[EmailStr] = None
    phone_number: Optional[str] = None
    first_name: str
    last_name: Optional[str] = None
    role: Role = Role.USER
    profile_image_url: Optional[str] = None
    language: Optional[str] = None
    currency: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

# what other people's records (bookings) may expose about a user
class UserSummary(BaseModel):
    id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone_number: Optional[str] = None
    email: Optional[str] = None

class UserUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1)
    last_name: Optional[str] = None
    phone_number: Optional[str] = Field(None, pattern=PHONE_PATTERN)
    profile_image_url: Optional[str] = None
    language: Optional[str] = None
    currency: Optional[str] = None

class RoleChangeRequest(BaseModel):
    role: Role
