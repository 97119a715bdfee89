# models/restaurant.py
from enum import Enum
from pydantic import BaseModel, EmailStr, Field
from typing import Dict, List, Optional
from datetime import datetime
from models.user import PHONE_PATTERN

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"

class PriceRange(str, Enum):
    BUDGET = "BUDGET"
    MODERATE = "MODERATE"
    EXPENSIVE = "EXPENSIVE"
    LUXURY = "LUXURY"

class OpeningHours(BaseModel):
    open: str = Field(..., pattern=TIME_PATTERN)
    close: str = Field(..., pattern=TIME_PATTERN)

class RestaurantCreate(BaseModel):
    name: str = Field(min_length=2)
    description: Optional[str] = None
    address: str
    phone_number: str = Field(..., pattern=PHONE_PATTERN)
    email: Optional[EmailStr] = None
    website: Optional[str] = None
    cuisine: List[str] = Field(default_factory=list)
    price_range: Optional[PriceRange] = None
    rating: Optional[float] = Field(None, ge=0, le=5)
    capacity: int = Field(..., ge=1)
    image_urls: List[str] = Field(default_factory=list)
    # day name -> hours; informational only, slots come from the fixed grid
    opening_hours: Dict[str, OpeningHours] = Field(default_factory=dict)
    is_active: bool = True

class RestaurantUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2)
    description: Optional[str] = None
    address: Optional[str] = None
    phone_number: Optional[str] = Field(None, pattern=PHONE_PATTERN)
    email: Optional[EmailStr] = None
    website: Optional[str] = None
    cuisine: Optional[List[str]] = None
    price_range: Optional[PriceRange] = None
    rating: Optional[float] = Field(None, ge=0, le=5)
    capacity: Optional[int] = Field(None, ge=1)
    image_urls: Optional[List[str]] = None
    opening_hours: Optional[Dict[str, OpeningHours]] = None
    is_active: Optional[bool] = None

class RestaurantOut(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    address: Optional[str] = None
    phone_number: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None
    cuisine: List[str] = Field(default_factory=list)
    price_range: Optional[PriceRange] = None
    rating: Optional[float] = None
    capacity: int
    image_urls: List[str] = Field(default_factory=list)
    opening_hours: Dict[str, OpeningHours] = Field(default_factory=dict)
    is_active: bool = True
    owner_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class RestaurantSummary(BaseModel):
    id: str
    name: str
    address: Optional[str] = None
    phone_number: Optional[str] = None

class RestaurantSearchResponse(BaseModel):
    items: List[RestaurantOut]
    total: int
    page: int
    limit: int
    total_pages: int
