"""
Pydantic schemas for API request/response models.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List, Dict, Any
from datetime import datetime, date as date_type, time as time_type
from enum import Enum

from unipool.models.booking import BookingStatus, RequestStatus
from unipool.models.notification import NotificationType
from unipool.models.ride import RideStatus
from unipool.models.user import UserRole

class RideSort(str, Enum):
    DEPARTURE = "departure"
    PRICE_LOW = "price_low"
    PRICE_HIGH = "price_high"
    RATING = "rating"
    SEATS = "seats"

# User schemas
class UserCreate(BaseModel):
    email: str = Field(..., description="User email address")
    display_name: str = Field(..., min_length=1, description="Name shown to other users")
    phone: Optional[str] = Field(None, description="User phone number")
    role: Optional[UserRole] = Field(None, description="Rider or driver")

class UserRoleUpdate(BaseModel):
    role: UserRole

class UserResponse(BaseModel):
    id: str
    email: str
    display_name: str
    phone: Optional[str]
    role: Optional[UserRole]
    rating: Optional[float]
    rating_count: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

# Ride schemas
class RideCreate(BaseModel):
    origin: str = Field(..., min_length=1, description="Pickup label")
    destination: str = Field(..., min_length=1, description="Drop-off label")
    date: date_type = Field(..., description="Departure date (YYYY-MM-DD)")
    time: time_type = Field(..., description="Departure time (HH:MM)")
    total_seats: int = Field(..., description="Seats offered")
    price: float = Field(..., description="Price per seat")
    driver_name: str = Field(..., min_length=1, description="Driver display name")
    driver_phone: Optional[str] = None
    driver_rating: Optional[float] = None

class RideResponse(BaseModel):
    id: int
    driver_id: str
    driver_name: str
    driver_phone: Optional[str]
    driver_rating: Optional[float]
    origin: str
    destination: str
    date: date_type
    time: time_type
    total_seats: int
    available_seats: int
    price: float
    status: RideStatus
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

# Booking request schemas
class BookingRequestCreate(BaseModel):
    ride_id: int
    passengers: int = Field(1, description="Seats requested")
    rider_name: Optional[str] = None

class BookingRequestResponse(BaseModel):
    id: int
    ride_id: int
    rider_id: str
    rider_name: Optional[str]
    passengers: int
    status: RequestStatus
    created_at: datetime
    decided_at: Optional[datetime]

    model_config = ConfigDict(from_attributes=True)

# Direct booking schemas
class BookingCreate(BaseModel):
    ride_id: int
    rider_name: str = Field(..., min_length=1)
    rider_phone: Optional[str] = None
    seats: int = Field(1, description="Seats to book")

class BookingResponse(BaseModel):
    id: int
    ride_id: int
    rider_id: str
    rider_name: str
    rider_phone: Optional[str]
    driver_id: str
    driver_name: str
    seats: int
    status: BookingStatus
    origin: str
    destination: str
    date: date_type
    time: time_type
    price: float
    booked_at: datetime
    cancelled_at: Optional[datetime]

    model_config = ConfigDict(from_attributes=True)

# Notification schemas
class NotificationResponse(BaseModel):
    id: int
    user_id: str
    type: NotificationType
    title: str
    message: str
    read: bool
    payload: Optional[Dict[str, Any]]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

class UnreadCountResponse(BaseModel):
    count: int

class MarkedReadResponse(BaseModel):
    updated: int

# Rating schemas
class RatingCreate(BaseModel):
    ratee_id: str
    stars: int
    ride_id: Optional[int] = None
    comment: Optional[str] = None
    rater_name: Optional[str] = None

class RatingResponse(BaseModel):
    id: int
    ride_id: Optional[int]
    rater_id: str
    ratee_id: str
    stars: int
    comment: Optional[str]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

class RatingSummary(BaseModel):
    user_id: str
    average: Optional[float]
    count: int
    ratings: List[RatingResponse]

# Chat schemas
class ChatOpen(BaseModel):
    other_user_id: str
    my_name: str
    other_name: str
    ride_id: Optional[int] = None

class ChatResponse(BaseModel):
    id: int
    participants: List[str]
    participant_a_name: str
    participant_b_name: str
    ride_id: Optional[int]
    last_message: str
    last_message_at: datetime
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

class MessageCreate(BaseModel):
    text: str

class MessageResponse(BaseModel):
    id: int
    chat_id: int
    sender_id: str
    sender_name: str
    text: str
    read: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

# Error schemas
class ErrorResponse(BaseModel):
    error: str
    message: str
    details: Optional[Dict[str, Any]] = None
