import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from .clock import as_utc
from .models import BookingStatus, Role


# ----- Users -----
class UserCreate(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)
    full_name: str = Field(min_length=2, max_length=100)
    role: Optional[Role] = None

    @field_validator("role")
    @classmethod
    def role_is_self_assignable(cls, value):
        if value == Role.ADMIN:
            raise ValueError("Role must be USER or HOST")
        return value


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class UserUpdate(BaseModel):
    email: Optional[EmailStr] = None
    full_name: Optional[str] = Field(default=None, min_length=2, max_length=100)


class PasswordChange(BaseModel):
    current_password: str
    new_password: str = Field(min_length=6)
    confirm_password: str


class UserOut(BaseModel):
    id: uuid.UUID
    email: str
    full_name: str
    role: Role
    created_at: datetime
    updated_at: datetime
    total_bookings: int = 0
    total_locations: int = 0


class UserSummary(BaseModel):
    id: uuid.UUID
    full_name: str
    email: str

    class Config:
        from_attributes = True


class LoginResponse(BaseModel):
    user_id: uuid.UUID
    email: str
    full_name: str
    role: Role
    message: str
    access_token: str
    token_type: str = "bearer"


class EmailExists(BaseModel):
    exists: bool


# ----- Locations -----
class LocationCreate(BaseModel):
    name: str = Field(min_length=1)
    address: str = Field(min_length=1)
    city: str = Field(min_length=1)
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    price_per_hour: Decimal = Field(gt=0, max_digits=10, decimal_places=2)
    capacity: int = Field(gt=0)
    hours: str = Field(min_length=1)


class LocationStatusUpdate(BaseModel):
    is_active: bool


class LocationSummary(BaseModel):
    id: uuid.UUID
    name: str
    address: str

    class Config:
        from_attributes = True


class LocationOut(BaseModel):
    id: uuid.UUID
    name: str
    address: str
    city: Optional[str] = None
    latitude: float
    longitude: float
    price_per_hour: float
    capacity: int
    hours: Optional[str] = None
    is_active: bool
    distance_km: Optional[float] = None
    host: Optional[UserSummary] = None
    rating: float = 0.0
    reviews: List[str] = []


class AvailabilityResponse(BaseModel):
    location_id: uuid.UUID
    start_time: datetime
    end_time: datetime
    required_capacity: int
    available: bool


# ----- Bookings -----
class BookingCreate(BaseModel):
    location_id: uuid.UUID
    start_time: datetime
    end_time: datetime
    number_of_items: Optional[int] = Field(default=None, gt=0)

    @field_validator("start_time", "end_time")
    @classmethod
    def to_utc(cls, value: datetime) -> datetime:
        return as_utc(value)


class BookingUpdate(BaseModel):
    # All fields are optional for updates
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    number_of_items: Optional[int] = Field(default=None, gt=0)

    @field_validator("start_time", "end_time")
    @classmethod
    def to_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value) if value is not None else None


class BookingOut(BaseModel):
    id: uuid.UUID
    user: UserSummary
    location: LocationSummary
    start_time: datetime
    end_time: datetime
    price_cents: int
    status: BookingStatus
    number_of_items: Optional[int] = None


class HostDashboard(BaseModel):
    total_bookings: int
    pending_bookings: int
    confirmed_bookings: int
    cancelled_bookings: int
    completed_bookings: int


# ----- Auth -----
class TokenData(BaseModel):
    user_id: Optional[uuid.UUID] = None
    role: Optional[Role] = None


# ----- Errors -----
class ErrorResponse(BaseModel):
    timestamp: datetime
    status: int
    error: str
    message: str
    path: str
    validation_errors: Optional[dict] = None
