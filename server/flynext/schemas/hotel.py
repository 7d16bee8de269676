"""Hotel, room and hotel booking schemas."""

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from ..models.hotel import HotelBookingStatus
from .common import Money


class CreateHotelRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    address: str = Field(..., min_length=1, max_length=500)
    city_id: str
    description: str | None = Field(None, max_length=5000)
    star_rating: int = Field(3, ge=1, le=5)


class UpdateHotelRequest(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    address: str | None = Field(None, min_length=1, max_length=500)
    description: str | None = Field(None, max_length=5000)
    star_rating: int | None = Field(None, ge=1, le=5)


class Hotel(BaseModel):
    id: str
    owner_id: str
    name: str
    address: str
    city: str
    country: str
    description: str | None = None
    star_rating: int


class CreateRoomRequest(BaseModel):
    room_type: str = Field(..., min_length=1, max_length=100)
    max_guests: int = Field(2, ge=1, le=20)
    available_count: int = Field(..., ge=0, le=10000, description="Number of identical units")
    price: Money = Field(..., description="Nightly price")
    amenities: list[str] = Field(default_factory=list)


class UpdateRoomRequest(BaseModel):
    room_type: str | None = Field(None, min_length=1, max_length=100)
    max_guests: int | None = Field(None, ge=1, le=20)
    available_count: int | None = Field(None, ge=0, le=10000)
    price: Money | None = None
    amenities: list[str] | None = None


class Room(BaseModel):
    id: str
    hotel_id: str
    room_type: str
    max_guests: int
    available_count: int
    price: Money
    amenities: list[str]


class NightAvailability(BaseModel):
    night: date
    available: int


class RoomAvailability(BaseModel):
    room_id: str
    check_in_date: date
    check_out_date: date
    nights: list[NightAvailability]
    bookable: bool


class CreateHotelBookingRequest(BaseModel):
    """Request schema for booking a room for a date range."""

    room_id: str
    hotel_id: str | None = Field(None, description="Must match the room's hotel when given")
    check_in_date: date
    check_out_date: date
    guest_count: int = Field(1, ge=1, le=20)
    guest_details: dict[str, Any] | None = None
    status: HotelBookingStatus = Field(
        HotelBookingStatus.CONFIRMED,
        description="CONFIRMED books immediately; PENDING adds the stay to the cart"
    )

    @field_validator("check_in_date", "check_out_date", mode="before")
    @classmethod
    def drop_time_part(cls, v: Any) -> Any:
        # Dates may arrive as full ISO timestamps; only the calendar day counts
        if isinstance(v, str) and "T" in v:
            return v.split("T", 1)[0]
        if isinstance(v, datetime):
            return v.date()
        return v

    @field_validator("status")
    @classmethod
    def check_status(cls, v: HotelBookingStatus) -> HotelBookingStatus:
        if v == HotelBookingStatus.CANCELLED:
            raise ValueError("A booking cannot be created as CANCELLED")
        return v

    @model_validator(mode="after")
    def check_dates(self):
        if self.check_out_date <= self.check_in_date:
            raise ValueError("Checkout date must be after checkin date")
        return self


class HotelBooking(BaseModel):
    id: str
    booking_reference: str
    user_id: str
    hotel_id: str
    hotel_name: str
    room_id: str
    room_type: str
    check_in_date: date
    check_out_date: date
    nights: int
    guest_count: int
    total_price: Money
    guest_details: dict[str, Any] | None = None
    status: HotelBookingStatus
    created_at: datetime
