"""Flight booking schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from ..models.booking import BookingStatus, LegStatus
from .catalog import Flight
from .common import Money


def _canonical_id(value: str) -> str:
    """Lower-case hyphenated form of a UUID; other strings are only stripped."""
    value = value.strip()
    try:
        return str(UUID(value))
    except ValueError:
        return value


class CreateBookingRequest(BaseModel):
    """Request schema for booking one passenger onto one or more flights."""

    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    passport_number: str = Field(..., max_length=32)
    flight_ids: list[str] = Field(..., description="Flights to book, one seat on each")

    @field_validator("first_name", "last_name", "passport_number")
    @classmethod
    def strip_whitespace(cls, v: str) -> str:
        return v.strip()

    @field_validator("passport_number")
    @classmethod
    def check_passport_length(cls, v: str) -> str:
        if len(v) < 9:
            raise ValueError("Passport number must be 9 digits long")
        return v

    @field_validator("flight_ids")
    @classmethod
    def check_flight_ids(cls, v: list[str]) -> list[str]:
        if not v or any(not flight_id.strip() for flight_id in v):
            raise ValueError("Missing or invalid flight IDs")
        normalized = [_canonical_id(flight_id) for flight_id in v]
        if len(set(normalized)) != len(normalized):
            raise ValueError("Duplicate flight IDs")
        return normalized


class BookedFlight(Flight):
    """Flight as part of a booking, with the leg's own status."""

    leg_index: int
    leg_status: LegStatus


class Booking(BaseModel):
    """Booking response schema."""

    id: str
    booking_reference: str
    ticket_number: str
    first_name: str
    last_name: str
    email: str
    passport_number: str
    status: BookingStatus
    agency_id: str | None = None
    user_id: str | None = None
    total_price: Money
    flights: list[BookedFlight]
    created_at: datetime
