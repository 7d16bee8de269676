"""City, airport, airline and flight schemas."""

from datetime import date, datetime

from pydantic import BaseModel, Field, field_validator, model_validator

from ..models.flight import FlightStatus
from .common import Money, to_naive_utc


class CreateCityRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    country: str = Field(..., min_length=1, max_length=255)


class City(BaseModel):
    id: str
    name: str
    country: str


class CreateAirportRequest(BaseModel):
    code: str = Field(..., pattern=r"^[A-Za-z]{3}$", description="IATA airport code")
    name: str = Field(..., min_length=1, max_length=255)
    city_id: str

    @field_validator("code")
    @classmethod
    def upper_code(cls, v: str) -> str:
        return v.upper()


class Airport(BaseModel):
    id: str
    code: str
    name: str
    city: str
    country: str


class CreateAirlineRequest(BaseModel):
    code: str = Field(..., pattern=r"^[A-Za-z0-9]{2,3}$", description="IATA airline designator")
    name: str = Field(..., min_length=1, max_length=255)
    base_city_id: str | None = None

    @field_validator("code")
    @classmethod
    def upper_code(cls, v: str) -> str:
        return v.upper()


class Airline(BaseModel):
    id: str
    code: str
    name: str
    base_city: str | None = None
    base_country: str | None = None


class CreateFlightRequest(BaseModel):
    """Request schema for scheduling a flight."""

    flight_number: str = Field(..., min_length=2, max_length=16)
    airline_code: str = Field(..., min_length=2, max_length=3)
    origin_code: str = Field(..., pattern=r"^[A-Za-z]{3}$")
    destination_code: str = Field(..., pattern=r"^[A-Za-z]{3}$")
    departure_time: datetime
    arrival_time: datetime
    price: Money
    capacity: int = Field(..., ge=1, le=1000)

    @field_validator("departure_time", "arrival_time")
    @classmethod
    def normalize_time(cls, v: datetime) -> datetime:
        return to_naive_utc(v)

    @field_validator("airline_code", "origin_code", "destination_code")
    @classmethod
    def upper_code(cls, v: str) -> str:
        return v.upper()

    @model_validator(mode="after")
    def check_schedule(self):
        if self.arrival_time <= self.departure_time:
            raise ValueError("arrival_time must be after departure_time")
        if self.origin_code == self.destination_code:
            raise ValueError("origin and destination must differ")
        return self


class UpdateFlightStatusRequest(BaseModel):
    status: FlightStatus


class SearchFlightsRequest(BaseModel):
    """Query parameters for searching locally stored flights."""

    origin: str | None = Field(None, pattern=r"^[A-Za-z]{3}$")
    destination: str | None = Field(None, pattern=r"^[A-Za-z]{3}$")
    departure_date: date | None = None
    available_only: bool = True
    limit: int = Field(50, ge=1, le=200)


class AirlineSummary(BaseModel):
    name: str
    code: str


class AirportSummary(BaseModel):
    code: str
    name: str
    city: str
    country: str


class Flight(BaseModel):
    """Flight response schema."""

    id: str
    flight_number: str
    departure_time: datetime
    arrival_time: datetime
    duration_minutes: int
    price: Money
    capacity: int
    available_seats: int
    status: FlightStatus
    airline: AirlineSummary
    origin: AirportSummary
    destination: AirportSummary
