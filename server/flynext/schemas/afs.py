"""Schemas for flight results coming from the Advanced Flights System."""

from typing import Any

from pydantic import BaseModel, Field


class ExternalFlightSearchResponse(BaseModel):
    """Flights found by AFS; flight objects are passed through unchanged."""

    origin: str = Field(..., description="Resolved origin city or airport code")
    destination: str = Field(..., description="Resolved destination city or airport code")
    outbound: list[dict[str, Any]]
    return_flights: list[dict[str, Any]] | None = None
