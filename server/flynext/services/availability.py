"""Itinerary and room-night availability rules shared by the booking services.

These functions work on plain attributes only (no session access) so they can
be reasoned about and tested in isolation from the database.
"""

from collections.abc import Iterable, Sequence
from datetime import date, timedelta
from typing import Any, Protocol

from ..core.exceptions import ConflictError, ValidationError
from ..models.flight import FlightStatus


class LegLike(Protocol):
    id: Any
    status: str
    available_seats: int
    departure_time: Any
    arrival_time: Any


class SeatsUnavailableError(ValidationError):
    """A requested flight is not bookable: not scheduled or sold out."""

    def __init__(self, flight_id: str):
        super().__init__(
            detail=f"No available seats on flight {flight_id}",
            extensions={"code": "NO_SEATS", "flight_id": flight_id},
        )
        self.flight_id = flight_id


class LegsNotConsecutiveError(ValidationError):
    """Two consecutive legs overlap in time."""

    def __init__(self, arriving_flight_id: str, departing_flight_id: str):
        super().__init__(
            detail="Flights are not consecutive in sequence",
            extensions={
                "code": "LEGS_OVERLAP",
                "arriving_flight_id": arriving_flight_id,
                "departing_flight_id": departing_flight_id,
            },
        )


class RoomUnavailableError(ConflictError):
    """At least one night of the stay has no free unit left."""

    def __init__(self, room_id: str, unavailable_dates: list[date]):
        super().__init__(
            detail="Room is not available for the selected dates",
            conflicting_resource={"room_id": room_id},
        )
        self.problem_details.update({
            "code": "ROOM_UNAVAILABLE",
            "unavailable_dates": [d.isoformat() for d in unavailable_dates],
        })
        self.unavailable_dates = unavailable_dates


class MixedCurrenciesError(ValidationError):
    """The priced parts of one booking are not in a single currency."""

    def __init__(self, currencies: Iterable[str]):
        currencies = sorted(set(currencies))
        super().__init__(
            detail=f"Cannot price a booking in more than one currency: {', '.join(currencies)}",
            extensions={"code": "MIXED_CURRENCIES", "currencies": currencies},
        )


def order_legs(flights: Iterable[LegLike]) -> list[LegLike]:
    """Return flights sorted by departure time."""
    return sorted(flights, key=lambda flight: flight.departure_time)


def validate_itinerary(flights: Sequence[LegLike]) -> None:
    """
    Check that a departure-ordered list of flights can be booked as one trip.

    Every flight must be scheduled with at least one free seat, and each leg
    must land strictly before the next one takes off.

    Raises:
        SeatsUnavailableError: On the first flight that cannot take a passenger
        LegsNotConsecutiveError: On the first pair of overlapping legs
    """
    for index, flight in enumerate(flights):
        if flight.status != FlightStatus.SCHEDULED or flight.available_seats < 1:
            raise SeatsUnavailableError(str(flight.id))

        if index > 0:
            previous = flights[index - 1]
            if previous.arrival_time >= flight.departure_time:
                raise LegsNotConsecutiveError(str(previous.id), str(flight.id))


def stay_nights(check_in: date, check_out: date) -> list[date]:
    """Nights of a stay: every date in [check_in, check_out)."""
    return [check_in + timedelta(days=offset) for offset in range((check_out - check_in).days)]


def nightly_remaining(
    nights: Sequence[date],
    units: int,
    booked_stays: Iterable[tuple[date, date]],
) -> dict[date, int]:
    """
    Free units per night.

    Args:
        nights: Nights to evaluate
        units: Identical room units the hotel offers
        booked_stays: (check_in, check_out) of bookings that hold a unit

    Returns:
        Mapping night -> units minus bookings covering that night
    """
    remaining = {night: units for night in nights}
    for stay_in, stay_out in booked_stays:
        for night in nights:
            if stay_in <= night < stay_out:
                remaining[night] -= 1
    return remaining


def unavailable_nights(remaining: dict[date, int]) -> list[date]:
    """Nights without a free unit, in date order."""
    return sorted(night for night, free in remaining.items() if free <= 0)


def single_currency(currencies: Iterable[str]) -> str:
    """
    The one currency shared by all priced parts of a booking.

    Raises:
        MixedCurrenciesError: If more than one currency appears
    """
    distinct = set(currencies)
    if len(distinct) != 1:
        raise MixedCurrenciesError(distinct)
    return distinct.pop()
