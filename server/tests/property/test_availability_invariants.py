"""Property-based tests for itinerary and room-night availability invariants."""

from datetime import date, datetime, timedelta
from types import SimpleNamespace

import pytest
from hypothesis import given
from hypothesis import strategies as st

from flynext.models.flight import FlightStatus
from flynext.services.availability import (
    LegsNotConsecutiveError,
    SeatsUnavailableError,
    nightly_remaining,
    order_legs,
    stay_nights,
    unavailable_nights,
    validate_itinerary,
)

BASE_TIME = datetime(2030, 5, 1)
BASE_DAY = date(2030, 6, 1)

# Strategies for generating test data
offsets_minutes = st.integers(min_value=0, max_value=7 * 24 * 60)
durations_minutes = st.integers(min_value=30, max_value=16 * 60)
seat_values = st.integers(min_value=0, max_value=5)
statuses = st.sampled_from(list(FlightStatus))


@st.composite
def legs(draw):
    departure = BASE_TIME + timedelta(minutes=draw(offsets_minutes))
    return SimpleNamespace(
        id=f"flight-{draw(st.uuids())}",
        status=draw(statuses),
        available_seats=draw(seat_values),
        departure_time=departure,
        arrival_time=departure + timedelta(minutes=draw(durations_minutes)),
    )


@st.composite
def stays(draw):
    check_in = BASE_DAY + timedelta(days=draw(st.integers(min_value=0, max_value=20)))
    length = draw(st.integers(min_value=1, max_value=10))
    return check_in, check_in + timedelta(days=length)


@given(flights=st.lists(legs(), min_size=1, max_size=6))
def test_order_legs_is_sorted_permutation(flights):
    """Test that ordering keeps every leg and sorts by departure."""
    ordered = order_legs(flights)

    assert sorted(f.id for f in ordered) == sorted(f.id for f in flights)
    assert all(a.departure_time <= b.departure_time for a, b in zip(ordered, ordered[1:]))


@given(flights=st.lists(legs(), min_size=1, max_size=6))
def test_validate_itinerary_matches_brute_force(flights):
    """Test that an itinerary is accepted exactly when every rule holds."""
    ordered = order_legs(flights)

    bookable = all(f.status == FlightStatus.SCHEDULED and f.available_seats > 0 for f in ordered)
    consecutive = all(a.arrival_time < b.departure_time for a, b in zip(ordered, ordered[1:]))

    if bookable and consecutive:
        validate_itinerary(ordered)
    else:
        with pytest.raises((SeatsUnavailableError, LegsNotConsecutiveError)) as exc_info:
            validate_itinerary(ordered)
        assert exc_info.value.status_code == 400


@given(stay=stays())
def test_stay_nights_excludes_checkout(stay):
    check_in, check_out = stay
    nights = stay_nights(check_in, check_out)

    assert len(nights) == (check_out - check_in).days
    assert nights[0] == check_in
    assert check_out not in nights
    assert len(set(nights)) == len(nights)


@given(
    requested=stays(),
    booked=st.lists(stays(), max_size=8),
    units=st.integers(min_value=0, max_value=4),
)
def test_nightly_remaining_matches_brute_force(requested, booked, units):
    """Test per-night counts against a direct count of covering stays."""
    nights = stay_nights(*requested)
    remaining = nightly_remaining(nights, units, booked)

    for night in nights:
        covering = sum(1 for stay_in, stay_out in booked if night in stay_nights(stay_in, stay_out))
        assert remaining[night] == units - covering

    blocked = unavailable_nights(remaining)
    assert blocked == sorted(blocked)
    assert set(blocked) == {night for night in nights if remaining[night] <= 0}


@given(requested=stays(), booked=st.lists(stays(), max_size=8), units=st.integers(min_value=1, max_value=4))
def test_back_to_back_stays_never_conflict(requested, booked, units):
    """Test that a stay ending on check-in day never blocks the first night."""
    check_in, check_out = requested
    ending_at_check_in = [(check_in - timedelta(days=3), check_in)] * units

    with_adjacent = nightly_remaining(stay_nights(check_in, check_out), units, booked + ending_at_check_in)
    without = nightly_remaining(stay_nights(check_in, check_out), units, booked)

    assert with_adjacent == without
