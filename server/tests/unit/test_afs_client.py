"""Unit tests for the Advanced Flights System client."""

from datetime import date

import httpx
import pytest

from flynext.core.exceptions import ExternalServiceError
from flynext.services.afs_client import AFSClient, CityCache, extract_flights

FLIGHT = {"id": "afs-1", "flightNumber": "AC401", "origin": "Toronto", "destination": "Montreal"}


def make_client(handler, **kwargs) -> AFSClient:
    options = {"base_url": "http://afs.test", "api_key": "secret-key", "max_attempts": 3, "city_cache_ttl": 3600}
    options.update(kwargs)
    return AFSClient(transport=httpx.MockTransport(handler), **options)


def test_extract_flights_from_bare_list():
    assert extract_flights([FLIGHT, "noise"]) == [FLIGHT]


def test_extract_flights_from_results_envelope():
    assert extract_flights({"results": [{"flights": [FLIGHT]}]}) == [FLIGHT]


def test_extract_flights_from_itineraries():
    """Itinerary entries carry their own flight lists, which are flattened."""
    second = {**FLIGHT, "id": "afs-2"}
    payload = {"results": [{"flights": [{"legs": 2, "flights": [FLIGHT, second]}]}]}

    assert extract_flights(payload) == [FLIGHT, second]


@pytest.mark.parametrize("payload", [None, {}, {"results": []}, {"results": "nope"}, {"results": [{"flights": None}]}])
def test_extract_flights_unknown_shapes(payload):
    assert extract_flights(payload) == []


def test_city_cache_expiry():
    cache = CityCache(ttl_seconds=0)
    cache.put([{"city": "Toronto"}])

    assert cache.get() is None


@pytest.mark.asyncio
async def test_search_sends_api_key_and_params():
    """Test the search request carries the key header and query parameters."""
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"results": [{"flights": [FLIGHT]}]})

    flights = await make_client(handler).search_flights("Toronto", "Montreal", date(2030, 5, 1))

    assert flights == [FLIGHT]
    assert len(seen) == 1
    assert seen[0].headers["x-api-key"] == "secret-key"
    assert seen[0].url.path == "/api/flights"
    assert seen[0].url.params["origin"] == "Toronto"
    assert seen[0].url.params["destination"] == "Montreal"
    assert seen[0].url.params["date"] == "2030-05-01"


@pytest.mark.asyncio
async def test_failed_attempts_are_retried():
    """Test that a request succeeds on a later attempt."""
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        if len(attempts) < 3:
            return httpx.Response(503, text="busy")
        return httpx.Response(200, json=[FLIGHT])

    flights = await make_client(handler).search_flights("YYZ", "YUL", "2030-05-01")

    assert flights == [FLIGHT]
    assert len(attempts) == 3


@pytest.mark.asyncio
async def test_exhausted_attempts_raise_bad_gateway():
    """Test that the client gives up after max_attempts."""
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        return httpx.Response(500, text="boom")

    with pytest.raises(ExternalServiceError) as exc_info:
        await make_client(handler, max_attempts=2).get_cities()

    assert len(attempts) == 2
    assert exc_info.value.status_code == 502
    assert exc_info.value.problem_details["upstream_status"] == 500
    assert exc_info.value.problem_details["service"] == "AFS"


@pytest.mark.asyncio
async def test_transport_errors_count_as_attempts():
    """Test that connection failures are retried like error responses."""
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(ExternalServiceError):
        await make_client(handler).get_airports()

    assert len(attempts) == 3


@pytest.mark.asyncio
async def test_round_trip_searches_both_directions():
    def handler(request: httpx.Request) -> httpx.Response:
        origin = request.url.params["origin"]
        return httpx.Response(200, json=[{**FLIGHT, "id": f"from-{origin}"}])

    outbound, return_flights = await make_client(handler).search_round_trip(
        "Toronto", "Montreal", "2030-05-01", "2030-05-08"
    )

    assert [f["id"] for f in outbound] == ["from-Toronto"]
    assert [f["id"] for f in return_flights] == ["from-Montreal"]


CITIES = [
    {"city": "Toronto", "country": "Canada"},
    {"city": "Tokyo", "country": "Japan"},
    {"city": "Tok", "country": "Nowhere"},
    {"name": "Montreal", "country": "Canada"},
]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "query,expected",
    [
        ("toron", "Toronto"),
        ("TOKYO", "Tokyo"),
        ("mont", "Montreal"),
        ("yyz", "YYZ"),
        ("Atlantis", "Atlantis"),
    ],
)
async def test_autocomplete_city(query, expected):
    client = make_client(lambda request: httpx.Response(200, json=CITIES))

    assert await client.autocomplete_city(query) == expected


@pytest.mark.asyncio
async def test_autocomplete_prefers_exact_match():
    """Test that an exact name beats an earlier prefix match."""
    cities = [{"city": "Parisville"}, {"city": "Paris"}]
    client = make_client(lambda request: httpx.Response(200, json=cities))

    assert await client.autocomplete_city("paris") == "Paris"


@pytest.mark.asyncio
async def test_city_list_is_cached():
    """Test that autocomplete fetches the city list once per cache lifetime."""
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json=CITIES)

    client = make_client(handler)
    await client.autocomplete_city("toron")
    await client.autocomplete_city("mont")

    assert len(calls) == 1

    client.city_cache.clear()
    await client.autocomplete_city("toron")
    assert len(calls) == 2


@pytest.mark.asyncio
async def test_autocomplete_falls_back_when_afs_is_down():
    client = make_client(lambda request: httpx.Response(500), max_attempts=1)

    assert await client.autocomplete_city("toron") == "toron"


@pytest.mark.asyncio
async def test_get_airlines_returns_list_payload():
    airlines = [{"code": "AC", "name": "Air Canada"}]
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.path)
        return httpx.Response(200, json=airlines)

    assert await make_client(handler).get_airlines() == airlines
    assert seen == ["/api/airlines"]
