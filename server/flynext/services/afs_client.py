"""Client for the Advanced Flights System (AFS) API."""

import time
from datetime import date
from typing import Any

import httpx

from ..core.config import settings
from ..core.exceptions import ExternalServiceError
from ..core.observability import get_logger, metrics_collector

logger = get_logger(__name__)

AFS_SERVICE_NAME = "AFS"


def extract_flights(payload: Any) -> list[dict[str, Any]]:
    """
    Pull the flight list out of an AFS search response.

    AFS answers in one of three shapes: a bare list of flights, a
    ``{"results": [{"flights": [...]}]}`` envelope, or the same envelope
    whose entries are itineraries carrying their own ``flights`` list.
    Anything else yields no flights.
    """
    if isinstance(payload, list):
        return [flight for flight in payload if isinstance(flight, dict)]

    if not isinstance(payload, dict):
        return []

    results = payload.get("results")
    if not isinstance(results, list) or not results or not isinstance(results[0], dict):
        return []

    items = results[0].get("flights")
    if not isinstance(items, list):
        return []

    flights: list[dict[str, Any]] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        if "id" not in item and isinstance(item.get("flights"), list):
            flights.extend(flight for flight in item["flights"] if isinstance(flight, dict))
        else:
            flights.append(item)
    return flights


def _city_name(entry: Any) -> str | None:
    if not isinstance(entry, dict):
        return None
    name = entry.get("city") or entry.get("name")
    return name if isinstance(name, str) else None


class CityCache:
    """Holds the AFS city list for a fixed time-to-live."""

    def __init__(self, ttl_seconds: float):
        self.ttl_seconds = ttl_seconds
        self._cities: list[dict[str, Any]] | None = None
        self._loaded_at = 0.0

    def get(self) -> list[dict[str, Any]] | None:
        if self._cities is None or time.monotonic() - self._loaded_at >= self.ttl_seconds:
            return None
        return self._cities

    def put(self, cities: list[dict[str, Any]]) -> None:
        self._cities = cities
        self._loaded_at = time.monotonic()

    def clear(self) -> None:
        self._cities = None
        self._loaded_at = 0.0


class AFSClient:
    """
    Async AFS API client.

    Every request carries the ``x-api-key`` header and is attempted up to
    ``max_attempts`` times; transport errors and non-2xx answers count as
    failed attempts. After the last failure an ``ExternalServiceError`` (502)
    is raised.
    """

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        max_attempts: int | None = None,
        city_cache_ttl: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.afs_base_url).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.afs_api_key
        self.timeout = timeout or settings.afs_timeout_seconds
        self.max_attempts = max_attempts or settings.afs_max_attempts
        self.transport = transport
        self.city_cache = CityCache(
            city_cache_ttl if city_cache_ttl is not None else settings.city_cache_ttl_seconds
        )

    async def _request(self, endpoint: str, params: dict[str, str] | None = None) -> Any:
        headers = {
            "Content-Type": "application/json",
            "x-api-key": self.api_key,
        }
        last_error: str | None = None
        last_status: int | None = None

        async with httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers=headers,
            transport=self.transport,
        ) as client:
            for attempt in range(1, self.max_attempts + 1):
                try:
                    response = await client.get(endpoint, params=params)
                    response.raise_for_status()
                    payload = response.json()
                except httpx.HTTPStatusError as e:
                    last_status = e.response.status_code
                    last_error = f"AFS API error ({last_status}): {e.response.text[:200]}"
                except (httpx.HTTPError, ValueError) as e:
                    last_status = None
                    last_error = f"{type(e).__name__}: {e}"
                else:
                    metrics_collector.record_afs_request(endpoint, "success")
                    logger.debug("afs_request_succeeded", endpoint=endpoint, attempt=attempt)
                    return payload

                logger.warning(
                    "afs_request_failed",
                    endpoint=endpoint,
                    attempt=attempt,
                    max_attempts=self.max_attempts,
                    error=last_error,
                )

        metrics_collector.record_afs_request(endpoint, "failure")
        logger.error("afs_request_exhausted", endpoint=endpoint, error=last_error)
        raise ExternalServiceError(
            service=AFS_SERVICE_NAME,
            detail=f"Flight provider request failed after {self.max_attempts} attempts",
            upstream_status=last_status,
        )

    async def get_cities(self) -> list[dict[str, Any]]:
        return await self._request("/api/cities")

    async def get_airports(self) -> list[dict[str, Any]]:
        return await self._request("/api/airports")

    async def get_airlines(self) -> list[dict[str, Any]]:
        return await self._request("/api/airlines")

    async def search_flights(self, origin: str, destination: str, departure_date: date | str) -> list[dict[str, Any]]:
        """Search one-way flights for a day and return the flat flight list."""
        payload = await self._request(
            "/api/flights",
            params={
                "origin": origin,
                "destination": destination,
                "date": str(departure_date),
            },
        )
        return extract_flights(payload)

    async def search_round_trip(
        self,
        origin: str,
        destination: str,
        departure_date: date | str,
        return_date: date | str,
    ) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
        """Search outbound and return legs; returns (outbound, return_flights)."""
        outbound = await self.search_flights(origin, destination, departure_date)
        return_flights = await self.search_flights(destination, origin, return_date)
        return outbound, return_flights

    async def cached_cities(self) -> list[dict[str, Any]]:
        """City list, fetched from AFS at most once per cache lifetime."""
        cities = self.city_cache.get()
        if cities is not None:
            return cities

        payload = await self.get_cities()
        cities = payload if isinstance(payload, list) else []
        self.city_cache.put(cities)
        logger.info("afs_city_cache_refreshed", cities=len(cities))
        return cities

    async def autocomplete_city(self, value: str) -> str:
        """
        Resolve partial city input to a full AFS city name.

        Three-letter input is taken as an airport code and passed through.
        Otherwise an exact case-insensitive match wins over the first prefix
        match; with no match, or when the city list cannot be loaded, the
        input is returned unchanged.
        """
        value = value.strip()
        if len(value) == 3 and value.isalpha():
            return value.upper()

        try:
            cities = await self.cached_cities()
        except ExternalServiceError:
            logger.warning("afs_city_autocomplete_unavailable", query=value)
            return value

        needle = value.lower()
        names = [name for name in (_city_name(entry) for entry in cities) if name]

        for name in names:
            if name.lower() == needle:
                return name

        for name in names:
            if name.lower().startswith(needle):
                return name

        return value


_client: AFSClient | None = None


def get_afs_client() -> AFSClient:
    """FastAPI dependency returning the process-wide AFS client (it owns the city cache)."""
    global _client
    if _client is None:
        _client = AFSClient()
    return _client
