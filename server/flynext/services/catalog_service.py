"""Catalogue service for cities, airports and airlines."""

import logging
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..core.exceptions import ConflictError, NotFoundError
from ..core.identifiers import parse_id
from ..models.catalog import Airline, Airport, City
from ..schemas.catalog import CreateAirlineRequest, CreateAirportRequest, CreateCityRequest

logger = logging.getLogger(__name__)


class CatalogService:
    """Service for the reference data flights and hotels point at."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # Cities

    async def list_cities(self, query: str | None = None) -> list[City]:
        """List cities ordered by name, optionally filtered by a name prefix."""
        stmt = select(City)
        if query:
            stmt = stmt.where(func.lower(City.name).startswith(query.lower()))
        stmt = stmt.order_by(City.name, City.country)

        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_city_by_id_or_raise(self, city_id: UUID | str) -> City:
        if isinstance(city_id, str):
            city_id = parse_id(city_id, "city")

        city = await self.db.get(City, city_id)
        if city is None:
            raise NotFoundError("city", str(city_id))
        return city

    async def create_city(self, request: CreateCityRequest) -> City:
        """
        Create a city.

        Raises:
            ConflictError: If a city with the same name already exists in the country
        """
        stmt = select(City).where(City.name == request.name, City.country == request.country)
        existing = (await self.db.execute(stmt)).scalar_one_or_none()
        if existing:
            raise ConflictError(
                detail=f"City '{request.name}, {request.country}' already exists",
                conflicting_resource={"id": str(existing.id), "name": existing.name}
            )

        city = City(name=request.name, country=request.country)
        await self._save(city, f"City '{request.name}, {request.country}' already exists")

        logger.info("City created", extra={"city_id": str(city.id), "name": city.name})
        return city

    # Airports

    async def list_airports(self, city_id: UUID | None = None) -> list[Airport]:
        stmt = select(Airport).options(selectinload(Airport.city))
        if city_id is not None:
            stmt = stmt.where(Airport.city_id == city_id)
        stmt = stmt.order_by(Airport.code)

        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_airport_by_code(self, code: str) -> Airport | None:
        stmt = select(Airport).options(selectinload(Airport.city)).where(Airport.code == code.upper())
        return (await self.db.execute(stmt)).scalar_one_or_none()

    async def get_airport_by_code_or_raise(self, code: str) -> Airport:
        airport = await self.get_airport_by_code(code)
        if airport is None:
            raise NotFoundError("airport", code.upper())
        return airport

    async def create_airport(self, request: CreateAirportRequest) -> Airport:
        """
        Create an airport in an existing city.

        Raises:
            NotFoundError: If the city does not exist
            ConflictError: If the airport code is taken
        """
        city = await self.get_city_by_id_or_raise(request.city_id)

        existing = await self.get_airport_by_code(request.code)
        if existing:
            raise ConflictError(
                detail=f"Airport with code '{request.code}' already exists",
                conflicting_resource={"id": str(existing.id), "code": existing.code}
            )

        airport = Airport(code=request.code, name=request.name, city_id=city.id)
        await self._save(airport, f"Airport with code '{request.code}' already exists")
        airport.city = city

        logger.info("Airport created", extra={"airport_id": str(airport.id), "code": airport.code})
        return airport

    # Airlines

    async def list_airlines(self) -> list[Airline]:
        stmt = select(Airline).options(selectinload(Airline.base_city)).order_by(Airline.code)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_airline_by_code(self, code: str) -> Airline | None:
        stmt = select(Airline).options(selectinload(Airline.base_city)).where(Airline.code == code.upper())
        return (await self.db.execute(stmt)).scalar_one_or_none()

    async def get_airline_by_code_or_raise(self, code: str) -> Airline:
        airline = await self.get_airline_by_code(code)
        if airline is None:
            raise NotFoundError("airline", code.upper())
        return airline

    async def create_airline(self, request: CreateAirlineRequest) -> Airline:
        """
        Create an airline.

        Raises:
            NotFoundError: If the base city is given and does not exist
            ConflictError: If the airline code is taken
        """
        base_city = None
        if request.base_city_id:
            base_city = await self.get_city_by_id_or_raise(request.base_city_id)

        existing = await self.get_airline_by_code(request.code)
        if existing:
            raise ConflictError(
                detail=f"Airline with code '{request.code}' already exists",
                conflicting_resource={"id": str(existing.id), "code": existing.code}
            )

        airline = Airline(
            code=request.code,
            name=request.name,
            base_city_id=base_city.id if base_city else None
        )
        await self._save(airline, f"Airline with code '{request.code}' already exists")
        airline.base_city = base_city

        logger.info("Airline created", extra={"airline_id": str(airline.id), "code": airline.code})
        return airline

    async def _save(self, entity, conflict_detail: str) -> None:
        try:
            self.db.add(entity)
            await self.db.commit()
            await self.db.refresh(entity)
        except IntegrityError as e:
            await self.db.rollback()
            logger.warning("Catalogue insert conflicted", extra={"error": str(e)})
            raise ConflictError(detail=conflict_detail) from e
