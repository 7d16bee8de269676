"""Catalogue router for cities, airports and airlines."""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db
from ..core.dependencies import AdminUser
from ..models.user import User
from ..schemas.catalog import (
    Airline,
    Airport,
    City,
    CreateAirlineRequest,
    CreateAirportRequest,
    CreateCityRequest,
)
from ..services.catalog_service import CatalogService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["catalog"])

DB_DEPENDENCY = Depends(get_db)


def _convert_city_to_schema(city_model) -> City:
    return City(id=str(city_model.id), name=city_model.name, country=city_model.country)


def _convert_airport_to_schema(airport_model) -> Airport:
    return Airport(
        id=str(airport_model.id),
        code=airport_model.code,
        name=airport_model.name,
        city=airport_model.city.name,
        country=airport_model.city.country
    )


def _convert_airline_to_schema(airline_model) -> Airline:
    base_city = airline_model.base_city
    return Airline(
        id=str(airline_model.id),
        code=airline_model.code,
        name=airline_model.name,
        base_city=base_city.name if base_city else None,
        base_country=base_city.country if base_city else None
    )


@router.get("/cities", response_model=list[City])
async def list_cities(
    q: str | None = Query(None, description="City name prefix"),
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    cities = await CatalogService(db).list_cities(q)
    return JSONResponse(status_code=200, content=[_convert_city_to_schema(city).model_dump() for city in cities])


@router.post("/cities", response_model=City, status_code=201)
async def create_city(
    request: CreateCityRequest,
    admin: User = AdminUser,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Create a city (admin only)."""
    city = await CatalogService(db).create_city(request)
    return JSONResponse(status_code=201, content=_convert_city_to_schema(city).model_dump())


@router.get("/airports", response_model=list[Airport])
async def list_airports(
    city_id: UUID | None = Query(None),
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    airports = await CatalogService(db).list_airports(city_id)
    return JSONResponse(
        status_code=200,
        content=[_convert_airport_to_schema(airport).model_dump() for airport in airports]
    )


@router.post("/airports", response_model=Airport, status_code=201)
async def create_airport(
    request: CreateAirportRequest,
    admin: User = AdminUser,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Create an airport (admin only)."""
    airport = await CatalogService(db).create_airport(request)
    return JSONResponse(status_code=201, content=_convert_airport_to_schema(airport).model_dump())


@router.get("/airlines", response_model=list[Airline])
async def list_airlines(db: AsyncSession = DB_DEPENDENCY) -> JSONResponse:
    airlines = await CatalogService(db).list_airlines()
    return JSONResponse(
        status_code=200,
        content=[_convert_airline_to_schema(airline).model_dump() for airline in airlines]
    )


@router.post("/airlines", response_model=Airline, status_code=201)
async def create_airline(
    request: CreateAirlineRequest,
    admin: User = AdminUser,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Create an airline (admin only)."""
    airline = await CatalogService(db).create_airline(request)
    return JSONResponse(status_code=201, content=_convert_airline_to_schema(airline).model_dump())
