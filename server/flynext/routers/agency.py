"""Agency router: administrators issue and revoke agency API keys."""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db
from ..core.dependencies import AdminUser
from ..models.agency import Agency
from ..models.user import User
from ..schemas.auth import AgencyCredentials, CreateAgencyRequest
from ..services.agency_service import AgencyService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/agencies", tags=["agencies"])

DB_DEPENDENCY = Depends(get_db)


def _convert_agency_to_schema(agency_model: Agency) -> AgencyCredentials:
    return AgencyCredentials(
        id=str(agency_model.id),
        name=agency_model.name,
        api_key=agency_model.api_key,
        is_active=agency_model.is_active
    )


@router.get("", response_model=list[AgencyCredentials])
async def list_agencies(admin: User = AdminUser, db: AsyncSession = DB_DEPENDENCY) -> JSONResponse:
    agencies = await AgencyService(db).list_agencies()
    return JSONResponse(
        status_code=200,
        content=[_convert_agency_to_schema(agency).model_dump() for agency in agencies]
    )


@router.post("", response_model=AgencyCredentials, status_code=201)
async def create_agency(
    request: CreateAgencyRequest,
    admin: User = AdminUser,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Register an agency and return its API key."""
    agency = await AgencyService(db).create_agency(request)
    logger.info("Agency API key issued", extra={"agency_id": str(agency.id), "admin_id": str(admin.id)})
    return JSONResponse(status_code=201, content=_convert_agency_to_schema(agency).model_dump())


@router.delete("/{agency_id}", response_model=AgencyCredentials)
async def deactivate_agency(
    agency_id: UUID,
    admin: User = AdminUser,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Revoke an agency's API key; its bookings are kept."""
    agency = await AgencyService(db).deactivate_agency(agency_id)
    return JSONResponse(status_code=200, content=_convert_agency_to_schema(agency).model_dump())
