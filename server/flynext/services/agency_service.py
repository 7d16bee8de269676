"""Agency service for issuing and revoking agency API keys."""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import NotFoundError
from ..core.security import generate_api_key
from ..models.agency import Agency
from ..schemas.auth import CreateAgencyRequest

logger = logging.getLogger(__name__)


class AgencyService:
    """Service for agency-related operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_agencies(self) -> list[Agency]:
        result = await self.db.execute(select(Agency).order_by(Agency.name))
        return list(result.scalars().all())

    async def create_agency(self, request: CreateAgencyRequest) -> Agency:
        """Register an agency and issue its API key."""
        agency = Agency(name=request.name, api_key=generate_api_key(), is_active=True)

        self.db.add(agency)
        await self.db.commit()
        await self.db.refresh(agency)

        logger.info("Agency created", extra={"agency_id": str(agency.id), "name": agency.name})
        return agency

    async def deactivate_agency(self, agency_id: UUID) -> Agency:
        """
        Revoke an agency's API key.

        Raises:
            NotFoundError: If the agency does not exist
        """
        agency = await self.db.get(Agency, agency_id)
        if agency is None:
            raise NotFoundError("agency", str(agency_id))

        agency.is_active = False
        await self.db.commit()
        await self.db.refresh(agency)

        logger.info("Agency deactivated", extra={"agency_id": str(agency.id)})
        return agency
