"""Contribution service."""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError
from app.models.contribution import Contribution
from app.models.mosque import ContributionProgram, Mosque
from app.models.user import User
from app.schemas.contribution import ContributionCreate

logger = logging.getLogger(__name__)


class ContributionService:
    """Service for member contributions."""

    async def get_contribution(
        self,
        db: AsyncSession,
        contribution_id: UUID,
        mosque_id: UUID | None = None,
    ) -> Contribution:
        query = select(Contribution).where(Contribution.id == contribution_id)
        if mosque_id:
            query = query.where(Contribution.mosque_id == mosque_id)
        contribution = (await db.execute(query)).scalar_one_or_none()
        if not contribution:
            raise NotFoundError("Contribution")
        return contribution

    async def create_contribution(
        self, db: AsyncSession, data: ContributionCreate
    ) -> Contribution:
        """Create a pending contribution awaiting gateway payment."""
        if not await db.get(Mosque, data.mosque_id):
            raise NotFoundError("Mosque")
        if data.program_id:
            program = await db.get(ContributionProgram, data.program_id)
            if not program or program.mosque_id != data.mosque_id:
                raise NotFoundError("Program")

        contributor_name = data.contributor_name
        if data.contributor_id:
            contributor = await db.get(User, data.contributor_id)
            if not contributor:
                raise NotFoundError("Contributor")
            contributor_name = contributor_name or contributor.full_name

        contribution = Contribution(
            mosque_id=data.mosque_id,
            program_id=data.program_id,
            contributor_id=data.contributor_id,
            contributor_name=contributor_name,
            amount=data.amount,
            status="pending",
            notes=data.notes,
        )
        db.add(contribution)
        await db.flush()
        logger.info(f"Contribution created: {contribution.id} ({data.amount} sen)")
        return contribution


contribution_service = ContributionService()
