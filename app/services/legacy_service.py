"""Legacy record reconciliation.

Matching creates a completed contribution for the historical payment and
links it to the record; unmatching reverses both. All writes share the
request transaction, so a failure anywhere leaves nothing behind.
"""

import logging
from datetime import UTC, datetime, time
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, ValidationError
from app.models.contribution import Contribution
from app.models.legacy import LegacyRecord
from app.models.mosque import ContributionProgram
from app.models.user import User
from app.schemas.legacy import (
    LegacyBulkMatchRequest,
    LegacyBulkUnmatchRequest,
    LegacyMatchRequest,
    LegacyUnmatchRequest,
)
from app.services.audit_service import audit_service

logger = logging.getLogger(__name__)


class LegacyService:
    """Service for legacy record matching."""

    async def _get_user(self, db: AsyncSession, user_id: UUID) -> User:
        user = await db.get(User, user_id)
        if not user:
            raise NotFoundError("User")
        return user

    async def _check_program(
        self, db: AsyncSession, program_id: UUID | None, mosque_ids: set[UUID]
    ) -> None:
        if not program_id:
            return
        program = await db.get(ContributionProgram, program_id)
        if not program:
            raise NotFoundError("Program")
        if mosque_ids - {program.mosque_id}:
            raise ValidationError("Program does not belong to the legacy record's mosque")

    async def _get_records(self, db: AsyncSession, ids: list[UUID]) -> tuple[list[LegacyRecord], list[UUID]]:
        result = await db.execute(select(LegacyRecord).where(LegacyRecord.id.in_(ids)))
        records = list(result.scalars().all())
        found = {record.id for record in records}
        missing = [record_id for record_id in dict.fromkeys(ids) if record_id not in found]
        return records, missing

    async def _link(
        self,
        db: AsyncSession,
        record: LegacyRecord,
        user_id: UUID,
        program_id: UUID | None,
    ) -> Contribution:
        contribution = Contribution(
            mosque_id=record.mosque_id,
            program_id=program_id,
            contributor_id=user_id,
            contributor_name=record.full_name,
            amount=record.amount,
            payment_method="legacy_record",
            payment_reference=record.invoice_number,
            status="completed",
            contributed_at=datetime.combine(record.payment_date, time.min, tzinfo=UTC),
            notes=f"Matched from legacy record: {record.full_name}",
        )
        db.add(contribution)
        await db.flush()

        record.matched_user_id = user_id
        record.contribution_id = contribution.id
        record.is_matched = True
        await audit_service.log_legacy_action(db, "legacy_match", record.id, user_id, contribution.id)
        return contribution

    async def _unlink(self, db: AsyncSession, record: LegacyRecord) -> UUID | None:
        contribution_id = record.contribution_id
        user_id = record.matched_user_id
        record.matched_user_id = None
        record.contribution_id = None
        record.is_matched = False
        # Drop the foreign key reference before the contribution goes
        await db.flush()
        if contribution_id:
            await db.execute(delete(Contribution).where(Contribution.id == contribution_id))
            await audit_service.log_legacy_action(
                db, "legacy_unmatch", record.id, user_id, contribution_id
            )
        return contribution_id

    async def match(
        self, db: AsyncSession, data: LegacyMatchRequest
    ) -> tuple[LegacyRecord, Contribution]:
        """Link one legacy record to a user."""
        record = await db.get(LegacyRecord, data.legacy_record_id)
        if not record:
            raise NotFoundError("Legacy record")
        if record.mosque_id != data.mosque_id:
            raise ValidationError("Legacy record does not belong to this mosque")
        if record.is_matched:
            raise ValidationError("Legacy record is already matched")

        user = await self._get_user(db, data.user_id)
        await self._check_program(db, data.program_id, {record.mosque_id})

        contribution = await self._link(db, record, user.id, data.program_id)
        await db.flush()
        logger.info(f"Legacy record {record.id} matched to user {user.id}")
        return record, contribution

    async def unmatch(self, db: AsyncSession, data: LegacyUnmatchRequest) -> LegacyRecord:
        """Unlink a legacy record and delete its synthesised contribution."""
        record = await db.get(LegacyRecord, data.legacy_record_id)
        if not record:
            raise NotFoundError("Legacy record")
        await self._unlink(db, record)
        logger.info(f"Legacy record {record.id} unmatched")
        return record

    async def bulk_match(
        self, db: AsyncSession, data: LegacyBulkMatchRequest
    ) -> list[LegacyRecord]:
        """Link many legacy records to one user, all or nothing."""
        records, missing = await self._get_records(db, data.legacy_record_ids)
        if missing:
            raise NotFoundError(
                "Some legacy records", extra={"not_found_ids": [str(i) for i in missing]}
            )

        already_matched = [record for record in records if record.is_matched]
        if already_matched:
            raise ValidationError(f"{len(already_matched)} record(s) are already matched")

        user = await self._get_user(db, data.user_id)
        await self._check_program(db, data.program_id, {record.mosque_id for record in records})

        for record in records:
            await self._link(db, record, user.id, data.program_id)
        await db.flush()
        logger.info(f"Bulk matched {len(records)} legacy records to user {user.id}")
        return records

    async def bulk_unmatch(
        self, db: AsyncSession, data: LegacyBulkUnmatchRequest
    ) -> list[LegacyRecord]:
        """Unlink many legacy records, all or nothing."""
        records, missing = await self._get_records(db, data.legacy_record_ids)
        if missing:
            raise NotFoundError(
                "Some legacy records", extra={"not_found_ids": [str(i) for i in missing]}
            )

        for record in records:
            await self._unlink(db, record)
        logger.info(f"Bulk unmatched {len(records)} legacy records")
        return records


legacy_service = LegacyService()
