"""Khairat claim lifecycle service.

Every status change is a conditional UPDATE guarded by the status the
handler validated against, so two admins acting on the same claim cannot
silently overwrite each other: the loser gets a 409.
"""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from app.database import utcnow
from app.domain.claim_state import (
    CLAIM_STATUSES,
    DECIDABLE_STATUSES,
    assert_claim_transition,
)
from app.models.claim import Claim
from app.models.mosque import ContributionProgram, Mosque
from app.models.user import User
from app.schemas.claim import (
    ClaimApprove,
    ClaimCreate,
    ClaimMarkPaid,
    ClaimReject,
    ClaimStatusUpdate,
)
from app.services.audit_service import audit_service

logger = logging.getLogger(__name__)

SORTABLE_COLUMNS = {
    "created_at": Claim.created_at,
    "requested_amount": Claim.requested_amount,
    "status": Claim.status,
    "priority": Claim.priority,
}


def _append_note(existing: str | None, note: str) -> str:
    return f"{existing}\n{note}" if existing else note


class ClaimService:
    """Service for khairat claim decisions."""

    async def get_claim(self, db: AsyncSession, claim_id: UUID) -> Claim:
        """Load a claim with claimant, programme, approver and reviewer."""
        result = await db.execute(
            select(Claim)
            .where(Claim.id == claim_id)
            .options(
                selectinload(Claim.claimant),
                selectinload(Claim.program),
                selectinload(Claim.approver),
                selectinload(Claim.reviewer),
            )
            .execution_options(populate_existing=True)
        )
        claim = result.scalar_one_or_none()
        if not claim:
            raise NotFoundError("Claim")
        return claim

    async def _get_admin(
        self,
        db: AsyncSession,
        user_id: UUID,
        role_label: str,
        forbidden_message: str,
    ) -> User:
        user = await db.get(User, user_id)
        if not user:
            raise NotFoundError(role_label)
        if not user.is_admin:
            raise AuthorizationError(forbidden_message)
        return user

    async def update_if_status(
        self,
        db: AsyncSession,
        claim_id: UUID,
        expected_status: str,
        values: dict[str, Any],
    ) -> Claim:
        """Write ``values`` only if the claim still has ``expected_status``.

        Raises:
            ConflictError: The claim changed since it was read
        """
        result = await db.execute(
            update(Claim)
            .where(Claim.id == claim_id, Claim.status == expected_status)
            .values(**values, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            logger.warning(
                f"Conditional update lost race: claim={claim_id} expected_status={expected_status}"
            )
            raise ConflictError("Claim was modified by another request")
        return await self.get_claim(db, claim_id)

    async def create_claim(self, db: AsyncSession, data: ClaimCreate) -> Claim:
        """Submit a new claim (status=pending)."""
        if not await db.get(User, data.claimant_id):
            raise NotFoundError("Claimant")
        if not await db.get(Mosque, data.mosque_id):
            raise NotFoundError("Mosque")
        if data.program_id:
            program = await db.get(ContributionProgram, data.program_id)
            if not program or program.mosque_id != data.mosque_id:
                raise NotFoundError("Program")

        claim = Claim(
            mosque_id=data.mosque_id,
            program_id=data.program_id,
            claimant_id=data.claimant_id,
            title=data.title,
            description=data.description,
            priority=data.priority,
            requested_amount=data.requested_amount,
            status="pending",
        )
        db.add(claim)
        await db.flush()
        logger.info(f"Claim submitted: {claim.id} by {data.claimant_id}")
        return await self.get_claim(db, claim.id)

    async def list_claims(
        self,
        db: AsyncSession,
        mosque_id: UUID | None = None,
        claimant_id: UUID | None = None,
        status: str | None = None,
        priority: str | None = None,
        page: int = 1,
        limit: int = 20,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> tuple[list[Claim], int]:
        """List claims with filters and pagination."""
        filters = []
        if mosque_id:
            filters.append(Claim.mosque_id == mosque_id)
        if claimant_id:
            filters.append(Claim.claimant_id == claimant_id)
        if status:
            filters.append(Claim.status == status)
        if priority:
            filters.append(Claim.priority == priority)

        total = (await db.execute(select(func.count(Claim.id)).where(*filters))).scalar_one()

        column = SORTABLE_COLUMNS.get(sort_by, Claim.created_at)
        order = column.asc() if sort_order == "asc" else column.desc()
        result = await db.execute(
            select(Claim)
            .where(*filters)
            .options(
                selectinload(Claim.claimant),
                selectinload(Claim.program),
                selectinload(Claim.approver),
                selectinload(Claim.reviewer),
            )
            .order_by(order, Claim.id)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    async def approve(self, db: AsyncSession, claim_id: UUID, data: ClaimApprove) -> Claim:
        """Approve a pending or under-review claim."""
        approver = await self._get_admin(
            db, data.approved_by, "Approver", "Only admins can approve claims"
        )
        claim = await self.get_claim(db, claim_id)
        if claim.status not in DECIDABLE_STATUSES:
            raise ValidationError("Claim cannot be approved in current status")

        amount = data.approved_amount if data.approved_amount is not None else claim.requested_amount
        if amount <= 0:
            raise ValidationError("Invalid approved amount")
        if amount > claim.requested_amount:
            raise ValidationError("Approved amount cannot exceed claimed amount")

        previous = claim.status
        now = utcnow()
        values: dict[str, Any] = {
            "status": "approved",
            "approved_amount": amount,
            "approved_by": approver.id,
            "approved_at": now,
            "reviewed_by": approver.id,
            "reviewed_at": now,
        }
        if data.notes is not None:
            values["notes"] = data.notes

        claim = await self.update_if_status(db, claim_id, previous, values)
        await audit_service.log_claim_action(
            db, approver.id, "claim_approve", claim_id, previous, "approved", amount
        )
        logger.info(f"Claim {claim_id} approved by {approver.id} for {amount} sen")
        return claim

    async def reject(self, db: AsyncSession, claim_id: UUID, data: ClaimReject) -> Claim:
        """Reject a pending or under-review claim."""
        if not data.rejection_reason:
            raise ValidationError("Rejector ID and rejection reason are required")

        rejector = await self._get_admin(
            db, data.rejected_by, "Rejector", "Only admins can reject claims"
        )
        claim = await self.get_claim(db, claim_id)
        if claim.status not in DECIDABLE_STATUSES:
            raise ValidationError("Claim cannot be rejected in current status")

        previous = claim.status
        values: dict[str, Any] = {
            "status": "rejected",
            "rejection_reason": data.rejection_reason,
            "reviewed_by": rejector.id,
            "reviewed_at": utcnow(),
        }
        if data.notes is not None:
            values["notes"] = data.notes

        claim = await self.update_if_status(db, claim_id, previous, values)
        await audit_service.log_claim_action(
            db, rejector.id, "claim_reject", claim_id, previous, "rejected"
        )
        logger.info(f"Claim {claim_id} rejected by {rejector.id}")
        return claim

    async def mark_paid(self, db: AsyncSession, claim_id: UUID, data: ClaimMarkPaid) -> Claim:
        """Record payout of an approved claim."""
        marker = await self._get_admin(
            db, data.marked_by, "User", "Only admins can mark claims as paid"
        )
        claim = await self.get_claim(db, claim_id)
        if claim.status != "approved":
            raise ValidationError("Only approved claims can be marked as paid")

        note = f"Marked as paid: {data.notes}" if data.notes else "Marked as paid"
        claim = await self.update_if_status(
            db,
            claim_id,
            "approved",
            {
                "status": "paid",
                "paid_at": utcnow(),
                "notes": _append_note(claim.notes, note),
            },
        )
        await audit_service.log_claim_action(
            db, marker.id, "claim_mark_paid", claim_id, "approved", "paid", claim.approved_amount
        )
        logger.info(f"Claim {claim_id} marked as paid by {marker.id}")
        return claim

    async def update_status(
        self, db: AsyncSession, claim_id: UUID, data: ClaimStatusUpdate
    ) -> Claim:
        """Move a claim to any status the transition gate allows."""
        if data.status not in CLAIM_STATUSES:
            raise ValidationError("Invalid status")

        user = await self._get_admin(
            db, data.updated_by, "User", "Only admins can update claim status"
        )
        claim = await self.get_claim(db, claim_id)
        assert_claim_transition(claim.status, data.status)

        previous = claim.status
        now = utcnow()
        values: dict[str, Any] = {"status": data.status}
        if data.status in ("under_review", "rejected"):
            values.update(reviewed_by=user.id, reviewed_at=now)
        elif data.status == "approved":
            values.update(
                approved_amount=claim.approved_amount or claim.requested_amount,
                approved_by=user.id,
                approved_at=now,
                reviewed_by=user.id,
                reviewed_at=now,
            )
        elif data.status == "paid":
            values["paid_at"] = now
        if data.notes is not None:
            values["notes"] = data.notes

        claim = await self.update_if_status(db, claim_id, previous, values)
        await audit_service.log_claim_action(
            db, user.id, "claim_status_update", claim_id, previous, data.status
        )
        logger.info(f"Claim {claim_id} status {previous} -> {data.status} by {user.id}")
        return claim

    async def cancel(self, db: AsyncSession, claim_id: UUID, user_id: UUID) -> Claim:
        """Cancel an undecided claim; allowed for its claimant or an admin."""
        user = await db.get(User, user_id)
        if not user:
            raise NotFoundError("User")
        claim = await self.get_claim(db, claim_id)
        if claim.status not in DECIDABLE_STATUSES:
            raise ValidationError("Cannot cancel claim in current status")

        is_claimant = claim.claimant_id == user.id
        if not is_claimant and not user.is_admin:
            raise AuthorizationError("Unauthorized to cancel this claim")

        previous = claim.status
        actor = "member" if is_claimant else "admin"
        claim = await self.update_if_status(
            db,
            claim_id,
            previous,
            {
                "status": "cancelled",
                "notes": _append_note(
                    claim.notes, f"Cancelled by {actor} on {utcnow().isoformat()}"
                ),
            },
        )
        await audit_service.log_claim_action(
            db, user.id, "claim_cancel", claim_id, previous, "cancelled"
        )
        return claim


claim_service = ClaimService()
