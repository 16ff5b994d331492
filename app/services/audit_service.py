"""Khairat audit trail service."""

from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.admin import AuditLog


class AuditService:
    """Service for immutable audit logging."""

    async def log_action(
        self,
        db: AsyncSession,
        user_id: UUID | None,
        action: str,
        resource_type: str,
        resource_id: UUID | None,
        old_values: dict[str, Any] | None = None,
        new_values: dict[str, Any] | None = None,
    ) -> AuditLog:
        """Log an action (immutable).

        Args:
            db: Database session
            user_id: User performing the action
            action: Action name (e.g., "claim_approve")
            resource_type: Resource type (e.g., "claim", "legacy_record")
            resource_id: Resource ID
            old_values: Previous state
            new_values: New state

        Returns:
            Created audit log entry
        """
        audit = AuditLog(
            user_id=user_id,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            old_values=old_values,
            new_values=new_values,
        )
        db.add(audit)
        return audit

    async def log_claim_action(
        self,
        db: AsyncSession,
        user_id: UUID,
        action: str,
        claim_id: UUID,
        old_status: str,
        new_status: str,
        amount: int | None = None,
    ) -> AuditLog:
        """Log claim status change."""
        return await self.log_action(
            db=db,
            user_id=user_id,
            action=action,
            resource_type="claim",
            resource_id=claim_id,
            old_values={"status": old_status},
            new_values={"status": new_status, "amount": amount} if amount else {"status": new_status},
        )

    async def log_legacy_action(
        self,
        db: AsyncSession,
        action: str,
        legacy_record_id: UUID,
        user_id: UUID | None,
        contribution_id: UUID | None,
    ) -> AuditLog:
        """Log legacy record match/unmatch."""
        values = {
            "matched_user_id": str(user_id) if user_id else None,
            "contribution_id": str(contribution_id) if contribution_id else None,
        }
        return await self.log_action(
            db=db,
            user_id=user_id,
            action=action,
            resource_type="legacy_record",
            resource_id=legacy_record_id,
            new_values=values if action == "legacy_match" else None,
            old_values=values if action == "legacy_unmatch" else None,
        )


audit_service = AuditService()
