"""Deterministic idempotency keys for gateway callbacks.

A callback is identified by (gateway, bill reference, target status): the
gateway may deliver it many times, and every delivery maps to the same key.
"""

import hashlib
import json
from typing import Any
from uuid import UUID


def generate_idempotency_key(
    operation: str,
    entity_id: UUID | str,
    params: dict[str, Any] | None = None,
) -> str:
    """Generate a deterministic idempotency key.

    Args:
        operation: Operation name (e.g., "billplz_callback")
        entity_id: Primary entity ID
        params: Additional parameters to include in key

    Returns:
        SHA256 hash of operation + entity + params
    """
    key_data = {
        "operation": operation,
        "entity_id": str(entity_id),
        "params": params or {},
    }
    key_str = json.dumps(key_data, sort_keys=True)
    return hashlib.sha256(key_str.encode()).hexdigest()


def callback_idempotency_key(gateway: str, reference: str, target_status: str) -> str:
    """Key shared by every delivery of the same gateway status update."""
    return generate_idempotency_key(
        f"{gateway}_callback",
        reference,
        {"status": target_status},
    )
