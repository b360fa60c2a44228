"""
Idempotency key generation for ledger posting requests.

The ledger uses the key to reject a second posting of the same document
transition, even when the save is retried.
"""

from uuid import UUID


def generate_idempotency_key(
    producer: str,
    event_type: str,
    event_id: UUID | str,
) -> str:
    """
    Generate an idempotency key.

    Format: producer:event_type:event_id

    Example:
        >>> generate_idempotency_key("charter", "receipt.paid", uuid)
        "charter:receipt.paid:550e8400-e29b-41d4-a716-446655440000"
    """
    return f"{producer}:{event_type}:{event_id}"
