"""
Idempotency key generation for processor calls.

Keys let the processor deduplicate retried requests.  Transfers are keyed
by the sale they settle, so a transfer retried after a lost response can
never pay the same sale twice.
"""

from uuid import UUID


def generate_idempotency_key(
    producer: str,
    operation: str,
    subject_id: UUID | str,
) -> str:
    """
    Generate an idempotency key.

    Format: producer:operation:subject_id

    Example:
        >>> generate_idempotency_key("settlement", "transfer", sale_id)
        "settlement:transfer:550e8400-e29b-41d4-a716-446655440000"
    """
    return f"{producer}:{operation}:{subject_id}"

