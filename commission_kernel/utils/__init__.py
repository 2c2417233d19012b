"""Utility modules for the commission kernel."""

from commission_kernel.utils.idempotency import generate_idempotency_key

__all__ = [
    "generate_idempotency_key",
]
