"""
commission_batch -- settlement of sales collected on the platform balance.

Tenants without split capability are paid by a periodic run of
``ManualSettlementReconciler``, which transfers each completed sale's net
amount and records the transfer.
"""

from commission_batch.domain.types import (
    SettlementItem,
    SettlementItemStatus,
    SettlementReport,
)
from commission_batch.services.reconciler import ManualSettlementReconciler

__all__ = [
    "ManualSettlementReconciler",
    "SettlementItem",
    "SettlementItemStatus",
    "SettlementReport",
]
