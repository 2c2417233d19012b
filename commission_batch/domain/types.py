"""
commission_batch.domain.types -- Pure frozen dataclasses for settlement runs.

ZERO I/O.  Frozen dataclasses with enum status fields and tuples for
immutable collections.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from uuid import UUID


class SettlementItemStatus(str, Enum):
    """Per-sale outcome within a settlement run."""

    TRANSFERRED = "transferred"
    FAILED = "failed"
    SKIPPED = "skipped"  # Virtual tenant, nothing to transfer to yet


@dataclass(frozen=True)
class SettlementItem:
    """Result of settling one sale."""

    sale_id: UUID
    session_id: str
    account_ref: str
    business_name: str
    amount: int
    currency: str
    status: SettlementItemStatus
    transfer_ref: str | None = None
    reason: str | None = None
    error_code: str | None = None


@dataclass(frozen=True)
class SettlementReport:
    """Outcome of one reconciler run.

    ``transfers`` holds the successful items, ``failures`` the items whose
    transfer or bookkeeping failed (left untransferred for the next run),
    ``skipped`` the items that cannot be settled yet.
    """

    run_id: UUID
    started_at: datetime
    completed_at: datetime
    transfers: tuple[SettlementItem, ...] = ()
    failures: tuple[SettlementItem, ...] = ()
    skipped: tuple[SettlementItem, ...] = ()
    dry_run: bool = False

    @property
    def transfer_count(self) -> int:
        return len(self.transfers)

    @property
    def total_amount(self) -> int:
        """Sum of transferred amounts in minor units (all currencies)."""
        return sum(item.amount for item in self.transfers)

    def totals_by_currency(self) -> dict[str, int]:
        totals: dict[str, int] = {}
        for item in self.transfers:
            totals[item.currency] = totals.get(item.currency, 0) + item.amount
        return totals

    @property
    def processed_count(self) -> int:
        return len(self.transfers) + len(self.failures) + len(self.skipped)

    @property
    def has_failures(self) -> bool:
        return bool(self.failures)
