"""
Immutable DTOs returned by kernel services.

Services return these instead of ORM entities so callers never hold a
session-bound object outside the transaction that loaded it.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from commission_kernel.domain.commission import CommissionSplit
from commission_kernel.models.commission_sale import CommissionSale, SaleStatus
from commission_kernel.models.tenant_account import (
    AccountKind,
    TenantAccount,
    TenantStatus,
)


@dataclass(frozen=True)
class TenantAccountInfo:
    """Snapshot of a tenant account."""

    id: UUID
    account_ref: str
    user_id: str
    business_name: str
    email: str | None
    country: str
    currency: str
    commission_rate: Decimal | None
    account_kind: AccountKind
    can_split: bool
    can_manual_transfer: bool
    status: TenantStatus
    onboarding_completed: bool

    @property
    def is_virtual(self) -> bool:
        return self.account_kind == AccountKind.VIRTUAL

    @classmethod
    def from_model(cls, account: TenantAccount) -> TenantAccountInfo:
        return cls(
            id=account.id,
            account_ref=account.account_ref,
            user_id=account.user_id,
            business_name=account.business_name,
            email=account.email,
            country=account.country,
            currency=account.currency,
            commission_rate=account.commission_rate,
            account_kind=AccountKind(account.account_kind),
            can_split=account.can_split,
            can_manual_transfer=account.can_manual_transfer,
            status=TenantStatus(account.status),
            onboarding_completed=account.onboarding_completed,
        )


@dataclass(frozen=True)
class RegistrationResult:
    """Outcome of tenant registration."""

    account: TenantAccountInfo
    onboarding_url: str | None = None

    @property
    def requires_onboarding(self) -> bool:
        return not self.account.onboarding_completed


@dataclass(frozen=True)
class SessionHandle:
    """A created checkout session together with its commission split."""

    session_id: str
    url: str
    payment_intent_id: str | None
    tenant_ref: str
    currency: str
    split: CommissionSplit
    description: str | None = None
    customer_email: str | None = None


@dataclass(frozen=True)
class CommissionSaleInfo:
    """Snapshot of a commission sale."""

    id: UUID
    tenant_account_id: UUID
    session_id: str
    payment_intent_id: str | None
    amount_total: int
    commission_amount: int
    net_amount: int
    currency: str
    status: SaleStatus
    transfer_id: str | None
    completed_at: datetime | None

    @classmethod
    def from_model(cls, sale: CommissionSale) -> CommissionSaleInfo:
        return cls(
            id=sale.id,
            tenant_account_id=sale.tenant_account_id,
            session_id=sale.session_id,
            payment_intent_id=sale.payment_intent_id,
            amount_total=sale.amount_total,
            commission_amount=sale.commission_amount,
            net_amount=sale.net_amount,
            currency=sale.currency,
            status=SaleStatus(sale.status),
            transfer_id=sale.transfer_id,
            completed_at=sale.completed_at,
        )


class RecordStatus(str, Enum):
    """Outcome of a sale record attempt."""

    RECORDED = "recorded"
    DUPLICATE = "duplicate"  # Idempotent success


@dataclass(frozen=True)
class RecordResult:
    """Result of ``SaleRecordStore.record_sale``."""

    status: RecordStatus
    sale: CommissionSaleInfo

    @property
    def is_duplicate(self) -> bool:
        return self.status == RecordStatus.DUPLICATE


@dataclass(frozen=True)
class PaymentResult:
    """Session plus recorded sale, returned by the platform facade."""

    handle: SessionHandle
    record: RecordResult
