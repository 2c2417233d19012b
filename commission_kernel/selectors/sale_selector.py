"""
Module: commission_kernel.selectors.sale_selector
Responsibility: Read-only queries over commission sales: the settlement
    work list for the reconciler, and per-tenant sales statistics.
Architecture position: Kernel > Selectors.  May import from models/ and
    selectors/base.py.

Invariants enforced:
    - A sale is pending settlement iff it is COMPLETED, has no transfer_id,
      and belongs to a tenant without split capability.  Split-capable
      tenants are paid by the processor at charge time and never appear.
      Sales with a zero net amount (100% commission) have nothing to settle.
    - Totals are derived from sale rows at query time; nothing is stored.

Failure modes:
    - Returns empty lists / zero totals when no rows match.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from sqlalchemy import and_, func, select
from sqlalchemy.orm import Session

from commission_kernel.models.commission_sale import CommissionSale, SaleStatus
from commission_kernel.models.tenant_account import AccountKind, TenantAccount
from commission_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class PendingSettlement:
    """A completed sale whose net amount still has to be transferred."""

    sale_id: UUID
    session_id: str
    payment_intent_id: str | None
    net_amount: int
    currency: str
    tenant_account_id: UUID
    account_ref: str
    account_kind: AccountKind
    business_name: str
    completed_at: datetime | None

    @property
    def is_virtual(self) -> bool:
        return self.account_kind == AccountKind.VIRTUAL


@dataclass(frozen=True)
class TenantSalesSummary:
    """Sales statistics for one tenant (completed sales only)."""

    tenant_account_id: UUID
    sale_count: int
    total_revenue: int
    total_commission: int
    total_net: int
    unsettled_count: int


@dataclass(frozen=True)
class CommissionTotal:
    """Commission earned by the platform from one tenant, per currency."""

    tenant_account_id: UUID
    account_ref: str
    business_name: str
    currency: str
    sale_count: int
    total_commission: int


class SaleSelector(BaseSelector[CommissionSale]):
    """Selector for settlement work lists and sales statistics."""

    def __init__(self, session: Session):
        super().__init__(session)

    def pending_settlement(
        self,
        limit: int | None = None,
        account_kind: AccountKind | None = None,
    ) -> list[PendingSettlement]:
        """
        Completed, untransferred sales of tenants that cannot split.

        ``account_kind`` narrows the list to real tenants (transferable now)
        or virtual ones (waiting for re-onboarding); ``limit`` applies after
        that filter.

        Ordered by completion time, oldest first, so a paced run settles
        the longest-waiting tenants first.
        """
        query = (
            select(CommissionSale, TenantAccount)
            .join(TenantAccount, CommissionSale.tenant_account_id == TenantAccount.id)
            .where(
                CommissionSale.status == SaleStatus.COMPLETED.value,
                CommissionSale.transfer_id.is_(None),
                TenantAccount.can_split.is_(False),
                CommissionSale.net_amount > 0,
            )
            .order_by(CommissionSale.completed_at, CommissionSale.created_at)
        )
        if account_kind is not None:
            query = query.where(TenantAccount.account_kind == AccountKind(account_kind).value)
        if limit is not None:
            query = query.limit(limit)

        return [
            PendingSettlement(
                sale_id=sale.id,
                session_id=sale.session_id,
                payment_intent_id=sale.payment_intent_id,
                net_amount=sale.net_amount,
                currency=sale.currency,
                tenant_account_id=tenant.id,
                account_ref=tenant.account_ref,
                account_kind=AccountKind(tenant.account_kind),
                business_name=tenant.business_name,
                completed_at=sale.completed_at,
            )
            for sale, tenant in self.session.execute(query).all()
        ]

    def tenant_summary(self, tenant_account_id: UUID) -> TenantSalesSummary:
        """Count and totals over a tenant's completed sales."""
        row = self.session.execute(
            select(
                func.count(CommissionSale.id),
                func.coalesce(func.sum(CommissionSale.amount_total), 0),
                func.coalesce(func.sum(CommissionSale.commission_amount), 0),
                func.coalesce(func.sum(CommissionSale.net_amount), 0),
                func.count(CommissionSale.id).filter(
                    and_(
                        CommissionSale.transfer_id.is_(None),
                        TenantAccount.can_split.is_(False),
                    )
                ),
            )
            .join(TenantAccount, CommissionSale.tenant_account_id == TenantAccount.id)
            .where(
                CommissionSale.tenant_account_id == tenant_account_id,
                CommissionSale.status == SaleStatus.COMPLETED.value,
            )
        ).one()
        count, revenue, commission, net, unsettled = row
        return TenantSalesSummary(
            tenant_account_id=tenant_account_id,
            sale_count=int(count),
            total_revenue=int(revenue),
            total_commission=int(commission),
            total_net=int(net),
            unsettled_count=int(unsettled),
        )

    def commission_totals(self) -> list[CommissionTotal]:
        """Platform commission per tenant and currency, highest first."""
        total = func.sum(CommissionSale.commission_amount)
        query = (
            select(
                TenantAccount.id,
                TenantAccount.account_ref,
                TenantAccount.business_name,
                CommissionSale.currency,
                func.count(CommissionSale.id),
                total,
            )
            .join(TenantAccount, CommissionSale.tenant_account_id == TenantAccount.id)
            .where(CommissionSale.status == SaleStatus.COMPLETED.value)
            .group_by(
                TenantAccount.id,
                TenantAccount.account_ref,
                TenantAccount.business_name,
                CommissionSale.currency,
            )
            .order_by(total.desc(), TenantAccount.account_ref)
        )
        return [
            CommissionTotal(
                tenant_account_id=tenant_id,
                account_ref=account_ref,
                business_name=business_name,
                currency=currency,
                sale_count=int(count),
                total_commission=int(commission),
            )
            for tenant_id, account_ref, business_name, currency, count, commission
            in self.session.execute(query).all()
        ]
