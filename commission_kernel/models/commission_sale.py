"""
Module: commission_kernel.models.commission_sale
Responsibility: ORM persistence for one commission-tracked sale per checkout
    attempt, and for the manual transfers that settle non-split sales.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - amount_total = commission_amount + net_amount (ck_sale_split_balanced).
    - At most one row per checkout attempt: session_id is UNIQUE, and
      payment_intent_id is UNIQUE when non-NULL (NULLs never collide).
      These constraints are the only cross-request coordination primitive;
      the sale store relies on them instead of read-then-write checks.
    - A sale is settled by at most one Transfer (uq_transfer_sale).

Failure modes:
    - IntegrityError on duplicate session_id / payment_intent_id.
    - IntegrityError on a second Transfer for the same sale.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from commission_kernel.db.base import TrackedBase, UUIDString
from commission_kernel.models.tenant_account import TenantAccount


class SaleStatus(str, Enum):
    """Sale lifecycle: PENDING -> COMPLETED | FAILED."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class CommissionSale(TrackedBase):
    """
    A checkout attempt with its commission split.

    Amounts are integers in minor currency units (cents).  The split is
    computed once, when the session is built, and never recalculated.
    """

    __tablename__ = "commission_sales"

    __table_args__ = (
        UniqueConstraint("session_id", name="uq_sale_session"),
        UniqueConstraint("payment_intent_id", name="uq_sale_payment_intent"),
        CheckConstraint(
            "amount_total = commission_amount + net_amount",
            name="ck_sale_split_balanced",
        ),
        CheckConstraint("amount_total > 0", name="ck_sale_amount_positive"),
        CheckConstraint(
            "commission_amount >= 0 AND net_amount >= 0",
            name="ck_sale_split_non_negative",
        ),
        Index("idx_sale_tenant", "tenant_account_id"),
        Index("idx_sale_settlement", "status", "transfer_id"),
    )

    tenant_account_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("tenant_accounts.id"),
        nullable=False,
    )

    session_id: Mapped[str] = mapped_column(String(255), nullable=False)

    payment_intent_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    amount_total: Mapped[int] = mapped_column(nullable=False)

    commission_amount: Mapped[int] = mapped_column(nullable=False)

    net_amount: Mapped[int] = mapped_column(nullable=False)

    currency: Mapped[str] = mapped_column(String(3), nullable=False)

    description: Mapped[str | None] = mapped_column(String(500), nullable=True)

    customer_email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    status: Mapped[SaleStatus] = mapped_column(
        String(10),
        nullable=False,
        default=SaleStatus.PENDING,
    )

    # Set by the settlement reconciler once the manual transfer succeeds
    transfer_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    tenant_account: Mapped[TenantAccount] = relationship()

    def __repr__(self) -> str:
        return (
            f"<CommissionSale {self.session_id} {self.amount_total} "
            f"{self.currency} ({self.status})>"
        )


class Transfer(TrackedBase):
    """
    Processor transfer paying a sale's net amount to its tenant.

    Created only for tenants without split capability, and only after the
    processor confirmed the transfer.
    """

    __tablename__ = "transfers"

    __table_args__ = (
        UniqueConstraint("transfer_ref", name="uq_transfer_ref"),
        UniqueConstraint("sale_id", name="uq_transfer_sale"),
        CheckConstraint("amount > 0", name="ck_transfer_amount_positive"),
    )

    # Processor transfer id
    transfer_ref: Mapped[str] = mapped_column(String(255), nullable=False)

    sale_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("commission_sales.id"),
        nullable=False,
    )

    destination: Mapped[str] = mapped_column(String(100), nullable=False)

    amount: Mapped[int] = mapped_column(nullable=False)

    currency: Mapped[str] = mapped_column(String(3), nullable=False)

    def __repr__(self) -> str:
        return f"<Transfer {self.transfer_ref} {self.amount} {self.currency}>"
