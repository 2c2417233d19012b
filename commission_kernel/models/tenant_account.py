"""
Module: commission_kernel.models.tenant_account
Responsibility: ORM persistence for merchant tenants that receive payments
    through the platform's processor relationship.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Exactly one TenantAccount per platform user (uq_tenant_user).
    - account_ref is globally unique (uq_tenant_account_ref).
    - account_kind is an explicit tag (REAL / VIRTUAL); code MUST branch on
      it, never on the shape of account_ref.
    - can_split / can_manual_transfer are set at creation by the
      jurisdiction rule and only change through explicit re-onboarding.
    - Rows are never hard-deleted; status DISABLED retires a tenant.

Failure modes:
    - IntegrityError on duplicate user_id (concurrent registration race).
"""

from decimal import Decimal
from enum import Enum

from sqlalchemy import Boolean, CheckConstraint, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from commission_kernel.db.base import TrackedBase


class AccountKind(str, Enum):
    """Whether the tenant has a real processor sub-account."""

    REAL = "real"
    VIRTUAL = "virtual"  # Locally synthesized; settled by manual transfer


class TenantStatus(str, Enum):
    """Tenant lifecycle status.

    PENDING -> ACTIVE once processor onboarding completes (real accounts).
    Virtual accounts start ACTIVE.  DISABLED is terminal for new payments.
    """

    PENDING = "pending"
    ACTIVE = "active"
    DISABLED = "disabled"


class TenantAccount(TrackedBase):
    """
    Merchant tenant whose sales are processed through the platform.

    Guarantees:
        - user_id is unique (one account per platform user).
        - commission_rate, when set, lies in [0, 1] (ck_tenant_rate_range).
        - A NULL commission_rate means the configured default applies.
    """

    __tablename__ = "tenant_accounts"

    __table_args__ = (
        UniqueConstraint("user_id", name="uq_tenant_user"),
        UniqueConstraint("account_ref", name="uq_tenant_account_ref"),
        CheckConstraint(
            "commission_rate IS NULL OR "
            "(commission_rate >= 0 AND commission_rate <= 1)",
            name="ck_tenant_rate_range",
        ),
        Index("idx_tenant_can_split", "can_split"),
        Index("idx_tenant_status", "status"),
    )

    # Processor account id, or synthetic id for virtual accounts
    account_ref: Mapped[str] = mapped_column(String(100), nullable=False)

    # Owning platform user (from the external auth provider)
    user_id: Mapped[str] = mapped_column(String(100), nullable=False)

    business_name: Mapped[str] = mapped_column(String(255), nullable=False)

    email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # ISO 3166-1 alpha-2
    country: Mapped[str] = mapped_column(String(2), nullable=False)

    currency: Mapped[str] = mapped_column(String(3), nullable=False)

    commission_rate: Mapped[Decimal | None] = mapped_column(nullable=True)

    account_kind: Mapped[AccountKind] = mapped_column(String(10), nullable=False)

    can_split: Mapped[bool] = mapped_column(Boolean, nullable=False)

    can_manual_transfer: Mapped[bool] = mapped_column(Boolean, nullable=False)

    status: Mapped[TenantStatus] = mapped_column(
        String(10),
        nullable=False,
        default=TenantStatus.PENDING,
    )

    onboarding_completed: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )

    @property
    def is_virtual(self) -> bool:
        return self.account_kind == AccountKind.VIRTUAL

    def __repr__(self) -> str:
        return (
            f"<TenantAccount {self.account_ref} user={self.user_id} "
            f"({self.account_kind}, {self.status})>"
        )
