"""Domain models for the commission kernel."""

from commission_kernel.models.commission_sale import (
    CommissionSale,
    SaleStatus,
    Transfer,
)
from commission_kernel.models.tenant_account import (
    AccountKind,
    TenantAccount,
    TenantStatus,
)

__all__ = [
    "AccountKind",
    "CommissionSale",
    "SaleStatus",
    "TenantAccount",
    "TenantStatus",
    "Transfer",
]
