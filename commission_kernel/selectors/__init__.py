"""Selectors for the commission kernel (read side)."""

from commission_kernel.selectors.sale_selector import (
    CommissionTotal,
    PendingSettlement,
    SaleSelector,
    TenantSalesSummary,
)

__all__ = [
    "SaleSelector",
    "PendingSettlement",
    "TenantSalesSummary",
    "CommissionTotal",
]
