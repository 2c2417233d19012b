"""
PlatformPolicy -- kernel-side view of platform configuration.

Responsibility:
    Carries the values the kernel services need (default commission rate,
    jurisdiction rule, onboarding URLs, settlement pacing) as one frozen
    object injected at construction.  The kernel never reads config files
    or environment variables; ``commission_config.bridges`` builds this
    from the loaded YAML.

Architecture position:
    Kernel > Domain -- pure data, zero I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from commission_kernel.domain.commission import to_rate


@dataclass(frozen=True)
class PlatformPolicy:
    """Injected platform settings."""

    default_commission_rate: Decimal = Decimal("0.05")
    split_countries: frozenset[str] = field(
        default_factory=lambda: frozenset({"US", "GB", "CA", "AU", "DE", "FR", "ES", "MX", "BR"})
    )
    virtual_account_prefix: str = "{country}_virtual_"
    onboarding_return_url: str = "http://localhost:3000/onboarding/complete"
    onboarding_refresh_url: str = "http://localhost:3000/onboarding/refresh"
    default_currency: str = "usd"
    transfer_pacing_seconds: float = 1.0

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "default_commission_rate", to_rate(self.default_commission_rate)
        )
        object.__setattr__(
            self,
            "split_countries",
            frozenset(c.upper() for c in self.split_countries),
        )

    def supports_split(self, country: str) -> bool:
        """Jurisdiction rule: can tenants in ``country`` receive split payments?"""
        return country.upper() in self.split_countries

    def virtual_prefix_for(self, country: str) -> str:
        return self.virtual_account_prefix.format(country=country.lower())
