"""
Config -> Kernel bridges.

Converts the loaded ``PlatformConfig`` into kernel inputs.  These live in
commission_config (the producer) because the kernel must never import
commission_config.

Usage:
    from commission_config import get_active_config
    from commission_config.bridges import build_platform_policy

    policy = build_platform_policy(get_active_config())
"""

from __future__ import annotations

from commission_config.schema import PlatformConfig
from commission_kernel.domain.policy import PlatformPolicy


def build_platform_policy(config: PlatformConfig) -> PlatformPolicy:
    """Build the kernel's PlatformPolicy from the loaded configuration.

    Raises:
        InvalidCommissionRateError: If the configured default rate lies
            outside [0, 1].
    """
    return PlatformPolicy(
        default_commission_rate=config.commission.default_rate,
        split_countries=frozenset(config.jurisdiction.split_countries),
        virtual_account_prefix=config.jurisdiction.virtual_account_prefix,
        onboarding_return_url=config.onboarding.return_url,
        onboarding_refresh_url=config.onboarding.refresh_url,
        default_currency=config.jurisdiction.default_currency,
        transfer_pacing_seconds=config.settlement.pacing_seconds,
    )
