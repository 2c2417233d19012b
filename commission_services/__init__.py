"""
commission_services -- public API of the commission platform.

Responsibility:
    Request-facing orchestration over the kernel and the settlement batch.
    ``build_platform`` is the composition root: it loads configuration,
    initializes the engine, and wires the processor gateways.

Architecture position:
    Services -- outermost layer.
        commission_services/ -> commission_batch/, commission_config/,
                                commission_kernel/   (allowed)
        commission_kernel/   -> commission_services/ (FORBIDDEN)
"""

from __future__ import annotations

from commission_config import PlatformConfig, get_active_config
from commission_config.bridges import build_platform_policy
from commission_kernel.db.engine import get_session_factory, init_engine_from_url
from commission_kernel.domain.clock import Clock
from commission_kernel.domain.gateways import AccountGateway, PaymentGateway
from commission_services.platform import CommissionPlatform


def build_platform(
    account_gateway: AccountGateway,
    payment_gateway: PaymentGateway,
    config: PlatformConfig | None = None,
    clock: Clock | None = None,
) -> CommissionPlatform:
    """Initialize the engine from config and return a wired platform."""
    config = config or get_active_config()
    init_engine_from_url(
        config.database.url,
        echo=config.database.echo,
        pool_size=config.database.pool_size,
        max_overflow=config.database.max_overflow,
    )
    return CommissionPlatform(
        get_session_factory(),
        account_gateway,
        payment_gateway,
        policy=build_platform_policy(config),
        clock=clock,
    )


__all__ = ["CommissionPlatform", "build_platform"]
