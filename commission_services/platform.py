"""
CommissionPlatform -- the request-facing facade over the commission kernel.

Responsibility:
    Wires the kernel services (registry, session builder, sale store) and
    the settlement reconciler to one session factory, one policy and the
    processor gateways, and gives each request operation its own
    transaction.

Architecture position:
    Services -- outermost orchestration layer.  Owns transaction
    boundaries (``session_scope``); kernel services only flush.

Invariants enforced:
    - Request operations are stateless: nothing is cached between calls.
    - ``create_payment`` makes exactly one processor session call, then
      records the sale in a fresh transaction whose first statement is the
      conditional insert.
    - Every operation runs inside a LogContext carrying a correlation id.

Failure modes:
    - Kernel exceptions propagate unchanged (see commission_kernel.exceptions).
    - If the session was created but the sale could not be recorded, the
      session is orphaned; an ``orphaned_checkout_session`` error is logged
      with the session id before the exception propagates.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from decimal import Decimal
from uuid import uuid4

from sqlalchemy.orm import Session, sessionmaker

from commission_batch.domain.types import SettlementReport
from commission_batch.services.reconciler import ManualSettlementReconciler
from commission_kernel.db.engine import session_scope
from commission_kernel.domain.clock import Clock, SystemClock
from commission_kernel.domain.dtos import (
    CommissionSaleInfo,
    PaymentResult,
    RegistrationResult,
    TenantAccountInfo,
)
from commission_kernel.domain.gateways import (
    AccountGateway,
    BusinessProfile,
    PaymentGateway,
)
from commission_kernel.domain.policy import PlatformPolicy
from commission_kernel.logging_config import LogContext, get_logger
from commission_kernel.selectors.sale_selector import (
    CommissionTotal,
    SaleSelector,
    TenantSalesSummary,
)
from commission_kernel.services.payment_session_builder import PaymentSessionBuilder
from commission_kernel.services.sale_record_store import SaleRecordStore
from commission_kernel.services.tenant_registry import TenantRegistry

logger = get_logger("services.platform")


class CommissionPlatform:
    """Facade exposing the platform's request and batch operations.

    Contract:
        Each public method opens and commits (or rolls back) its own
        transaction and returns frozen DTOs.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        account_gateway: AccountGateway,
        payment_gateway: PaymentGateway,
        policy: PlatformPolicy | None = None,
        clock: Clock | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._session_factory = session_factory
        self._account_gateway = account_gateway
        self._payment_gateway = payment_gateway
        self._policy = policy or PlatformPolicy()
        self._clock = clock or SystemClock()
        self._sleep = sleep

    @property
    def policy(self) -> PlatformPolicy:
        return self._policy

    def _scope(self):
        return session_scope(self._session_factory)

    def _registry(self, session: Session) -> TenantRegistry:
        return TenantRegistry(session, self._account_gateway, self._policy, self._clock)

    # ------------------------------------------------------------------
    # Tenants
    # ------------------------------------------------------------------

    def register_tenant(
        self,
        user_id: str,
        profile: BusinessProfile,
        country: str,
    ) -> RegistrationResult:
        with LogContext.bind(correlation_id=str(uuid4()), actor_id=user_id):
            with self._scope() as session:
                return self._registry(session).register(user_id, profile, country)

    def get_tenant(self, user_id: str) -> TenantAccountInfo:
        with self._scope() as session:
            return self._registry(session).get_account(user_id)

    def get_commission_rate(self, user_id: str) -> Decimal:
        with self._scope() as session:
            return self._registry(session).get_commission_rate(user_id)

    def set_commission_rate(
        self,
        user_id: str,
        rate: Decimal | str | float,
        actor: str | None = None,
    ) -> TenantAccountInfo:
        with LogContext.bind(correlation_id=str(uuid4()), actor_id=actor):
            with self._scope() as session:
                return self._registry(session).set_commission_rate(user_id, rate, actor=actor)

    def create_onboarding_link(self, user_id: str) -> str:
        with self._scope() as session:
            return self._registry(session).create_onboarding_link(user_id)

    def complete_onboarding(self, account_ref: str) -> TenantAccountInfo:
        with LogContext.bind(correlation_id=str(uuid4()), tenant_ref=account_ref):
            with self._scope() as session:
                return self._registry(session).complete_onboarding(account_ref)

    def attach_processor_account(
        self,
        user_id: str,
        account_ref: str,
        actor: str | None = None,
    ) -> TenantAccountInfo:
        with LogContext.bind(correlation_id=str(uuid4()), actor_id=actor):
            with self._scope() as session:
                return self._registry(session).attach_processor_account(
                    user_id, account_ref, actor=actor
                )

    def disable_tenant(self, user_id: str, actor: str | None = None) -> TenantAccountInfo:
        with LogContext.bind(correlation_id=str(uuid4()), actor_id=actor):
            with self._scope() as session:
                return self._registry(session).disable(user_id, actor=actor)

    # ------------------------------------------------------------------
    # Payments
    # ------------------------------------------------------------------

    def create_payment(
        self,
        tenant_ref: str,
        amount: int,
        currency: str,
        description: str,
        requesting_user: str,
        customer_email: str | None = None,
    ) -> PaymentResult:
        """Create a checkout session and record its pending sale."""
        with LogContext.bind(
            correlation_id=str(uuid4()),
            actor_id=requesting_user,
            tenant_ref=tenant_ref,
        ):
            with self._scope() as session:
                builder = PaymentSessionBuilder(session, self._payment_gateway, self._policy)
                handle = builder.create_session(
                    tenant_ref,
                    amount,
                    currency,
                    description,
                    requesting_user,
                    customer_email=customer_email,
                )
                tenant = TenantAccountInfo.from_model(
                    builder.resolve_tenant(tenant_ref, requesting_user)
                )

            with LogContext.bind(session_id=handle.session_id):
                try:
                    with self._scope() as session:
                        record = SaleRecordStore(session, self._clock).record_sale(handle, tenant)
                except Exception:
                    logger.error(
                        "orphaned_checkout_session",
                        extra={"checkout_session": handle.session_id, "amount": amount},
                    )
                    raise
        return PaymentResult(handle=handle, record=record)

    def confirm_payment(
        self,
        session_id: str,
        payment_intent_id: str | None = None,
    ) -> CommissionSaleInfo:
        with LogContext.bind(correlation_id=str(uuid4()), session_id=session_id):
            with self._scope() as session:
                return SaleRecordStore(session, self._clock).confirm_sale(
                    session_id, payment_intent_id
                )

    def fail_payment(self, session_id: str) -> CommissionSaleInfo:
        with LogContext.bind(correlation_id=str(uuid4()), session_id=session_id):
            with self._scope() as session:
                return SaleRecordStore(session, self._clock).fail_sale(session_id)

    def get_sale(self, session_id: str) -> CommissionSaleInfo:
        with self._scope() as session:
            return SaleRecordStore(session, self._clock).get_sale(session_id)

    # ------------------------------------------------------------------
    # Settlement and reporting
    # ------------------------------------------------------------------

    def reconciler(self) -> ManualSettlementReconciler:
        return ManualSettlementReconciler(
            self._session_factory,
            self._payment_gateway,
            self._policy,
            clock=self._clock,
            sleep=self._sleep,
        )

    def run_reconciliation(self, limit: int | None = None) -> SettlementReport:
        with LogContext.bind(correlation_id=str(uuid4())):
            return self.reconciler().run(limit=limit)

    def preview_reconciliation(self, limit: int | None = None) -> SettlementReport:
        return self.reconciler().preview(limit=limit)

    def tenant_summary(self, user_id: str) -> TenantSalesSummary:
        with self._scope() as session:
            tenant = self._registry(session).get_account(user_id)
            return SaleSelector(session).tenant_summary(tenant.id)

    def commission_totals(self) -> list[CommissionTotal]:
        with self._scope() as session:
            return SaleSelector(session).commission_totals()

