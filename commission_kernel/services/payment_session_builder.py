"""
PaymentSessionBuilder -- commission split and checkout-session creation.

Responsibility:
    Validates a payment request against the tenant account, computes the
    commission/net split, and asks the processor for a checkout session
    routed by the tenant's capability: a split session (fee + destination)
    for split-capable tenants, a plain session otherwise.

Architecture position:
    Kernel > Services -- orchestration boundary.  Reads TenantAccount, calls
    the injected ``PaymentGateway`` at most once, writes nothing.

Invariants enforced:
    - commission_amount + net_amount == amount (``compute_split``).
    - A tenant without split capability never sends destination or fee
      fields to the processor; its funds land in the platform balance and
      are settled later by the reconciler.
    - No retry: a retried session call can create a second live session.

Failure modes:
    - InvalidAmountError / InvalidCurrencyError: malformed request.
    - AccountNotFoundError: unknown tenant ref.
    - AccountUnauthorizedError: tenant not owned by the caller, or disabled.
    - UpstreamError: processor failure, original exception chained.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from commission_kernel.domain.commission import compute_split, validate_amount
from commission_kernel.domain.dtos import SessionHandle
from commission_kernel.domain.gateways import PaymentGateway, SessionRequest
from commission_kernel.domain.policy import PlatformPolicy
from commission_kernel.exceptions import (
    AccountNotFoundError,
    AccountUnauthorizedError,
    InvalidCurrencyError,
    UpstreamError,
)
from commission_kernel.logging_config import get_logger
from commission_kernel.models.tenant_account import TenantAccount, TenantStatus
from commission_kernel.services.base import BaseService

logger = get_logger("services.session_builder")


class PaymentSessionBuilder(BaseService[TenantAccount]):
    """Builds processor checkout sessions carrying the commission split."""

    def __init__(
        self,
        session: Session,
        gateway: PaymentGateway,
        policy: PlatformPolicy,
    ):
        super().__init__(session)
        self._gateway = gateway
        self._policy = policy

    def resolve_tenant(self, tenant_ref: str, requesting_user: str) -> TenantAccount:
        """
        Load the tenant account and check the caller may charge through it.

        Raises:
            AccountNotFoundError: If ``tenant_ref`` is unknown.
            AccountUnauthorizedError: If owned by another user, or disabled.
        """
        account = self.session.execute(
            select(TenantAccount).where(TenantAccount.account_ref == tenant_ref)
        ).scalar_one_or_none()
        if account is None:
            raise AccountNotFoundError(tenant_ref)
        if account.user_id != requesting_user:
            raise AccountUnauthorizedError(tenant_ref, requesting_user)
        if account.status == TenantStatus.DISABLED:
            raise AccountUnauthorizedError(tenant_ref, requesting_user, "account disabled")
        return account

    def create_session(
        self,
        tenant_ref: str,
        amount: int,
        currency: str,
        description: str,
        requesting_user: str,
        customer_email: str | None = None,
    ) -> SessionHandle:
        """
        Create a checkout session for ``amount`` minor units.

        Returns:
            SessionHandle with the processor session id, redirect URL,
            payment intent id (if the processor supplied one), and the split.
        """
        validate_amount(amount)
        if not isinstance(currency, str) or len(currency) != 3 or not currency.isalpha():
            raise InvalidCurrencyError(currency)
        currency = currency.lower()

        account = self.resolve_tenant(tenant_ref, requesting_user)
        rate = (
            self._policy.default_commission_rate
            if account.commission_rate is None
            else account.commission_rate
        )
        split = compute_split(amount, rate)

        metadata = {
            "connected_account": account.account_ref,
            "commission_rate": format(split.rate.normalize(), "f"),
            "user_id": requesting_user,
        }
        if account.can_split:
            request = SessionRequest(
                amount=amount,
                currency=currency,
                description=description,
                customer_email=customer_email,
                destination=account.account_ref,
                application_fee=split.commission_amount,
                metadata=metadata,
            )
        else:
            # Plain session: funds stay in the platform balance until the
            # settlement reconciler transfers the net amount.
            request = SessionRequest(
                amount=amount,
                currency=currency,
                description=description,
                customer_email=customer_email,
                metadata={**metadata, "manual_transfer": "true"},
            )

        try:
            created = self._gateway.create_session(request)
        except Exception as exc:
            logger.error(
                "checkout_session_failed",
                extra={"tenant_ref": tenant_ref, "amount": amount, "split": request.is_split},
                exc_info=True,
            )
            raise UpstreamError("create_session", str(exc)) from exc

        logger.info(
            "checkout_session_created",
            extra={
                "tenant_ref": tenant_ref,
                "checkout_session": created.session_id,
                "amount": amount,
                "commission_amount": split.commission_amount,
                "net_amount": split.net_amount,
                "split": request.is_split,
            },
        )
        return SessionHandle(
            session_id=created.session_id,
            url=created.url,
            payment_intent_id=created.payment_intent_id,
            tenant_ref=account.account_ref,
            currency=currency,
            split=split,
            description=description,
            customer_email=customer_email,
        )
