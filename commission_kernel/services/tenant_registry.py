"""
TenantRegistry -- onboarding of platform users as payment-receiving tenants.

Responsibility:
    Creates exactly one TenantAccount per platform user, choosing between a
    real processor account and a locally synthesized virtual account by the
    jurisdiction rule, and manages the account afterwards (commission rate,
    onboarding completion, re-onboarding onto a real account, disabling).

Architecture position:
    Kernel > Services -- imperative shell.  Calls the processor through the
    injected ``AccountGateway``; flushes, never commits.

Invariants enforced:
    - One account per user: checked up front for a descriptive conflict,
      and enforced by uq_tenant_user for concurrent registrations.
    - Capability flags come from the jurisdiction rule at creation and only
      change through ``attach_processor_account`` (explicit re-onboarding).
    - Accounts are never deleted.

Failure modes:
    - TenantAlreadyRegisteredError: user already owns an account.
    - UpstreamError: processor account or onboarding-link creation failed.
    - AccountNotFoundError / OnboardingNotApplicableError /
      InvalidCommissionRateError on the management operations.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from commission_kernel.domain.clock import Clock, SystemClock
from commission_kernel.domain.commission import to_rate
from commission_kernel.domain.dtos import RegistrationResult, TenantAccountInfo
from commission_kernel.domain.gateways import AccountGateway, BusinessProfile
from commission_kernel.domain.policy import PlatformPolicy
from commission_kernel.exceptions import (
    AccountNotFoundError,
    OnboardingNotApplicableError,
    TenantAlreadyRegisteredError,
    UpstreamError,
)
from commission_kernel.logging_config import get_logger
from commission_kernel.models.tenant_account import (
    AccountKind,
    TenantAccount,
    TenantStatus,
)
from commission_kernel.services.base import BaseService

logger = get_logger("services.tenant_registry")


class TenantRegistry(BaseService[TenantAccount]):
    """
    Service for registering and managing tenant accounts.

    All public methods return ``TenantAccountInfo`` DTOs, not ORM rows.
    """

    def __init__(
        self,
        session: Session,
        gateway: AccountGateway,
        policy: PlatformPolicy,
        clock: Clock | None = None,
    ):
        super().__init__(session)
        self._gateway = gateway
        self._policy = policy
        self._clock = clock or SystemClock()

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def _find_by_user(self, user_id: str) -> TenantAccount | None:
        return self.session.execute(
            select(TenantAccount).where(TenantAccount.user_id == user_id)
        ).scalar_one_or_none()

    def _get_by_user(self, user_id: str) -> TenantAccount:
        account = self._find_by_user(user_id)
        if account is None:
            raise AccountNotFoundError(f"user:{user_id}")
        return account

    def get_account(self, user_id: str) -> TenantAccountInfo:
        """
        Get the tenant account owned by ``user_id``.

        Raises:
            AccountNotFoundError: If the user has no account.
        """
        return TenantAccountInfo.from_model(self._get_by_user(user_id))

    def find_account(self, user_id: str) -> TenantAccountInfo | None:
        account = self._find_by_user(user_id)
        return TenantAccountInfo.from_model(account) if account else None

    def get_by_ref(self, account_ref: str) -> TenantAccountInfo:
        """
        Get a tenant account by its processor (or virtual) account id.

        Raises:
            AccountNotFoundError: If no account has this ref.
        """
        account = self.session.execute(
            select(TenantAccount).where(TenantAccount.account_ref == account_ref)
        ).scalar_one_or_none()
        if account is None:
            raise AccountNotFoundError(account_ref)
        return TenantAccountInfo.from_model(account)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(
        self,
        user_id: str,
        profile: BusinessProfile,
        country: str,
    ) -> RegistrationResult:
        """
        Onboard ``user_id`` as a tenant.

        Split-capable country: a real processor account is created, status
        PENDING until onboarding completes, and an onboarding link is
        returned.  Otherwise a virtual account is synthesized locally with
        no processor call and is ACTIVE immediately.

        Raises:
            TenantAlreadyRegisteredError: If the user already owns an account.
            UpstreamError: If account creation fails.  A failed onboarding
                link does not fail registration; ``onboarding_url`` is None.
        """
        country = country.upper()
        existing = self._find_by_user(user_id)
        if existing is not None:
            logger.info(
                "tenant_registration_conflict",
                extra={"user_id": user_id, "account_ref": existing.account_ref},
            )
            raise TenantAlreadyRegisteredError(
                user_id, existing.account_ref, TenantStatus(existing.status).value
            )

        onboarding_url: str | None = None
        if self._policy.supports_split(country):
            try:
                created = self._gateway.create_account(profile, country)
            except Exception as exc:
                logger.error(
                    "processor_account_creation_failed",
                    extra={"user_id": user_id, "country": country},
                    exc_info=True,
                )
                raise UpstreamError("create_account", str(exc)) from exc
            try:
                onboarding_url = self._gateway.create_onboarding_link(
                    created.account_ref,
                    self._policy.onboarding_return_url,
                    self._policy.onboarding_refresh_url,
                )
            except Exception:
                # The processor account exists; keep it and let the user
                # request a new link through create_onboarding_link().
                logger.warning(
                    "onboarding_link_failed",
                    extra={"user_id": user_id, "account_ref": created.account_ref},
                    exc_info=True,
                )
            account = TenantAccount(
                account_ref=created.account_ref,
                account_kind=AccountKind.REAL,
                can_split=True,
                can_manual_transfer=True,
                status=TenantStatus.PENDING,
                onboarding_completed=created.details_submitted,
            )
        else:
            account = TenantAccount(
                account_ref=self._synthesize_virtual_ref(country),
                account_kind=AccountKind.VIRTUAL,
                can_split=False,
                can_manual_transfer=True,
                status=TenantStatus.ACTIVE,
                onboarding_completed=True,
            )

        account.user_id = user_id
        account.business_name = profile.business_name
        account.email = profile.email
        account.country = country
        account.currency = (profile.currency or self._policy.default_currency).lower()
        account.created_by = user_id

        savepoint = self.session.begin_nested()
        try:
            self.session.add(account)
            self.session.flush()
            savepoint.commit()
        except IntegrityError:
            # Concurrent registration for the same user won the race
            savepoint.rollback()
            winner = self._get_by_user(user_id)
            logger.warning(
                "concurrent_tenant_registration",
                extra={"user_id": user_id, "account_ref": winner.account_ref},
            )
            raise TenantAlreadyRegisteredError(
                user_id, winner.account_ref, TenantStatus(winner.status).value
            )

        logger.info(
            "tenant_registered",
            extra={
                "user_id": user_id,
                "account_ref": account.account_ref,
                "account_kind": account.account_kind,
                "country": country,
            },
        )
        return RegistrationResult(
            account=TenantAccountInfo.from_model(account),
            onboarding_url=onboarding_url,
        )

    def _synthesize_virtual_ref(self, country: str) -> str:
        prefix = self._policy.virtual_prefix_for(country)
        return f"{prefix}{self._clock.epoch_millis()}_{uuid4().hex[:8]}"

    # ------------------------------------------------------------------
    # Commission rate
    # ------------------------------------------------------------------

    def get_commission_rate(self, user_id: str) -> Decimal:
        """Stored rate for the user's account, or the configured default."""
        account = self._find_by_user(user_id)
        if account is None or account.commission_rate is None:
            return self._policy.default_commission_rate
        return Decimal(account.commission_rate)

    def effective_rate(self, account: TenantAccount | TenantAccountInfo) -> Decimal:
        if account.commission_rate is None:
            return self._policy.default_commission_rate
        return Decimal(account.commission_rate)

    def set_commission_rate(
        self,
        user_id: str,
        rate: Decimal | str | float,
        actor: str | None = None,
    ) -> TenantAccountInfo:
        """
        Operator update of a tenant's commission rate.

        Raises:
            InvalidCommissionRateError: If ``rate`` is outside [0, 1].
            AccountNotFoundError: If the user has no account.
        """
        new_rate = to_rate(rate)
        account = self._get_by_user(user_id)
        old_rate = account.commission_rate
        account.commission_rate = new_rate
        self.session.flush()
        logger.info(
            "commission_rate_updated",
            extra={
                "account_ref": account.account_ref,
                "old_rate": old_rate,
                "new_rate": new_rate,
                "actor": actor,
            },
        )
        return TenantAccountInfo.from_model(account)

    # ------------------------------------------------------------------
    # Onboarding lifecycle
    # ------------------------------------------------------------------

    def create_onboarding_link(self, user_id: str) -> str:
        """
        Issue a fresh onboarding link for a real account.

        Raises:
            OnboardingNotApplicableError: For virtual accounts.
            UpstreamError: If the processor call fails.
        """
        account = self._get_by_user(user_id)
        if account.account_kind == AccountKind.VIRTUAL:
            raise OnboardingNotApplicableError(account.account_ref, AccountKind.VIRTUAL.value)
        try:
            return self._gateway.create_onboarding_link(
                account.account_ref,
                self._policy.onboarding_return_url,
                self._policy.onboarding_refresh_url,
            )
        except Exception as exc:
            raise UpstreamError("create_onboarding_link", str(exc)) from exc

    def complete_onboarding(self, account_ref: str) -> TenantAccountInfo:
        """
        Mark a real account's external onboarding as finished (PENDING -> ACTIVE).

        Idempotent for already-active accounts.  A DISABLED account stays
        disabled.
        """
        account = self.session.execute(
            select(TenantAccount).where(TenantAccount.account_ref == account_ref)
        ).scalar_one_or_none()
        if account is None:
            raise AccountNotFoundError(account_ref)
        if account.account_kind == AccountKind.VIRTUAL:
            raise OnboardingNotApplicableError(account_ref, AccountKind.VIRTUAL.value)
        account.onboarding_completed = True
        if account.status == TenantStatus.PENDING:
            account.status = TenantStatus.ACTIVE
        self.session.flush()
        logger.info("tenant_onboarding_completed", extra={"account_ref": account_ref})
        return TenantAccountInfo.from_model(account)

    def attach_processor_account(
        self,
        user_id: str,
        account_ref: str,
        actor: str | None = None,
    ) -> TenantAccountInfo:
        """
        Re-onboard a virtual tenant onto a real processor account.

        The account becomes REAL so the settlement reconciler can transfer
        to it.  ``can_split`` stays False whatever the jurisdiction: the
        tenant's sales keep settling by manual transfer.

        Raises:
            AccountNotFoundError: If the user has no account.
            OnboardingNotApplicableError: If the account is already real.
        """
        account = self._get_by_user(user_id)
        if account.account_kind == AccountKind.REAL:
            raise OnboardingNotApplicableError(account.account_ref, AccountKind.REAL.value)
        previous_ref = account.account_ref
        account.account_ref = account_ref
        account.account_kind = AccountKind.REAL
        account.can_split = False
        account.can_manual_transfer = True
        self.session.flush()
        logger.info(
            "tenant_reonboarded",
            extra={
                "previous_ref": previous_ref,
                "account_ref": account_ref,
                "actor": actor,
            },
        )
        return TenantAccountInfo.from_model(account)

    def disable(self, user_id: str, actor: str | None = None) -> TenantAccountInfo:
        """Retire a tenant.  The row is kept; new payments are refused."""
        account = self._get_by_user(user_id)
        account.status = TenantStatus.DISABLED
        self.session.flush()
        logger.info(
            "tenant_disabled",
            extra={"account_ref": account.account_ref, "actor": actor},
        )
        return TenantAccountInfo.from_model(account)
