"""
Typed exception hierarchy for the commission kernel.

Every error has a typed class (catch by type, not message), a ``code``
class attribute (machine-readable, API-safe), and carries structured data
as instance attributes.

    CommissionKernelError (base)
    |
    +-- ValidationError
    |   +-- InvalidAmountError
    |   +-- InvalidCommissionRateError
    |   +-- InvalidCurrencyError
    |
    +-- NotFoundError
    |   +-- AccountNotFoundError
    |   +-- SaleNotFoundError
    |
    +-- AuthorizationError
    |   +-- AccountUnauthorizedError
    |
    +-- ConflictError
    |   +-- TenantAlreadyRegisteredError
    |
    +-- AccountStateError
    |   +-- OnboardingNotApplicableError
    |
    +-- UpstreamError

Code            | When Raised
----------------|----------------------------------------------------------
INVALID_AMOUNT  | Amount is not a positive integer of minor units
INVALID_RATE    | Commission rate outside [0, 1]
INVALID_CURRENCY| Currency is not a three-letter code
ACCOUNT_NOT_FOUND | No tenant account for the given ref or user
SALE_NOT_FOUND  | No commission sale for the given checkout session
ACCOUNT_UNAUTHORIZED | Tenant account not owned by caller, or disabled
TENANT_ALREADY_REGISTERED | User already owns a tenant account
ONBOARDING_NOT_APPLICABLE | Onboarding requested for a virtual account
UPSTREAM_ERROR  | Processor or datastore failure (cause chained)

Handling patterns:

    try:
        registry.register(user_id, profile, country)
    except TenantAlreadyRegisteredError as e:
        return {"error": e.code, "account_ref": e.account_ref, "status": e.status}

Duplicate sale records are NOT surfaced: ``SaleRecordStore.record_sale``
returns a DUPLICATE result instead of raising.
"""


class CommissionKernelError(Exception):
    """
    Base exception for all commission kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "COMMISSION_KERNEL_ERROR"


# Validation


class ValidationError(CommissionKernelError):
    """Base exception for malformed caller input."""

    code: str = "VALIDATION_ERROR"


class InvalidAmountError(ValidationError):
    """Payment amount is not a positive integer of minor currency units."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, amount: object):
        self.amount = amount
        super().__init__(
            f"Amount must be a positive integer of minor units, got {amount!r}"
        )


class InvalidCommissionRateError(ValidationError):
    """Commission rate is not a fraction in [0, 1]."""

    code: str = "INVALID_RATE"

    def __init__(self, rate: object):
        self.rate = str(rate)
        super().__init__(f"Commission rate must be within [0, 1], got {rate!r}")


class InvalidCurrencyError(ValidationError):
    """Currency is not a three-letter ISO 4217 code."""

    code: str = "INVALID_CURRENCY"

    def __init__(self, currency: object):
        self.currency = currency
        super().__init__(f"Invalid currency code: {currency!r}")


# Not found


class NotFoundError(CommissionKernelError):
    """Base exception for unknown references."""

    code: str = "NOT_FOUND"


class AccountNotFoundError(NotFoundError):
    """No tenant account matches the given reference."""

    code: str = "ACCOUNT_NOT_FOUND"

    def __init__(self, reference: str):
        self.reference = reference
        super().__init__(f"Tenant account not found: {reference}")


class SaleNotFoundError(NotFoundError):
    """No commission sale matches the given checkout session."""

    code: str = "SALE_NOT_FOUND"

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Commission sale not found for session {session_id}")


# Authorization


class AuthorizationError(CommissionKernelError):
    """Base exception for caller/tenant mismatches."""

    code: str = "AUTHORIZATION_ERROR"


class AccountUnauthorizedError(AuthorizationError):
    """Tenant account is not usable by the requesting user."""

    code: str = "ACCOUNT_UNAUTHORIZED"

    def __init__(self, account_ref: str, user_id: str, reason: str = "not owner"):
        self.account_ref = account_ref
        self.user_id = user_id
        self.reason = reason
        super().__init__(
            f"User {user_id} may not use tenant account {account_ref}: {reason}"
        )


# Conflicts


class ConflictError(CommissionKernelError):
    """Base exception for uniqueness conflicts."""

    code: str = "CONFLICT"


class TenantAlreadyRegisteredError(ConflictError):
    """User already owns a tenant account."""

    code: str = "TENANT_ALREADY_REGISTERED"

    def __init__(self, user_id: str, account_ref: str, status: str):
        self.user_id = user_id
        self.account_ref = account_ref
        self.status = status
        super().__init__(
            f"User {user_id} already owns tenant account {account_ref} ({status})"
        )


# Account state


class AccountStateError(CommissionKernelError):
    """Base exception for operations invalid in the account's current state."""

    code: str = "ACCOUNT_STATE_ERROR"


class OnboardingNotApplicableError(AccountStateError):
    """Onboarding was requested for an account that has none."""

    code: str = "ONBOARDING_NOT_APPLICABLE"

    def __init__(self, account_ref: str, account_kind: str):
        self.account_ref = account_ref
        self.account_kind = account_kind
        super().__init__(
            f"Tenant account {account_ref} ({account_kind}) has no onboarding step"
        )


# Upstream


class UpstreamError(CommissionKernelError):
    """
    Processor or datastore failure.

    The original exception is always chained (``raise ... from exc``) so
    callers can inspect ``__cause__``.
    """

    code: str = "UPSTREAM_ERROR"

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"Upstream failure during {operation}: {detail}")

