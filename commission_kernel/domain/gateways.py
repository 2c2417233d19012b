"""
Processor gateway contracts.

Responsibility:
    Defines the interfaces the kernel consumes from the payment processor:
    account creation/onboarding and checkout-session/transfer creation.
    Concrete adapters live outside the kernel; tests use in-memory fakes.

Architecture position:
    Kernel > Domain.  Frozen request/response DTOs and ``Protocol`` classes
    only.  Zero I/O, zero ORM imports.

Contract notes:
    - ``SessionRequest.destination`` and ``SessionRequest.application_fee``
      are both set (split payment) or both ``None`` (plain payment).
    - Adapters raise whatever their client library raises; the kernel wraps
      it in ``UpstreamError`` with the original chained.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class BusinessProfile:
    """Merchant details sent to the processor at account creation."""

    business_name: str
    email: str
    first_name: str = ""
    last_name: str = ""
    currency: str | None = None


@dataclass(frozen=True)
class CreatedAccount:
    """Processor response to account creation."""

    account_ref: str
    charges_enabled: bool = False
    payouts_enabled: bool = False
    details_submitted: bool = False


@dataclass(frozen=True)
class SessionRequest:
    """Checkout session to create at the processor."""

    amount: int
    currency: str
    description: str
    customer_email: str | None = None
    destination: str | None = None
    application_fee: int | None = None
    metadata: dict[str, str] = field(default_factory=dict)

    @property
    def is_split(self) -> bool:
        return self.destination is not None


@dataclass(frozen=True)
class ProcessorSession:
    """Processor response to session creation."""

    session_id: str
    url: str
    payment_intent_id: str | None = None


@dataclass(frozen=True)
class TransferRequest:
    """Transfer of funds from the platform balance to a tenant account."""

    amount: int
    currency: str
    destination: str
    idempotency_key: str
    metadata: dict[str, str] = field(default_factory=dict)


@runtime_checkable
class AccountGateway(Protocol):
    """Processor account service."""

    def create_account(self, profile: BusinessProfile, country: str) -> CreatedAccount:
        ...

    def create_onboarding_link(
        self,
        account_ref: str,
        return_url: str,
        refresh_url: str,
    ) -> str:
        ...


@runtime_checkable
class PaymentGateway(Protocol):
    """Processor payment service."""

    def create_session(self, request: SessionRequest) -> ProcessorSession:
        ...

    def create_transfer(self, request: TransferRequest) -> str:
        """Create a transfer and return the processor transfer id."""
        ...
