"""
In-memory processor used by the test suite.

Implements both gateway protocols.  Every call is recorded so tests can
assert on exactly what was sent to the processor.
"""

from __future__ import annotations

from itertools import count

from commission_kernel.domain.gateways import (
    BusinessProfile,
    CreatedAccount,
    ProcessorSession,
    SessionRequest,
    TransferRequest,
)


class ProcessorDown(Exception):
    """Simulated processor outage."""


class FakeProcessor:
    """Deterministic stand-in for the payment processor."""

    def __init__(self, intent_on_create: bool = False):
        self.intent_on_create = intent_on_create
        self.fail_accounts = False
        self.fail_sessions = False
        self.fail_links = False
        self.fail_destinations: set[str] = set()

        self.account_calls: list[tuple[BusinessProfile, str]] = []
        self.link_calls: list[str] = []
        self.session_requests: list[SessionRequest] = []
        self.transfer_requests: list[TransferRequest] = []
        self.transfers_by_key: dict[str, str] = {}

        self._accounts = count(1)
        self._sessions = count(1)
        self._transfers = count(1)

    # AccountGateway

    def create_account(self, profile: BusinessProfile, country: str) -> CreatedAccount:
        self.account_calls.append((profile, country))
        if self.fail_accounts:
            raise ProcessorDown("account service unavailable")
        return CreatedAccount(
            account_ref=f"acct_{next(self._accounts):04d}",
            charges_enabled=False,
            payouts_enabled=False,
            details_submitted=False,
        )

    def create_onboarding_link(self, account_ref: str, return_url: str, refresh_url: str) -> str:
        self.link_calls.append(account_ref)
        if self.fail_links:
            raise ProcessorDown("link service unavailable")
        return f"https://connect.example.test/setup/{account_ref}"

    # PaymentGateway

    def create_session(self, request: SessionRequest) -> ProcessorSession:
        self.session_requests.append(request)
        if self.fail_sessions:
            raise ProcessorDown("checkout unavailable")
        n = next(self._sessions)
        return ProcessorSession(
            session_id=f"cs_test_{n:04d}",
            url=f"https://checkout.example.test/pay/cs_test_{n:04d}",
            payment_intent_id=f"pi_test_{n:04d}" if self.intent_on_create else None,
        )

    def create_transfer(self, request: TransferRequest) -> str:
        self.transfer_requests.append(request)
        if request.destination in self.fail_destinations:
            raise ProcessorDown(f"transfer to {request.destination} rejected")
        # Same idempotency key, same transfer
        if request.idempotency_key not in self.transfers_by_key:
            self.transfers_by_key[request.idempotency_key] = f"tr_{next(self._transfers):04d}"
        return self.transfers_by_key[request.idempotency_key]


def build_gateway() -> FakeProcessor:
    """Factory in ``module:attribute`` form for the settlement CLI."""
    return FakeProcessor()
