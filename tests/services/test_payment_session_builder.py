"""
Tests for PaymentSessionBuilder -- commission split and session routing.

Split-capable tenants get a processor session carrying destination and
fee; all others get a plain session and are settled later.
"""

from decimal import Decimal

import pytest

from commission_kernel.exceptions import (
    AccountNotFoundError,
    AccountUnauthorizedError,
    InvalidAmountError,
    InvalidCurrencyError,
    UpstreamError,
)


class TestSplitRouting:
    def test_split_tenant_gets_destination_and_fee(self, builder, processor, register_tenant):
        tenant = register_tenant("user_us", "US")

        handle = builder.create_session(tenant.account_ref, 10000, "USD", "Order #1", "user_us")

        request = processor.session_requests[-1]
        assert request.is_split
        assert request.destination == tenant.account_ref
        assert request.application_fee == 500
        assert request.amount == 10000
        assert request.currency == "usd"
        assert handle.split.commission_amount == 500
        assert handle.split.net_amount == 9500
        assert handle.session_id == "cs_test_0001"
        assert handle.url.endswith("cs_test_0001")

    def test_non_split_tenant_gets_plain_session(self, builder, processor, register_tenant):
        tenant = register_tenant("user_ar", "AR")

        handle = builder.create_session(tenant.account_ref, 10000, "usd", "Order #2", "user_ar")

        request = processor.session_requests[-1]
        assert not request.is_split
        assert request.destination is None
        assert request.application_fee is None
        assert request.metadata["manual_transfer"] == "true"
        assert request.metadata["connected_account"] == tenant.account_ref
        # Split is still computed and carried for the sale record
        assert handle.split.commission_amount == 500
        assert handle.split.net_amount == 9500

    def test_tenant_rate_overrides_default(self, builder, registry, processor, register_tenant):
        tenant = register_tenant("user_us", "US")
        registry.set_commission_rate("user_us", Decimal("0.1"))

        handle = builder.create_session(tenant.account_ref, 2500, "usd", "Order", "user_us")

        assert handle.split.commission_amount == 250
        assert processor.session_requests[-1].metadata["commission_rate"] == "0.1"

    def test_one_gateway_call_per_session(self, builder, processor, register_tenant):
        tenant = register_tenant("user_us", "US")
        builder.create_session(tenant.account_ref, 100, "usd", "Order", "user_us")
        assert len(processor.session_requests) == 1

    def test_customer_email_and_intent_carried(self, builder, processor, register_tenant):
        processor.intent_on_create = True
        tenant = register_tenant("user_us", "US")
        handle = builder.create_session(
            tenant.account_ref, 100, "usd", "Order", "user_us", customer_email="c@x.example"
        )
        assert handle.customer_email == "c@x.example"
        assert handle.payment_intent_id == "pi_test_0001"
        assert processor.session_requests[-1].customer_email == "c@x.example"


class TestValidation:
    @pytest.mark.parametrize("amount", [0, -1, 12.5])
    def test_invalid_amount(self, builder, processor, register_tenant, amount):
        tenant = register_tenant("user_us", "US")
        with pytest.raises(InvalidAmountError):
            builder.create_session(tenant.account_ref, amount, "usd", "Order", "user_us")
        assert processor.session_requests == []

    @pytest.mark.parametrize("currency", ["", "us", "usdd", "12a"])
    def test_invalid_currency(self, builder, register_tenant, currency):
        tenant = register_tenant("user_us", "US")
        with pytest.raises(InvalidCurrencyError):
            builder.create_session(tenant.account_ref, 100, currency, "Order", "user_us")

    def test_unknown_tenant(self, builder):
        with pytest.raises(AccountNotFoundError):
            builder.create_session("acct_missing", 100, "usd", "Order", "user_1")

    def test_other_users_tenant(self, builder, processor, register_tenant):
        tenant = register_tenant("user_us", "US")
        with pytest.raises(AccountUnauthorizedError) as exc_info:
            builder.create_session(tenant.account_ref, 100, "usd", "Order", "intruder")
        assert exc_info.value.reason == "not owner"
        assert processor.session_requests == []

    def test_disabled_tenant(self, builder, registry, register_tenant):
        tenant = register_tenant("user_ar", "AR")
        registry.disable("user_ar")
        with pytest.raises(AccountUnauthorizedError) as exc_info:
            builder.create_session(tenant.account_ref, 100, "usd", "Order", "user_ar")
        assert exc_info.value.reason == "account disabled"


class TestUpstreamFailure:
    def test_processor_failure_wrapped(self, builder, processor, register_tenant, captured_logs):
        processor.fail_sessions = True
        tenant = register_tenant("user_us", "US")

        with pytest.raises(UpstreamError) as exc_info:
            builder.create_session(tenant.account_ref, 100, "usd", "Order", "user_us")

        assert exc_info.value.operation == "create_session"
        assert exc_info.value.__cause__ is not None
        # No retry
        assert len(processor.session_requests) == 1
        assert any(r["message"] == "checkout_session_failed" for r in captured_logs())
