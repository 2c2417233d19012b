"""Tests for structured JSON logging (commission_kernel/logging_config.py)."""

import json
import logging
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from commission_kernel.exceptions import AccountNotFoundError
from commission_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)
from commission_kernel.models.commission_sale import SaleStatus


@pytest.fixture(autouse=True)
def _fresh_logging():
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()


@pytest.fixture
def emitted():
    """Configure logging onto a buffer; returns a reader of parsed JSON lines."""
    buffer = StringIO()
    configure_logging(handler=logging.StreamHandler(buffer))

    def _read() -> list[dict]:
        return [json.loads(line) for line in buffer.getvalue().splitlines() if line]

    return _read


log = get_logger("test")


class TestRecordShape:
    def test_envelope(self, emitted):
        log.info("hello")

        [record] = emitted()
        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert record["logger"] == "commission_kernel.test"
        assert record["ts"].endswith("+00:00")

    def test_extra_fields(self, emitted):
        log.info("sale_recorded", extra={"amount_total": 10000, "status": SaleStatus.PENDING})

        [record] = emitted()
        assert record["amount_total"] == 10000
        assert record["status"] == "pending"

    def test_uuid_and_decimal(self, emitted):
        sale = uuid4()
        log.info("commission_rate_changed", extra={"sale": sale, "rate": Decimal("0.075")})

        [record] = emitted()
        assert record["sale"] == str(sale)
        assert record["rate"] == "0.075"

    def test_bound_context_is_stamped(self, emitted):
        with LogContext.bind(correlation_id="abc-123", session_id="cs_test_0001"):
            log.info("inside")
        log.info("outside")

        inside, outside = emitted()
        assert inside["correlation_id"] == "abc-123"
        assert inside["session_id"] == "cs_test_0001"
        assert "correlation_id" not in outside
        assert "session_id" not in outside

    def test_extra_cannot_override_context(self, emitted):
        with LogContext.bind(tenant_ref="acct_0001"):
            log.info("clash", extra={"tenant_ref": "acct_other"})

        [record] = emitted()
        assert record["tenant_ref"] == "acct_0001"

    def test_default_level_drops_debug(self, emitted):
        log.info("first")
        log.warning("second")
        log.debug("third")

        assert [r["message"] for r in emitted()] == ["first", "second"]


class TestExceptionFields:
    def test_plain_exception(self, emitted):
        try:
            raise ValueError("boom")
        except ValueError:
            log.error("failed", exc_info=True)

        [record] = emitted()
        assert record["exc_type"] == "ValueError"
        assert record["exc_message"] == "boom"
        assert "exc_code" not in record
        assert "Traceback" in record["traceback"]

    def test_kernel_exception_code_and_fields(self, emitted):
        try:
            raise AccountNotFoundError("acct_x")
        except AccountNotFoundError:
            log.error("lookup_failed", exc_info=True)

        [record] = emitted()
        assert record["exc_code"] == "ACCOUNT_NOT_FOUND"
        assert record["exc_type"] == "AccountNotFoundError"
        assert record["exc_reference"] == "acct_x"


class TestLogContext:
    def test_set_only_updates_given_fields(self):
        LogContext.set(correlation_id="x", tenant_ref="acct_1")
        LogContext.set(correlation_id=None, sale_id="s-1")

        assert LogContext.get_all() == {
            "correlation_id": "x",
            "tenant_ref": "acct_1",
            "sale_id": "s-1",
        }

    def test_clear(self):
        LogContext.set(run_id="r")
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_nested_bind_restores_outer_value(self):
        with LogContext.bind(correlation_id="outer"):
            with LogContext.bind(correlation_id="inner", run_id="run-1"):
                assert LogContext.get_all() == {"correlation_id": "inner", "run_id": "run-1"}
            assert LogContext.get_all() == {"correlation_id": "outer"}
        assert LogContext.get_all() == {}

    def test_bind_ignores_none(self):
        LogContext.set(actor_id="user_1")
        with LogContext.bind(actor_id=None):
            assert LogContext.get_all()["actor_id"] == "user_1"

    def test_bind_restores_after_exception(self):
        with pytest.raises(RuntimeError):
            with LogContext.bind(session_id="cs_1"):
                raise RuntimeError("boom")
        assert LogContext.get_all() == {}

    def test_unknown_field_rejected(self):
        with pytest.raises(TypeError, match="event_id"):
            LogContext.bind(event_id="e")
        with pytest.raises(TypeError):
            LogContext.set(producer="p")

    def test_all_fields(self):
        fields = {
            "correlation_id": "c",
            "actor_id": "a",
            "tenant_ref": "t",
            "session_id": "s",
            "sale_id": "n",
            "run_id": "r",
        }
        LogContext.set(**fields)
        assert LogContext.get_all() == fields


class TestConfigureLogging:
    def test_first_call_wins(self):
        first = logging.StreamHandler(StringIO())
        second = logging.StreamHandler(StringIO())
        configure_logging(handler=first)
        configure_logging(handler=second)

        root = logging.getLogger("commission_kernel")
        assert first in root.handlers
        assert second not in root.handlers
        assert isinstance(first.formatter, StructuredFormatter)
        assert root.propagate is False

    def test_level_by_name(self):
        configure_logging(handler=logging.NullHandler(), level="debug")
        assert logging.getLogger("commission_kernel").level == logging.DEBUG

    def test_children_inherit_configuration(self):
        buffer = StringIO()
        configure_logging(handler=logging.StreamHandler(buffer), level=logging.DEBUG)
        get_logger("batch.reconciler").debug("hierarchy_test")

        record = json.loads(buffer.getvalue())
        assert record["logger"] == "commission_kernel.batch.reconciler"

    def test_reset_allows_reconfiguration(self):
        first = logging.NullHandler()
        configure_logging(handler=first)
        reset_logging()
        second = logging.NullHandler()
        configure_logging(handler=second)

        handlers = logging.getLogger("commission_kernel").handlers
        assert second in handlers
        assert first not in handlers
