"""Tests for the settlement run result types."""

from datetime import UTC, datetime
from uuid import uuid4

import pytest

from commission_batch.domain.types import (
    SettlementItem,
    SettlementItemStatus,
    SettlementReport,
)

T0 = datetime(2024, 1, 1, tzinfo=UTC)


def _item(amount, currency="usd", status=SettlementItemStatus.TRANSFERRED):
    return SettlementItem(
        sale_id=uuid4(),
        session_id="cs_test_0001",
        account_ref="acct_ar_real",
        business_name="Cafe Aurora",
        amount=amount,
        currency=currency,
        status=status,
    )


class TestSettlementReport:
    def test_empty_report(self):
        report = SettlementReport(run_id=uuid4(), started_at=T0, completed_at=T0)
        assert report.transfer_count == 0
        assert report.total_amount == 0
        assert report.totals_by_currency() == {}
        assert report.processed_count == 0
        assert not report.has_failures

    def test_totals_by_currency(self):
        report = SettlementReport(
            run_id=uuid4(),
            started_at=T0,
            completed_at=T0,
            transfers=(_item(9500), _item(500), _item(1900, currency="eur")),
        )
        assert report.total_amount == 11900
        assert report.totals_by_currency() == {"usd": 10000, "eur": 1900}

    def test_failures_and_skips_not_counted_in_totals(self):
        report = SettlementReport(
            run_id=uuid4(),
            started_at=T0,
            completed_at=T0,
            transfers=(_item(9500),),
            failures=(_item(4750, status=SettlementItemStatus.FAILED),),
            skipped=(_item(100, status=SettlementItemStatus.SKIPPED),),
        )
        assert report.total_amount == 9500
        assert report.processed_count == 3
        assert report.has_failures

    def test_frozen(self):
        item = _item(9500)
        with pytest.raises(AttributeError):
            item.amount = 1
