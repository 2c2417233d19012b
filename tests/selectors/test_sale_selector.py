"""Tests for SaleSelector -- settlement work list and sales statistics."""

from decimal import Decimal

from commission_kernel.domain.commission import compute_split
from commission_kernel.domain.dtos import SessionHandle
from commission_kernel.models.tenant_account import AccountKind
from commission_kernel.selectors.sale_selector import SaleSelector


def _sale(store, tenant, session_id, amount=10000, rate="0.05", complete=True):
    handle = SessionHandle(
        session_id=session_id,
        url="https://checkout.example.test",
        payment_intent_id=None,
        tenant_ref=tenant.account_ref,
        currency="usd",
        split=compute_split(amount, Decimal(rate)),
    )
    store.record_sale(handle, tenant)
    if complete:
        store.confirm_sale(session_id, f"pi_{session_id}")


class TestPendingSettlement:
    def test_selects_completed_untransferred_non_split(self, session, store, register_tenant):
        virtual = register_tenant("user_ar", "AR")
        split = register_tenant("user_us", "US")
        _sale(store, virtual, "cs_1")
        _sale(store, virtual, "cs_2", complete=False)
        _sale(store, split, "cs_3")

        pending = SaleSelector(session).pending_settlement()

        assert [p.session_id for p in pending] == ["cs_1"]
        entry = pending[0]
        assert entry.net_amount == 9500
        assert entry.account_ref == virtual.account_ref
        assert entry.account_kind == AccountKind.VIRTUAL
        assert entry.is_virtual
        assert entry.payment_intent_id == "pi_cs_1"
        assert entry.business_name == "Cafe Aurora"

    def test_limit(self, session, store, register_tenant):
        tenant = register_tenant("user_ar", "AR")
        for i in range(3):
            _sale(store, tenant, f"cs_{i}")
        assert len(SaleSelector(session).pending_settlement(limit=2)) == 2

    def test_account_kind_filter_applies_before_limit(self, session, store, registry, register_tenant):
        virtual = register_tenant("user_ar", "AR")
        register_tenant("user_pe", "PE")
        real = registry.attach_processor_account("user_pe", "acct_pe_real")
        _sale(store, virtual, "cs_1")
        _sale(store, virtual, "cs_2")
        _sale(store, real, "cs_3")
        selector = SaleSelector(session)

        transferable = selector.pending_settlement(limit=2, account_kind=AccountKind.REAL)
        waiting = selector.pending_settlement(account_kind=AccountKind.VIRTUAL)

        assert [p.session_id for p in transferable] == ["cs_3"]
        assert sorted(p.session_id for p in waiting) == ["cs_1", "cs_2"]

    def test_empty(self, session):
        assert SaleSelector(session).pending_settlement() == []


class TestStatistics:
    def test_tenant_summary(self, session, store, register_tenant):
        tenant = register_tenant("user_ar", "AR")
        _sale(store, tenant, "cs_1", amount=10000)
        _sale(store, tenant, "cs_2", amount=2000)
        _sale(store, tenant, "cs_3", amount=5000, complete=False)

        summary = SaleSelector(session).tenant_summary(tenant.id)

        assert summary.sale_count == 2
        assert summary.total_revenue == 12000
        assert summary.total_commission == 600
        assert summary.total_net == 11400
        assert summary.unsettled_count == 2

    def test_split_tenant_has_nothing_unsettled(self, session, store, register_tenant):
        tenant = register_tenant("user_us", "US")
        _sale(store, tenant, "cs_1")

        summary = SaleSelector(session).tenant_summary(tenant.id)

        assert summary.sale_count == 1
        assert summary.unsettled_count == 0

    def test_summary_without_sales(self, session, register_tenant):
        tenant = register_tenant("user_ar", "AR")
        summary = SaleSelector(session).tenant_summary(tenant.id)
        assert summary.sale_count == 0
        assert summary.total_revenue == 0

    def test_commission_totals_ordered(self, session, store, register_tenant):
        small = register_tenant("user_small", "AR")
        large = register_tenant("user_large", "US")
        _sale(store, small, "cs_1", amount=1000)
        _sale(store, large, "cs_2", amount=50000)
        _sale(store, large, "cs_3", amount=50000)

        totals = SaleSelector(session).commission_totals()

        assert [t.account_ref for t in totals] == [large.account_ref, small.account_ref]
        assert totals[0].total_commission == 5000
        assert totals[0].sale_count == 2
        assert totals[0].currency == "USD"
        assert totals[1].total_commission == 50
