"""Unit tests for the billing config store and carryover ledger."""

import datetime as dt
from decimal import Decimal

import pytest
from pydantic import ValidationError

from src.aggregators.billing_pipeline import BillingPipeline
from src.models.fixed_billing import FixedBilling
from src.services.billing_config_store import (
    BillingConfigRecord,
    BillingConfigStore,
    CarryoverLedger,
    CarryoverRecord,
)

JANUARY = dt.date(2026, 1, 1)
FEBRUARY = dt.date(2026, 2, 1)


def _record(**overrides):
    values = {"project_id": "p-1", "effective_month": "2026-01", "rate": "50"}
    values.update(overrides)
    return BillingConfigRecord(**values)


class TestBillingConfigRecord:
    def test_effective_month_normalized(self):
        assert _record(effective_month="2026-03-17").effective_month == dt.date(2026, 3, 1)

    def test_minimum_above_maximum_rejected(self):
        with pytest.raises(ValidationError, match="p-1"):
            _record(minimum_hours="10", maximum_hours="5")

    def test_to_billing_config_is_matched(self):
        config = _record(project_name="Website").to_billing_config(Decimal("2"))

        assert config.matched_in_system
        assert config.matched_project_name == "Website"
        assert config.carryover_hours_in == Decimal("2")


class TestConfigLookup:
    """Test versioned config resolution."""

    @pytest.fixture
    def store(self):
        return BillingConfigStore(
            records=[
                _record(effective_month="2026-01", rate="50"),
                _record(effective_month="2026-04", rate="60"),
            ],
            companies={"c-1": "Acme Corp"},
        )

    @pytest.mark.parametrize(
        "month,rate",
        [
            (dt.date(2025, 6, 1), Decimal("50")),
            (JANUARY, Decimal("50")),
            (dt.date(2026, 3, 1), Decimal("50")),
            (dt.date(2026, 4, 1), Decimal("60")),
            (dt.date(2027, 1, 1), Decimal("60")),
        ],
    )
    def test_versions_inherited_and_backfilled(self, store, month, rate):
        assert store.get_config("p-1", month).rate == rate

    def test_unknown_project(self, store):
        assert store.get_config("p-9", JANUARY) is None
        assert store.resolver_for_month(JANUARY)(None, "c-1") is None

    def test_same_effective_month_replaced(self, store):
        store.add_record(_record(effective_month="2026-04", rate="70"))

        assert store.get_config("p-1", dt.date(2026, 5, 1)).rate == Decimal("70")

    def test_resolver_and_lookup(self, store):
        assert store.resolver_for_month("2026-04")("p-1", "c-1").rate == Decimal("60")
        assert store.reconciliation_lookup(JANUARY)("p-1").rate == Decimal("50")

    def test_company_names(self, store):
        assert store.get_company_name("c-1") == "Acme Corp"
        assert store.get_company_name("c-9") == "Unknown"
        assert store.get_company_name(None, default=None) is None


class TestCarryoverLedger:
    """Test carryover persistence, expiry and cap."""

    def test_record_and_available(self):
        ledger = CarryoverLedger()
        ledger.record("p-1", JANUARY, Decimal("5"))

        assert ledger.available("p-1", FEBRUARY) == Decimal("5.00")
        assert ledger.available("p-1", JANUARY) == Decimal("0.00")
        assert ledger.available("p-2", FEBRUARY) == Decimal("0.00")

    def test_record_is_idempotent(self):
        ledger = CarryoverLedger()
        ledger.record("p-1", JANUARY, Decimal("5"))
        ledger.record("p-1", JANUARY, Decimal("3"))

        assert len(ledger) == 1
        assert ledger.available("p-1", FEBRUARY) == Decimal("3.00")

    def test_zero_clears_stale_row(self):
        ledger = CarryoverLedger()
        ledger.record("p-1", JANUARY, Decimal("5"))
        ledger.record("p-1", JANUARY, Decimal("0"))

        assert len(ledger) == 0

    def test_expired_rows_ignored(self):
        ledger = CarryoverLedger(
            [
                CarryoverRecord("p-1", dt.date(2025, 10, 1), FEBRUARY, Decimal("4")),
                CarryoverRecord("p-1", JANUARY, FEBRUARY, Decimal("2")),
            ]
        )

        assert ledger.available("p-1", FEBRUARY) == Decimal("6.00")
        assert ledger.available("p-1", FEBRUARY, expiry_months=3) == Decimal("2.00")

    def test_cap(self):
        ledger = CarryoverLedger()
        ledger.record("p-1", JANUARY, Decimal("12"))

        assert ledger.available("p-1", FEBRUARY, max_hours=Decimal("8")) == Decimal("8.00")

    def test_rows_sorted(self):
        ledger = CarryoverLedger()
        ledger.record("p-2", JANUARY, Decimal("1"))
        ledger.record("p-1", FEBRUARY, Decimal("1"))
        ledger.record("p-1", JANUARY, Decimal("1"))

        rows = ledger.rows()
        assert [(r.project_id, r.source_month) for r in rows] == [
            ("p-1", JANUARY),
            ("p-1", FEBRUARY),
            ("p-2", JANUARY),
        ]
        assert len(ledger.rows("p-1")) == 2


class TestCarryoverInConfig:
    def test_carryover_only_when_enabled(self):
        store = BillingConfigStore(records=[_record(carryover_enabled=False)])
        store.ledger.record("p-1", JANUARY, Decimal("5"))

        assert store.get_config("p-1", FEBRUARY).carryover_hours_in == Decimal("0")

    def test_store_applies_record_cap(self):
        store = BillingConfigStore(
            records=[_record(carryover_enabled=True, carryover_max_hours="2")]
        )
        store.ledger.record("p-1", JANUARY, Decimal("5"))

        assert store.get_config("p-1", FEBRUARY).carryover_hours_in == Decimal("2.00")


class TestSyncCarryover:
    def test_sync_records_carryover_out(self, make_entry):
        store = BillingConfigStore(
            records=[
                _record(maximum_hours="1", carryover_enabled=True),
                _record(project_id="p-2", maximum_hours="1"),
            ]
        )
        entries = [
            make_entry(entry_id="1", minutes=120),
            make_entry(entry_id="2", project_id="p-2", project_name="Shop", minutes=120),
        ]
        run = BillingPipeline().run_with_store(entries, JANUARY, store)

        synced = store.sync_carryover(run.result, JANUARY)

        assert synced == 1
        [row] = store.ledger.rows()
        assert row.project_id == "p-1"
        assert row.hours == Decimal("1.00")
        assert row.actual_hours_worked == Decimal("2.00")
        assert row.maximum_applied == Decimal("1")


class TestFixedBillingsForMonth:
    def test_resolved_against_result(self, make_entry):
        store = BillingConfigStore(
            records=[_record()],
            companies={"c-1": "Acme Corp"},
            fixed_billings=[
                FixedBilling(
                    company_id="c-1",
                    name="Hosting",
                    type="subscription",
                    transactions=[{"month": "2026-01", "amount_cents": 12000}],
                ),
                FixedBilling(
                    company_id="c-1",
                    name="Phase 1",
                    type="revenue_milestone",
                    linked_project_id="p-1",
                    transactions=[{"month": "2026-01", "amount_cents": 50000}],
                ),
            ],
        )
        run = BillingPipeline().run_with_store([make_entry(minutes=60)], JANUARY, store)

        fixed = store.fixed_billings_for_month(JANUARY, run.result)

        assert [line.billing.name for line in fixed.lines["c-1"]] == ["Hosting"]
        assert fixed.milestones == {("c-1", "p-1"): 50000}
        assert fixed.company_names == {"c-1": "Acme Corp"}

    def test_empty_by_default(self, make_entry):
        store = BillingConfigStore(records=[_record()])
        run = BillingPipeline().run_with_store([make_entry()], JANUARY, store)

        fixed = store.fixed_billings_for_month(JANUARY, run.result)

        assert fixed.lines == {}
        assert fixed.total_cents == 0
