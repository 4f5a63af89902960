"""Unit tests for comparing recomputed and persisted results."""

from dataclasses import replace
from decimal import Decimal

import pytest

from src.aggregators.billing_pipeline import BillingPipeline
from src.models.billing_config import BillingConfig
from src.validators.result_comparison import (
    ComparisonStatus,
    compare_billing_results,
    compare_projects,
    find_differences,
)


@pytest.fixture
def run_month(make_entry, standard_config):
    def _run(minutes_by_project, config=standard_config):
        entries = [
            make_entry(entry_id=f"{project_id}-{index}", project_id=project_id, minutes=minutes)
            for index, (project_id, minutes) in enumerate(minutes_by_project.items())
        ]
        return BillingPipeline().run(entries, "2026-01", lambda p, c: config).result

    return _run


class TestCompareProjects:
    def test_identical(self, run_month):
        result = run_month({"p-1": 117})

        assert compare_projects(
            result.find_project("p-1"), result.find_project("p-1")
        ) == ComparisonStatus.MATCH

    def test_rounded_minutes_differ(self, run_month):
        ours = run_month({"p-1": 117}).find_project("p-1")
        theirs = run_month({"p-1": 130}).find_project("p-1")

        assert compare_projects(ours, theirs) == ComparisonStatus.MISMATCH

    def test_rate_one_cent_apart_matches(self, run_month):
        ours = run_month({"p-1": 60}).find_project("p-1")
        theirs = run_month({"p-1": 60}, BillingConfig(rate=Decimal("50.01"))).find_project("p-1")

        assert theirs.billed_revenue - ours.billed_revenue == Decimal("0.01")
        assert compare_projects(ours, theirs) == ComparisonStatus.MATCH

    @pytest.mark.parametrize(
        "offset,status",
        [
            ("0.01", ComparisonStatus.MATCH),
            ("-0.01", ComparisonStatus.MATCH),
            ("0.011", ComparisonStatus.MISMATCH),
            ("-0.02", ComparisonStatus.MISMATCH),
        ],
    )
    def test_billed_revenue_tolerance(self, run_month, offset, status):
        ours = run_month({"p-1": 60}).find_project("p-1")
        theirs = replace(ours, billed_revenue=ours.billed_revenue + Decimal(offset))

        assert compare_projects(ours, theirs) == status

    def test_zero_tolerance(self, run_month):
        ours = run_month({"p-1": 60}).find_project("p-1")
        theirs = replace(ours, billed_revenue=ours.billed_revenue + Decimal("0.01"))

        assert compare_projects(ours, theirs, Decimal("0")) == ComparisonStatus.MISMATCH


class TestFindDifferences:
    """Every persisted field is checked, not just billed revenue."""

    @pytest.fixture
    def project(self, run_month):
        config = BillingConfig(
            rate=Decimal("50"), maximum_hours=Decimal("1"), carryover_enabled=True
        )
        return run_month({"p-1": 117}, config).find_project("p-1")

    def test_identical(self, project):
        assert find_differences(project, project) == []

    @pytest.mark.parametrize(
        "field_name,change",
        [
            ("actual_minutes", 1),
            ("rounded_minutes", 15),
            ("rounding_increment", 15),
            ("actual_hours", Decimal("0.02")),
            ("rounded_hours", Decimal("0.25")),
            ("carryover_in", Decimal("1.00")),
            ("adjusted_hours", Decimal("0.50")),
            ("billed_hours", Decimal("0.25")),
            ("unbillable_hours", Decimal("1.00")),
            ("carryover_out", Decimal("-0.75")),
            ("minimum_padding", Decimal("2.00")),
            ("rate", Decimal("5")),
            ("base_revenue", Decimal("10.00")),
            ("billed_revenue", Decimal("0.02")),
        ],
    )
    def test_changed_value_reported(self, project, field_name, change):
        persisted = replace(project, **{field_name: getattr(project, field_name) + change})

        assert find_differences(project, persisted) == [field_name]
        assert compare_projects(project, persisted) == ComparisonStatus.MISMATCH

    @pytest.mark.parametrize("field_name", ["minimum_applied", "maximum_applied"])
    def test_changed_flag_reported(self, project, field_name):
        persisted = replace(project, **{field_name: not getattr(project, field_name)})

        assert find_differences(project, persisted) == [field_name]

    def test_carryover_out_within_tolerance(self, project):
        persisted = replace(project, carryover_out=project.carryover_out + Decimal("0.01"))

        assert find_differences(project, persisted) == []


class TestCompareBillingResults:
    """Test project matching and noise handling."""

    def test_match(self, run_month):
        comparison = compare_billing_results(run_month({"p-1": 60}), run_month({"p-1": 60}))

        assert comparison.is_match
        assert comparison.count(ComparisonStatus.MATCH) == 1

    def test_one_sided_projects(self, run_month):
        comparison = compare_billing_results(
            run_month({"p-1": 60, "p-2": 30}), run_month({"p-1": 60, "p-3": 45})
        )

        statuses = {p.project_id: p.status for p in comparison.projects}
        assert statuses == {
            "p-1": ComparisonStatus.MATCH,
            "p-2": ComparisonStatus.ONLY_RECOMPUTED,
            "p-3": ComparisonStatus.ONLY_PERSISTED,
        }
        assert comparison.discrepancy_count == 2
        assert [p.project_id for p in comparison.discrepancies] == ["p-2", "p-3"]

    def test_zero_value_persisted_row_is_noise(self, run_month):
        comparison = compare_billing_results(
            run_month({"p-1": 60}), run_month({"p-1": 60, "p-2": 0})
        )

        noise = comparison.projects[1]
        assert noise.status == ComparisonStatus.NOISE
        assert not noise.is_discrepancy
        assert comparison.is_match

    def test_noise_suppression_disabled(self, run_month):
        comparison = compare_billing_results(
            run_month({"p-1": 60}),
            run_month({"p-1": 60, "p-2": 0}),
            suppress_zero_value_noise=False,
        )

        assert comparison.projects[1].status == ComparisonStatus.ONLY_PERSISTED
        assert not comparison.is_match

    def test_noise_threshold(self, run_month):
        cheap = BillingConfig(rate=Decimal("0.5"))
        comparison = compare_billing_results(
            run_month({"p-1": 15}, cheap),
            run_month({"p-9": 0}, cheap),
            noise_threshold=Decimal("0.25"),
        )

        statuses = {p.project_id: p.status for p in comparison.projects}
        assert statuses["p-1"] == ComparisonStatus.NOISE
        assert statuses["p-9"] == ComparisonStatus.NOISE

    def test_revenue_difference(self, run_month):
        comparison = compare_billing_results(
            run_month({"p-1": 120}), run_month({"p-1": 60})
        )

        assert comparison.projects[0].billed_revenue_difference == Decimal("50.00")

    def test_tolerance_passed_through(self, run_month):
        ours = run_month({"p-1": 60})
        theirs = run_month({"p-1": 60}, BillingConfig(rate=Decimal("50.01")))

        assert compare_billing_results(ours, theirs).is_match
        assert not compare_billing_results(ours, theirs, tolerance=Decimal("0")).is_match

    def test_same_project_id_under_two_companies(self, make_entry, standard_config):
        def run(client_minutes):
            entries = [
                make_entry(entry_id="client", minutes=client_minutes),
                make_entry(entry_id="no-client", client_id=None, minutes=600),
            ]
            return BillingPipeline().run(entries, "2026-01", lambda p, c: standard_config).result

        comparison = compare_billing_results(run(60), run(999))

        statuses = {(p.company_id, p.project_id): p.status for p in comparison.projects}
        assert statuses == {
            ("c-1", "p-1"): ComparisonStatus.MISMATCH,
            ("unassigned", "p-1"): ComparisonStatus.MATCH,
        }
        assert comparison.discrepancy_count == 1
        assert "billed_revenue" in comparison.discrepancies[0].differences
