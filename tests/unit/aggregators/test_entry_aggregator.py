"""Unit tests for entry aggregator."""

import itertools
from decimal import Decimal
from unittest.mock import Mock

import pytest

from src.aggregators.entry_aggregator import (
    UNASSIGNED_ID,
    aggregate_entries,
    project_group_key,
    resolve_billing_config,
    validate_entry,
)
from src.calculators.billing_calculator import calculate_monthly_billing
from src.errors import ComputationInvariantViolation, ConfigMissingError
from src.models.billing_config import DEFAULT_BILLING_CONFIG, BillingConfig


class TestValidateEntry:
    def test_negative_minutes_rejected(self, make_entry):
        with pytest.raises(ComputationInvariantViolation, match="negative"):
            validate_entry(make_entry(minutes=-5))

    def test_zero_minutes_allowed(self, make_entry):
        validate_entry(make_entry(minutes=0))


class TestResolveBillingConfig:
    """Test config resolution with default fallback."""

    def test_resolver_result_used(self, standard_config):
        resolver = Mock(return_value=standard_config)

        config = resolve_billing_config(resolver, "p-1", "c-1")

        assert config is standard_config
        resolver.assert_called_once_with("p-1", "c-1")

    def test_none_falls_back_to_default(self):
        config = resolve_billing_config(Mock(return_value=None), "p-1", "c-1")

        assert config is DEFAULT_BILLING_CONFIG
        assert not config.matched_in_system

    def test_config_missing_error_falls_back_to_default(self):
        resolver = Mock(side_effect=ConfigMissingError("p-1"))

        assert resolve_billing_config(resolver, "p-1", "c-1") is DEFAULT_BILLING_CONFIG

    def test_unassigned_project_never_looked_up(self):
        resolver = Mock()

        assert resolve_billing_config(resolver, None, None) is DEFAULT_BILLING_CONFIG
        resolver.assert_not_called()

    def test_custom_default(self):
        default = BillingConfig(rate=Decimal("75"), matched_in_system=False)

        assert resolve_billing_config(None, "p-1", "c-1", default) is default


class TestAggregateEntries:
    """Test folding entries into Company -> Project -> Task."""

    def test_sums_minutes_per_task(self, make_entry, standard_config):
        entries = [
            make_entry(entry_id="1", minutes=16),
            make_entry(entry_id="2", minutes=40),
            make_entry(entry_id="3", minutes=61),
            make_entry(entry_id="4", minutes=30, task_name="Review"),
        ]

        aggregated = aggregate_entries(entries, lambda p, c: standard_config)

        assert aggregated.entry_count == 4
        assert len(aggregated.companies) == 1
        project = aggregated.companies[0].projects[0]
        assert project.config is standard_config
        assert [(t.task_name, t.minutes, t.entry_count) for t in project.tasks] == [
            ("Development", 117, 3),
            ("Review", 30, 1),
        ]

    def test_missing_task_name_grouped_as_no_task(self, make_entry):
        aggregated = aggregate_entries([make_entry(task_name=None)])

        assert aggregated.companies[0].projects[0].tasks[0].task_name == "No Task"

    def test_missing_project_grouped_as_unassigned(self, make_entry):
        entries = [make_entry(project_id=None, client_id=None, minutes=20)]

        aggregated = aggregate_entries(entries)

        company = aggregated.companies[0]
        assert company.company_id == UNASSIGNED_ID
        assert company.company_name == "Unassigned"
        assert company.projects[0].project_id == UNASSIGNED_ID
        assert company.projects[0].config is DEFAULT_BILLING_CONFIG

    def test_missing_client_goes_to_unassigned_company(self, make_entry, standard_config):
        resolver = Mock(return_value=standard_config)

        aggregated = aggregate_entries([make_entry(client_id=None)], resolver)

        assert aggregated.companies[0].company_id == UNASSIGNED_ID
        assert aggregated.companies[0].projects[0].project_id == "p-1"
        resolver.assert_called_once_with("p-1", None)

    def test_negative_entry_rejected_without_corrupting_totals(self, make_entry):
        entries = [make_entry(entry_id="ok", minutes=30), make_entry(entry_id="bad", minutes=-30)]

        aggregated = aggregate_entries(entries)

        assert aggregated.entry_count == 1
        assert [r.entry.entry_id for r in aggregated.rejected_entries] == ["bad"]
        assert aggregated.companies[0].projects[0].actual_minutes == 30

    def test_config_resolved_once_per_project(self, make_entry, standard_config):
        resolver = Mock(return_value=standard_config)
        entries = [make_entry(entry_id=str(i), task_name=f"T{i % 3}") for i in range(9)]

        aggregate_entries(entries, resolver)

        assert resolver.call_count == 1

    def test_company_name_resolver_preferred(self, make_entry):
        aggregated = aggregate_entries([make_entry()], company_name_resolver=lambda cid: "Acme Corp")

        assert aggregated.companies[0].company_name == "Acme Corp"

    def test_company_name_falls_back_to_entry_name(self, make_entry):
        aggregated = aggregate_entries([make_entry()], company_name_resolver=lambda cid: None)

        assert aggregated.companies[0].company_name == "Acme"

    def test_known_name_preferred_over_unknown_placeholder(self, make_entry):
        entries = [
            make_entry(entry_id="1", project_name="Unknown Project"),
            make_entry(entry_id="2", project_name="Website"),
        ]

        aggregated = aggregate_entries(entries)

        assert aggregated.companies[0].projects[0].project_name == "Website"

    def test_canonical_ordering(self, make_entry):
        entries = [
            make_entry(entry_id="1", client_id="c-2", project_id="p-9"),
            make_entry(entry_id="2", client_id="c-1", project_id="p-5"),
            make_entry(entry_id="3", client_id="c-1", project_id="p-2"),
        ]

        aggregated = aggregate_entries(entries)

        assert [c.company_id for c in aggregated.companies] == ["c-1", "c-2"]
        assert [p.project_id for p in aggregated.companies[0].projects] == ["p-2", "p-5"]

    def test_same_project_id_under_two_companies(self, make_entry):
        entries = [
            make_entry(entry_id="1", client_id="c-2", project_id="p-1", minutes=30),
            make_entry(entry_id="2", client_id="c-1", project_id="p-1", minutes=10),
            make_entry(entry_id="3", client_id="c-2", project_id="p-1", minutes=5, task_name="QA"),
            make_entry(entry_id="4", client_id="c-1", project_id="p-1", minutes=20),
        ]

        aggregated = aggregate_entries(entries)

        first, second = aggregated.companies
        assert [t.task_name for t in first.projects[0].tasks] == ["Development"]
        assert first.projects[0].tasks[0].minutes == 30
        assert [(t.task_name, t.minutes) for t in second.projects[0].tasks] == [
            ("Development", 30),
            ("QA", 5),
        ]
        assert aggregated.entry_count == 4

    def test_input_order_does_not_change_result(self, make_entry, standard_config):
        entries = [
            make_entry(entry_id="1", minutes=16),
            make_entry(entry_id="2", minutes=44, task_name="Review"),
            make_entry(entry_id="3", minutes=7, project_id="p-2", project_name="Shop"),
            make_entry(entry_id="4", minutes=95, client_id="c-2", project_id="p-3"),
        ]
        resolver = lambda p, c: standard_config  # noqa: E731

        results = {
            repr(calculate_monthly_billing(aggregate_entries(list(perm), resolver)))
            for perm in itertools.permutations(entries)
        }

        assert len(results) == 1

    def test_empty_input(self):
        aggregated = aggregate_entries([])

        assert aggregated.is_empty
        assert aggregated.entry_count == 0


class TestProjectGroupKey:
    @pytest.mark.parametrize(
        "client_id,project_id,expected",
        [
            ("c-1", "p-1", ("c-1", "p-1")),
            (None, "p-1", (UNASSIGNED_ID, "p-1")),
            ("c-1", None, (UNASSIGNED_ID, UNASSIGNED_ID)),
            (None, None, (UNASSIGNED_ID, UNASSIGNED_ID)),
        ],
    )
    def test_key(self, client_id, project_id, expected):
        assert project_group_key(client_id, project_id) == expected
