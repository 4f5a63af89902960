"""Unit tests for export parser."""

import datetime as dt
import json
from decimal import Decimal

import pytest

from src.errors import ParseError
from src.models.entry import SourceSystem
from src.readers.export_parser import (
    PARSERS,
    ExportReader,
    detect_source,
    filter_entries_by_date_range,
    filter_entries_by_month,
    get_unique_months,
    parse_clickup,
    parse_clockify,
    parse_duration_seconds,
    parse_export,
)


class TestParseDurationSeconds:
    @pytest.mark.parametrize(
        "value,expected",
        [
            (90, Decimal("90")),
            ("3600", Decimal("3600")),
            ("PT1H30M", Decimal("5400")),
            ("PT45S", Decimal("45")),
            ("PT2H", Decimal("7200")),
        ],
    )
    def test_valid_durations(self, value, expected):
        assert parse_duration_seconds(value) == expected

    @pytest.mark.parametrize("value", [-1, "-60", "PT", "abc", None, True])
    def test_invalid_durations(self, value):
        with pytest.raises(ValueError):
            parse_duration_seconds(value)


class TestParseClockify:
    """Test Clockify export parsing."""

    def test_parses_entries_and_skips_bad_rows(self, sample_clockify_export):
        entries = parse_clockify(json.dumps(sample_clockify_export), "clockify.json")

        assert [e.entry_id for e in entries] == ["ck-1", "ck-2"]
        first = entries[0]
        assert first.source_system == SourceSystem.CLOCKIFY
        assert first.minutes == 61  # 3660 s
        assert first.project_id == "p-1"
        assert first.client_name == "Acme"
        assert first.task_name == "Development"
        assert first.date == dt.date(2026, 1, 15)
        assert entries[1].minutes == 16

    def test_partial_minutes_round_up(self):
        export = {
            "timeentries": [
                {"timeInterval": {"start": "2026-01-15T09:00:00Z", "duration": 61}}
            ]
        }

        assert parse_clockify(export)[0].minutes == 2

    def test_array_wrapper(self, sample_clockify_export):
        entries = parse_clockify(json.dumps([sample_clockify_export]))

        assert len(entries) == 2

    def test_empty_export_returns_empty_list(self):
        assert parse_clockify('{"timeentries": []}') == []

    def test_missing_time_entries(self):
        with pytest.raises(ParseError, match="missing timeentries array"):
            parse_clockify('{"entries": []}', "clockify.json")

    def test_invalid_json_names_file(self):
        with pytest.raises(ParseError) as exc_info:
            parse_clockify("{not json", "broken.json")

        assert exc_info.value.file_name == "broken.json"
        assert "broken.json" in str(exc_info.value)


class TestParseClickUp:
    """Test ClickUp export parsing."""

    def test_space_is_project_and_client(self, sample_clickup_export):
        entries = parse_clickup(json.dumps(sample_clickup_export))

        assert len(entries) == 1
        entry = entries[0]
        assert entry.source_system == SourceSystem.CLICKUP
        assert entry.project_id == "s-1"
        assert entry.client_id == "s-1"
        assert entry.project_name == "Mobile App"
        assert entry.client_name == "Mobile App"
        assert entry.task_name == "Design"
        assert entry.user_name == "sam"
        assert entry.minutes == 45
        assert entry.date == dt.date(2026, 1, 15)

    def test_milliseconds_truncated_to_seconds_then_rounded_up(self, sample_clickup_export):
        sample_clickup_export["timeentries"][0]["duration"] = "61999"

        assert parse_clickup(sample_clickup_export)[0].minutes == 2

    def test_unknown_space_name(self, sample_clickup_export):
        sample_clickup_export["spaceLookup"] = {}

        assert parse_clickup(sample_clickup_export)[0].project_name == "Unknown Project"

    def test_negative_duration_skipped(self, sample_clickup_export):
        sample_clickup_export["timeentries"][0]["duration"] = "-1000"

        assert parse_clickup(sample_clickup_export) == []


class TestDetectAndDispatch:
    def test_detect_clickup_by_lookup(self, sample_clickup_export):
        assert detect_source(sample_clickup_export) == SourceSystem.CLICKUP

    def test_detect_clockify_by_time_interval(self, sample_clockify_export):
        assert detect_source(sample_clockify_export) == SourceSystem.CLOCKIFY

    def test_detect_clickup_by_duration(self):
        data = {"timeentries": [{"duration": "1000", "start": "0"}]}

        assert detect_source(data) == SourceSystem.CLICKUP

    def test_undetectable(self):
        with pytest.raises(ParseError, match="Unable to detect source format"):
            detect_source({"timeentries": []})

    def test_parse_export_detects(self, sample_clickup_export):
        entries = parse_export(json.dumps(sample_clickup_export))

        assert entries[0].source_system == SourceSystem.CLICKUP

    def test_parse_export_unsupported_source(self, sample_clockify_export):
        with pytest.raises(ParseError, match="Unsupported source format"):
            parse_export(sample_clockify_export, "harvest")

    def test_parsers_registry(self):
        assert PARSERS[SourceSystem.CLOCKIFY] is parse_clockify
        assert PARSERS[SourceSystem.CLICKUP] is parse_clickup


class TestExportReader:
    def test_read_file(self, write_json, sample_clockify_export):
        path = write_json("clockify.json", sample_clockify_export)

        entries = ExportReader().read_file(path)

        assert len(entries) == 2

    def test_read_files(self, write_json, sample_clockify_export, sample_clickup_export):
        paths = {
            SourceSystem.CLOCKIFY: write_json("clockify.json", sample_clockify_export),
            SourceSystem.CLICKUP: write_json("clickup.json", sample_clickup_export),
        }

        entries = ExportReader().read_files(paths)

        assert len(entries) == 3

    def test_missing_file(self, tmp_path):
        with pytest.raises(ParseError, match="Cannot read file"):
            ExportReader().read_file(tmp_path / "missing.json")


class TestEntryFilters:
    @pytest.fixture
    def entries(self, make_entry):
        return [
            make_entry(entry_id="1", date=dt.date(2025, 12, 31)),
            make_entry(entry_id="2", date=dt.date(2026, 1, 1)),
            make_entry(entry_id="3", date=dt.date(2026, 1, 31)),
            make_entry(entry_id="4", date=dt.date(2026, 2, 1)),
        ]

    def test_filter_by_month(self, entries):
        january = filter_entries_by_month(entries, dt.date(2026, 1, 20))

        assert [e.entry_id for e in january] == ["2", "3"]

    def test_filter_by_date_range_inclusive(self, entries):
        selected = filter_entries_by_date_range(entries, dt.date(2026, 1, 31), dt.date(2026, 2, 1))

        assert [e.entry_id for e in selected] == ["3", "4"]

    def test_unique_months(self, entries):
        assert get_unique_months(entries) == [
            dt.date(2025, 12, 1),
            dt.date(2026, 1, 1),
            dt.date(2026, 2, 1),
        ]
