"""Unit tests for TimesheetReader."""

from datetime import date

import pandas as pd
import pytest

from src.errors import ParseError
from src.models.entry import SourceSystem
from src.readers.timesheet_reader import TimesheetReader

HEADER = "project_id,project_name,client_id,client_name,task_name,total_minutes,work_date,user_name"


class TestTimesheetReader:
    """Test TimesheetReader functionality."""

    @pytest.fixture
    def reader(self):
        return TimesheetReader()

    @pytest.fixture
    def rollup_csv(self, tmp_path):
        path = tmp_path / "timesheet_daily_rollups.csv"
        path.write_text(
            "\n".join(
                [
                    HEADER,
                    "p-1,Website,c-1,Acme,Development,117,2026-01-15,Jane Doe",
                    "p-2,Shop,c-1,Acme,,30,2026-01-16,",
                    "p-1,Website,c-1,Acme,Review,abc,2026-01-17,Jane Doe",
                    "p-1,Website,c-1,Acme,Review,15,not-a-date,Jane Doe",
                    ",,,,,,,",
                ]
            ),
            encoding="utf-8",
        )
        return path

    def test_read_csv(self, reader, rollup_csv):
        entries = reader.read_csv(rollup_csv)

        assert len(entries) == 2
        first = entries[0]
        assert first.source_system == SourceSystem.TIMESHEET
        assert first.entry_id == "row-0"
        assert first.project_id == "p-1"
        assert first.client_name == "Acme"
        assert first.minutes == 117
        assert first.date == date(2026, 1, 15)
        assert first.user_name == "Jane Doe"

    def test_blank_fields_become_defaults(self, reader, rollup_csv):
        second = reader.read_csv(rollup_csv)[1]

        assert second.task_name is None
        assert second.user_name == "Unknown User"

    @pytest.mark.parametrize("minutes", ["inf", "-inf", "nan", "12.7", "1e-3"])
    def test_bad_minutes_row_skipped(self, reader, tmp_path, minutes):
        path = tmp_path / "rollup.csv"
        path.write_text(
            "\n".join(
                [
                    HEADER,
                    "p-1,Website,c-1,Acme,Development,117,2026-01-15,Jane Doe",
                    f"p-1,Website,c-1,Acme,Review,{minutes},2026-01-16,Jane Doe",
                ]
            ),
            encoding="utf-8",
        )

        entries = reader.read_csv(path)

        assert [entry.minutes for entry in entries] == [117]

    def test_whole_float_minutes_accepted(self, reader, tmp_path):
        path = tmp_path / "rollup.csv"
        path.write_text(
            HEADER + "\np-1,Website,c-1,Acme,Development,90.0,2026-01-15,Jane Doe\n",
            encoding="utf-8",
        )

        assert reader.read_csv(path)[0].minutes == 90

    def test_missing_required_columns(self, reader, tmp_path):
        path = tmp_path / "bad.csv"
        path.write_text("project_id,total_minutes\np-1,30\n", encoding="utf-8")

        with pytest.raises(ParseError, match="Missing required columns") as exc_info:
            reader.read_csv(path)

        assert exc_info.value.file_name == "bad.csv"

    def test_missing_file(self, reader, tmp_path):
        with pytest.raises(ParseError, match="Cannot read CSV"):
            reader.read_csv(tmp_path / "missing.csv")

    def test_header_only(self, reader, tmp_path):
        path = tmp_path / "empty.csv"
        path.write_text(HEADER + "\n", encoding="utf-8")

        assert reader.read_csv(path) == []

    def test_read_dataframe(self, reader):
        df = pd.DataFrame(
            [
                {
                    "project_id": "p-1",
                    "project_name": "Website",
                    "client_id": "c-1",
                    "client_name": "Acme",
                    "task_name": "Development",
                    "total_minutes": "45",
                    "work_date": "2026-01-15",
                }
            ]
        )

        entries = reader.read_dataframe(df, "frame")

        assert entries[0].minutes == 45
        assert entries[0].user_name == "Unknown User"
