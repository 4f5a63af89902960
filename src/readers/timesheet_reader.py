"""Timesheet reader for the persisted timesheet rollup.

This module reads the daily timesheet rollup (one row per project, task,
user and day) that the primary billing path consumes, and converts it into
validated CanonicalEntry objects.
"""

import datetime as dt
import logging
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import pandas as pd
from pydantic import ValidationError

from src.errors import ParseError
from src.models.entry import CanonicalEntry, SourceSystem

logger = logging.getLogger(__name__)


class TimesheetReader:
    """Reader for the timesheet rollup CSV.

    Expected columns:
    - project_id: Source project identifier (may be blank)
    - project_name: Project display name
    - client_id: Source client identifier (may be blank)
    - client_name: Client display name
    - task_name: Task name (may be blank)
    - total_minutes: Minutes tracked on that day
    - work_date: Work date (YYYY-MM-DD)
    - user_name: Optional

    Example:
        >>> reader = TimesheetReader()
        >>> entries = reader.read_csv("exports/timesheet_daily_rollups.csv")
        >>> entries[0].source_system
        <SourceSystem.TIMESHEET: 'timesheet'>
    """

    REQUIRED_COLUMNS = [
        "project_id",
        "project_name",
        "client_id",
        "client_name",
        "task_name",
        "total_minutes",
        "work_date",
    ]

    def read_csv(self, path: Union[str, Path]) -> List[CanonicalEntry]:
        """Read and parse the rollup CSV.

        Args:
            path: Path to the CSV file

        Returns:
            List of validated CanonicalEntry objects

        Raises:
            ParseError: If the file cannot be read or required columns are missing
        """
        path = Path(path)
        try:
            df = pd.read_csv(path, dtype=str, keep_default_na=False)
        except (OSError, pd.errors.ParserError) as e:
            raise ParseError(f"Cannot read CSV: {e}", path.name) from e
        except pd.errors.EmptyDataError:
            logger.info(f"No data found in {path.name}")
            return []

        return self.read_dataframe(df, file_name=path.name)

    def read_dataframe(
        self, df: pd.DataFrame, file_name: Optional[str] = None
    ) -> List[CanonicalEntry]:
        """Parse rollup rows from a DataFrame."""
        missing = [column for column in self.REQUIRED_COLUMNS if column not in df.columns]
        if missing:
            raise ParseError(f"Missing required columns: {', '.join(missing)}", file_name)

        if df.empty:
            logger.info(f"No data found in {file_name or '<dataframe>'}")
            return []

        entries = []
        for index, row in df.iterrows():
            entry = self._parse_row(row.to_dict(), index)
            if entry:
                entries.append(entry)

        logger.info(
            f"Successfully parsed {len(entries)} timesheet entries "
            f"from {file_name or '<dataframe>'}"
        )
        return entries

    def _parse_row(self, row: Dict[str, Any], index: Any) -> Optional[CanonicalEntry]:
        """Parse a single rollup row.

        Returns:
            CanonicalEntry if the row is valid, None if it should be skipped
        """
        date_str = self._clean(row.get("work_date"))
        minutes_str = self._clean(row.get("total_minutes"))

        # Skip empty rows
        if not date_str and not minutes_str:
            return None

        try:
            work_date = dt.date.fromisoformat(date_str[:10])
        except ValueError as e:
            logger.warning(f"Skipping row {index} with invalid date '{date_str}': {e}")
            return None

        minutes = self._parse_minutes(minutes_str)
        if minutes is None:
            logger.warning(f"Skipping row {index} with invalid minutes '{minutes_str}'")
            return None

        try:
            return CanonicalEntry(
                source_system=SourceSystem.TIMESHEET,
                entry_id=f"row-{index}",
                project_id=self._clean(row.get("project_id")),
                project_name=self._clean(row.get("project_name")) or "Unknown Project",
                client_id=self._clean(row.get("client_id")),
                client_name=self._clean(row.get("client_name")) or "Unknown Client",
                task_name=self._clean(row.get("task_name")),
                user_name=self._clean(row.get("user_name")) or "Unknown User",
                minutes=minutes,
                date=work_date,
            )
        except ValidationError as e:
            logger.warning(f"Skipping row {index}: {e}")
            return None

    @staticmethod
    def _parse_minutes(value: str) -> Optional[int]:
        """Whole minutes ("117" or "117.0"), or None for anything else."""
        try:
            minutes = Decimal(value)
        except InvalidOperation:
            return None
        if not minutes.is_finite() or minutes != minutes.to_integral_value():
            return None
        return int(minutes)

    @staticmethod
    def _clean(value: Any) -> str:
        if value is None:
            return ""
        text = str(value).strip()
        return "" if text.lower() == "nan" else text
