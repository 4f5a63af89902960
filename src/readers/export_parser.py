"""Export parser for Clockify and ClickUp time-tracking exports.

This module converts raw JSON exports into validated CanonicalEntry objects.

Supported formats:
- Clockify: duration in seconds (number, numeric string or ISO-8601
  "PT#H#M#S"), date taken from timeInterval.start
- ClickUp: duration and start as millisecond strings, the space is both
  project and client, names come from the spaceLookup table

Both formats arrive either as an object holding "timeentries" or as a
single-element array wrapping that object.
"""

import datetime as dt
import json
import logging
import math
import re
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from pydantic import ValidationError

from src.errors import ParseError
from src.models.entry import (
    CanonicalEntry,
    ClickUpTimeEntry,
    ClockifyTimeEntry,
    RawEntry,
    SourceSystem,
)

logger = logging.getLogger(__name__)

_ISO_DURATION = re.compile(
    r"^PT(?:(?P<hours>\d+)H)?(?:(?P<minutes>\d+)M)?(?:(?P<seconds>\d+(?:\.\d+)?)S)?$"
)


def _load_export(content: Union[str, bytes, Any], file_name: Optional[str]) -> Dict[str, Any]:
    """Decode JSON content and unwrap the optional array wrapper."""
    if isinstance(content, (str, bytes)):
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise ParseError(f"Invalid JSON: {e}", file_name) from e
    else:
        data = content

    if isinstance(data, list):
        data = data[0] if data else {}

    if not isinstance(data, dict):
        raise ParseError("Export must be a JSON object", file_name)

    return data


def _get_time_entries(
    export: Dict[str, Any], source_label: str, file_name: Optional[str]
) -> List[RawEntry]:
    time_entries = export.get("timeentries")
    if not isinstance(time_entries, list):
        raise ParseError(
            f"Invalid {source_label} format: missing timeentries array", file_name
        )
    return time_entries


def parse_duration_seconds(value: Any) -> Decimal:
    """Parse a Clockify duration into seconds.

    Args:
        value: Number of seconds, numeric string, or ISO-8601 duration

    Returns:
        Duration in seconds

    Raises:
        ValueError: If the value is not a recognizable non-negative duration

    Example:
        >>> parse_duration_seconds("PT1H30M")
        Decimal('5400')
        >>> parse_duration_seconds(90)
        Decimal('90')
    """
    if isinstance(value, bool) or value is None:
        raise ValueError(f"Invalid duration: {value!r}")

    if isinstance(value, str):
        text = value.strip()
        match = _ISO_DURATION.match(text)
        if match and text != "PT":
            hours = int(match.group("hours") or 0)
            minutes = int(match.group("minutes") or 0)
            seconds = Decimal(match.group("seconds") or "0")
            return Decimal(hours * 3600 + minutes * 60) + seconds
        value = text

    try:
        seconds = Decimal(str(value))
    except InvalidOperation as e:
        raise ValueError(f"Invalid duration: {value!r}") from e

    if not seconds.is_finite():
        raise ValueError(f"Invalid duration: {value!r}")
    if seconds < 0:
        raise ValueError(f"Negative duration: {value!r}")
    return seconds


def seconds_to_minutes(seconds: Decimal) -> int:
    """Convert seconds to whole minutes, rounding partial minutes up."""
    return math.ceil(seconds / 60)


def _parse_clockify_row(row: RawEntry) -> CanonicalEntry:
    raw = ClockifyTimeEntry.model_validate(row)
    seconds = parse_duration_seconds(raw.time_interval.duration)
    work_date = dt.date.fromisoformat(raw.time_interval.start[:10])

    return CanonicalEntry(
        source_system=SourceSystem.CLOCKIFY,
        entry_id=raw.id,
        project_id=raw.project_id,
        project_name=raw.project_name or "Unknown Project",
        client_id=raw.client_id,
        client_name=raw.client_name or "Unknown Client",
        task_name=raw.description,
        user_name=raw.user_name or "Unknown User",
        minutes=seconds_to_minutes(seconds),
        date=work_date,
    )


def _parse_clickup_row(row: RawEntry, space_lookup: Dict[str, str]) -> CanonicalEntry:
    raw = ClickUpTimeEntry.model_validate(row)

    milliseconds = int(raw.duration)
    if milliseconds < 0:
        raise ValueError(f"Negative duration: {raw.duration!r}")
    # ms -> whole seconds -> minutes rounded up
    minutes = math.ceil((milliseconds // 1000) / 60)

    started = dt.datetime.fromtimestamp(int(raw.start) / 1000, tz=dt.timezone.utc)

    space_id = raw.task_location.space_id if raw.task_location else None
    space_name = space_lookup.get(space_id, "Unknown Project") if space_id else "Unknown Project"

    return CanonicalEntry(
        source_system=SourceSystem.CLICKUP,
        entry_id=raw.id,
        project_id=space_id,
        project_name=space_name,
        client_id=space_id,
        client_name=space_name,
        task_name=raw.task.name if raw.task else None,
        user_name=(raw.user.username if raw.user else None) or "Unknown User",
        minutes=minutes,
        date=started.date(),
    )


def _parse_rows(
    rows: Iterable[RawEntry],
    parse_row: Callable[[RawEntry], CanonicalEntry],
    source_label: str,
    file_name: Optional[str],
) -> List[CanonicalEntry]:
    """Parse rows, dropping the ones that cannot be normalized."""
    entries = []
    skipped = 0

    for index, row in enumerate(rows):
        try:
            entries.append(parse_row(row))
        except (ValidationError, ValueError, TypeError, OverflowError) as e:
            skipped += 1
            logger.warning(
                f"Skipping {source_label} entry #{index} in {file_name or '<input>'}: {e}"
            )

    if not entries:
        logger.info(f"No {source_label} entries found in {file_name or '<input>'}")
    else:
        logger.info(
            f"Parsed {len(entries)} {source_label} entries from {file_name or '<input>'}"
            + (f" ({skipped} skipped)" if skipped else "")
        )
    return entries


def parse_clockify(content: Any, file_name: Optional[str] = None) -> List[CanonicalEntry]:
    """Parse a Clockify JSON export into canonical entries.

    Args:
        content: Raw JSON text (or already-decoded data)
        file_name: Name of the source file, used in error messages

    Returns:
        List of CanonicalEntry objects (empty when the export has no entries)

    Raises:
        ParseError: If the content is not valid JSON or lacks "timeentries"
    """
    export = _load_export(content, file_name)
    rows = _get_time_entries(export, "Clockify", file_name)
    return _parse_rows(rows, _parse_clockify_row, "Clockify", file_name)


def parse_clickup(content: Any, file_name: Optional[str] = None) -> List[CanonicalEntry]:
    """Parse a ClickUp JSON export into canonical entries.

    Args:
        content: Raw JSON text (or already-decoded data)
        file_name: Name of the source file, used in error messages

    Returns:
        List of CanonicalEntry objects (empty when the export has no entries)

    Raises:
        ParseError: If the content is not valid JSON or lacks "timeentries"
    """
    export = _load_export(content, file_name)
    rows = _get_time_entries(export, "ClickUp", file_name)
    space_lookup = export.get("spaceLookup") or {}
    if not isinstance(space_lookup, dict):
        space_lookup = {}

    return _parse_rows(
        rows, lambda row: _parse_clickup_row(row, space_lookup), "ClickUp", file_name
    )


PARSERS: Dict[SourceSystem, Callable[..., List[CanonicalEntry]]] = {
    SourceSystem.CLOCKIFY: parse_clockify,
    SourceSystem.CLICKUP: parse_clickup,
}


def detect_source(data: Any, file_name: Optional[str] = None) -> SourceSystem:
    """Detect the export format from its structure.

    Args:
        data: Raw JSON text or decoded export

    Returns:
        SourceSystem.CLICKUP or SourceSystem.CLOCKIFY

    Raises:
        ParseError: If the format cannot be determined
    """
    export = _load_export(data, file_name)

    if "spaceLookup" in export or "folderLookup" in export:
        return SourceSystem.CLICKUP

    time_entries = export.get("timeentries")
    first = time_entries[0] if isinstance(time_entries, list) and time_entries else None

    if isinstance(first, dict):
        interval = first.get("timeInterval")
        if isinstance(interval, dict) and "duration" in interval:
            return SourceSystem.CLOCKIFY
        if "duration" in first:
            return SourceSystem.CLICKUP

    raise ParseError("Unable to detect source format", file_name)


def parse_export(
    content: Any,
    source: Optional[Union[SourceSystem, str]] = None,
    file_name: Optional[str] = None,
) -> List[CanonicalEntry]:
    """Parse an export, detecting the format when no source is given.

    Example:
        >>> entries = parse_export(Path("clockify.json").read_text(), "clockify")
    """
    export = _load_export(content, file_name)

    if source is None:
        source_system = detect_source(export, file_name)
    else:
        try:
            source_system = SourceSystem(source)
        except ValueError as e:
            raise ParseError(f"Unsupported source format: {source}", file_name) from e

    parser = PARSERS.get(source_system)
    if parser is None:
        raise ParseError(f"Unsupported source format: {source_system.value}", file_name)

    return parser(export, file_name=file_name)


class ExportReader:
    """Reader for time-tracking export files on disk.

    Example:
        >>> reader = ExportReader()
        >>> entries = reader.read_file("exports/clickup.json")
        >>> entries[0].source_system
        <SourceSystem.CLICKUP: 'clickup'>
    """

    def read_file(
        self, path: Union[str, Path], source: Optional[Union[SourceSystem, str]] = None
    ) -> List[CanonicalEntry]:
        """Read and parse one export file.

        Raises:
            ParseError: If the file cannot be read or parsed
        """
        path = Path(path)
        try:
            content = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ParseError(f"Cannot read file: {e}", path.name) from e

        logger.debug(f"Reading export {path}")
        return parse_export(content, source, file_name=path.name)

    def read_files(
        self, paths: Dict[SourceSystem, Optional[Union[str, Path]]]
    ) -> List[CanonicalEntry]:
        """Read one optional export per source system and concatenate them."""
        entries: List[CanonicalEntry] = []
        for source, path in paths.items():
            if path:
                entries.extend(self.read_file(path, source))
        return entries


def filter_entries_by_date_range(
    entries: Iterable[CanonicalEntry],
    start_date: Optional[dt.date] = None,
    end_date: Optional[dt.date] = None,
) -> List[CanonicalEntry]:
    """Keep entries within [start_date, end_date]; open ends are unbounded."""
    filtered = []
    for entry in entries:
        if start_date and entry.date < start_date:
            continue
        if end_date and entry.date > end_date:
            continue
        filtered.append(entry)
    return filtered


def filter_entries_by_month(
    entries: Iterable[CanonicalEntry], month: dt.date
) -> List[CanonicalEntry]:
    """Keep entries whose date falls in the month containing `month`."""
    month_start = month.replace(day=1)
    return [entry for entry in entries if entry.month == month_start]


def get_unique_months(entries: Iterable[CanonicalEntry]) -> List[dt.date]:
    """Return the sorted first-of-month dates present in the entries."""
    return sorted({entry.month for entry in entries})
