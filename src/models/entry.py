"""Time entry models for the billing engine.

This module defines the CanonicalEntry model, the single shape every
downstream component works with, and the raw export row models for the
two supported time-tracking exports (Clockify and ClickUp).
"""

import datetime as dt
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.models.base import FrozenDataModel

NO_TASK = "No Task"


class SourceSystem(str, Enum):
    """Upstream system an entry was ingested from."""

    CLOCKIFY = "clockify"
    CLICKUP = "clickup"
    TIMESHEET = "timesheet"


class CanonicalEntry(FrozenDataModel):
    """A time record normalized to a fixed schema regardless of source.

    Entries are produced once per ingestion and never mutated. Project and
    client identifiers may be missing; the aggregation step groups such
    entries under the "unassigned" sentinel instead of dropping them.

    Attributes:
        source_system: System the entry came from
        entry_id: Identifier of the entry in the source system
        project_id: Source project identifier (None when missing)
        project_name: Project display name
        client_id: Source client identifier (None when missing)
        client_name: Client display name
        task_name: Task name (None when the entry has no task)
        user_name: Name of the person who tracked the time
        minutes: Duration in whole minutes
        date: Work date

    Example:
        >>> entry = CanonicalEntry(
        ...     source_system=SourceSystem.CLOCKIFY,
        ...     entry_id="e-1",
        ...     project_id="p-1",
        ...     client_id="c-1",
        ...     task_name="Development",
        ...     minutes=90,
        ...     date=dt.date(2026, 1, 15),
        ... )
        >>> entry.effective_task_name
        'Development'
    """

    source_system: SourceSystem = Field(..., description="Source system tag")
    entry_id: str = Field(default="", description="Source entry identifier")
    project_id: Optional[str] = Field(default=None, description="Project identifier")
    project_name: str = Field(default="Unknown Project", description="Project name")
    client_id: Optional[str] = Field(default=None, description="Client identifier")
    client_name: str = Field(default="Unknown Client", description="Client name")
    task_name: Optional[str] = Field(default=None, description="Task name")
    user_name: str = Field(default="Unknown User", description="User name")
    minutes: int = Field(..., description="Duration in minutes")
    date: dt.date = Field(..., description="Work date")

    @field_validator("project_id", "client_id", "task_name", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        """Treat blank identifiers and task names as missing."""
        if isinstance(v, str) and not v.strip():
            return None
        if isinstance(v, str):
            return v.strip()
        return v

    @property
    def effective_task_name(self) -> str:
        """Task name used for grouping ("No Task" when missing)."""
        return self.task_name or NO_TASK

    @property
    def month(self) -> dt.date:
        """First day of the billing month this entry belongs to."""
        return self.date.replace(day=1)


class _RawExportModel(BaseModel):
    """Base for raw export rows: unknown keys from the exporter are ignored."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ClockifyTimeInterval(_RawExportModel):
    """The timeInterval block of a Clockify time entry."""

    start: str
    end: Optional[str] = None
    duration: Any


class ClockifyTimeEntry(_RawExportModel):
    """One row of a Clockify JSON export (duration in seconds)."""

    id: str = Field(default="", alias="_id")
    project_id: Optional[str] = Field(default=None, alias="projectId")
    project_name: Optional[str] = Field(default=None, alias="projectName")
    client_id: Optional[str] = Field(default=None, alias="clientId")
    client_name: Optional[str] = Field(default=None, alias="clientName")
    description: Optional[str] = None
    user_name: Optional[str] = Field(default=None, alias="userName")
    time_interval: ClockifyTimeInterval = Field(..., alias="timeInterval")


class ClickUpTaskLocation(_RawExportModel):
    """Location of a ClickUp task; the space is the billing project."""

    space_id: Optional[str] = None
    folder_id: Optional[str] = None
    list_id: Optional[str] = None


class ClickUpTask(_RawExportModel):
    id: Optional[str] = None
    name: Optional[str] = None


class ClickUpUser(_RawExportModel):
    id: Optional[int] = None
    username: Optional[str] = None
    email: Optional[str] = None


class ClickUpTimeEntry(_RawExportModel):
    """One row of a ClickUp JSON export (duration and start in milliseconds)."""

    id: str = ""
    task_location: Optional[ClickUpTaskLocation] = None
    task: Optional[ClickUpTask] = None
    user: Optional[ClickUpUser] = None
    duration: str
    start: str

    @field_validator("duration", "start", mode="before")
    @classmethod
    def coerce_to_str(cls, v: Any) -> Any:
        """ClickUp sometimes emits numbers instead of numeric strings."""
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(int(v))
        return v


RawEntry = Dict[str, Any]
