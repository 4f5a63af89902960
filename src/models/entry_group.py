"""Aggregation containers.

Company -> Project -> Task groups of canonical entries for one billing
month, produced by the entry aggregator and consumed by the billing
calculator. Derived per run.
"""

from dataclasses import dataclass, field
from typing import List

from src.models.billing_config import BillingConfig
from src.models.entry import CanonicalEntry


@dataclass
class TaskAggregate:
    """Summed minutes for one task within one project.

    Attributes:
        task_name: Task name ("No Task" for entries without one)
        minutes: Unrounded sum of entry minutes
        entry_count: Number of entries folded into this task
    """

    task_name: str
    minutes: int = 0
    entry_count: int = 0


@dataclass
class ProjectEntryGroup:
    """Tasks of one project together with its resolved billing config."""

    project_id: str
    project_name: str
    config: BillingConfig
    tasks: List[TaskAggregate] = field(default_factory=list)

    @property
    def actual_minutes(self) -> int:
        return sum(task.minutes for task in self.tasks)


@dataclass
class CompanyEntryGroup:
    """Projects of one company (client)."""

    company_id: str
    company_name: str
    projects: List[ProjectEntryGroup] = field(default_factory=list)


@dataclass
class RejectedEntry:
    """An entry refused by the aggregator and the reason why."""

    entry: CanonicalEntry
    reason: str


@dataclass
class AggregatedEntries:
    """Output of the entry aggregator.

    Attributes:
        companies: Company groups sorted by company id
        rejected_entries: Entries that violated a computation invariant
        entry_count: Number of entries folded into the groups
    """

    companies: List[CompanyEntryGroup] = field(default_factory=list)
    rejected_entries: List[RejectedEntry] = field(default_factory=list)
    entry_count: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.companies
