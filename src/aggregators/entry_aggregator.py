"""Entry aggregator for folding canonical entries into billing groups.

This module groups canonical time entries of one billing month into the
Company -> Project -> Task hierarchy consumed by the billing calculator:
- Entries without a project or client are kept under the "unassigned" sentinel
- Entries with negative minutes are rejected, never folded in
- Billing configuration is resolved once per project
- Output ordering is canonical, so input order never affects the result

No rounding and no revenue happen here.
"""

import logging
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from src.errors import ComputationInvariantViolation, ConfigMissingError
from src.models.billing_config import DEFAULT_BILLING_CONFIG, BillingConfig
from src.models.entry import CanonicalEntry
from src.models.entry_group import (
    AggregatedEntries,
    CompanyEntryGroup,
    ProjectEntryGroup,
    RejectedEntry,
    TaskAggregate,
)

logger = logging.getLogger(__name__)

UNASSIGNED_ID = "unassigned"
UNASSIGNED_NAME = "Unassigned"

ConfigResolver = Callable[[Optional[str], Optional[str]], Optional[BillingConfig]]
CompanyNameResolver = Callable[[str], Optional[str]]


def validate_entry(entry: CanonicalEntry) -> None:
    """Check that an entry can be folded into the aggregates.

    Raises:
        ComputationInvariantViolation: If the entry has negative minutes
    """
    if entry.minutes < 0:
        raise ComputationInvariantViolation(
            f"Entry '{entry.entry_id}' has negative duration ({entry.minutes} minutes)"
        )


def resolve_billing_config(
    resolver: Optional[ConfigResolver],
    project_id: Optional[str],
    client_id: Optional[str],
    default: BillingConfig = DEFAULT_BILLING_CONFIG,
) -> BillingConfig:
    """Resolve the billing config for a project, falling back to the default.

    A resolver that returns None or raises ConfigMissingError yields the
    default config, which is flagged matched_in_system=False.

    Args:
        resolver: Callable (project_id, client_id) -> BillingConfig | None
        project_id: Project identifier (None for unassigned entries)
        client_id: Client identifier
        default: Config to fall back to

    Returns:
        The project's BillingConfig or the default config
    """
    if resolver is None or project_id is None:
        return default

    try:
        config = resolver(project_id, client_id)
    except ConfigMissingError as e:
        logger.warning(f"{e}; using default billing config")
        return default

    if config is None:
        logger.warning(
            f"No billing config for project '{project_id}'; using default billing config"
        )
        return default

    return config


def _pick_name(names: Iterable[str], fallback: str) -> str:
    """Pick a display name independent of entry order."""
    candidates = sorted({name for name in names if name})
    known = [name for name in candidates if not name.startswith("Unknown ")]
    if known:
        return known[0]
    if candidates:
        return candidates[0]
    return fallback


def project_group_key(client_id: Optional[str], project_id: Optional[str]) -> Tuple[str, str]:
    """Return (company_id, project_id) with the unassigned sentinel applied.

    Example:
        >>> project_group_key("c-1", "p-1")
        ('c-1', 'p-1')
        >>> project_group_key(None, "p-1")
        ('unassigned', 'p-1')
        >>> project_group_key("c-1", None)
        ('unassigned', 'unassigned')
    """
    if project_id is None:
        return UNASSIGNED_ID, UNASSIGNED_ID
    return client_id or UNASSIGNED_ID, project_id


def aggregate_entries(
    entries: Iterable[CanonicalEntry],
    config_resolver: Optional[ConfigResolver] = None,
    company_name_resolver: Optional[CompanyNameResolver] = None,
    default_config: BillingConfig = DEFAULT_BILLING_CONFIG,
) -> AggregatedEntries:
    """Fold canonical entries into the Company -> Project -> Task hierarchy.

    Args:
        entries: Canonical entries of one billing month
        config_resolver: Callable (project_id, client_id) -> BillingConfig | None
        company_name_resolver: Optional callable client_id -> company name
        default_config: Config for projects without a configuration

    Returns:
        AggregatedEntries with canonical ordering

    Example:
        >>> aggregated = aggregate_entries(entries, store.resolver_for_month(month))
        >>> [c.company_id for c in aggregated.companies]
        ['client-a', 'client-b']
    """
    # company_id -> project_id -> task name -> aggregate
    tree: Dict[str, Dict[str, Dict[str, TaskAggregate]]] = {}
    project_names: Dict[Tuple[str, str], List[str]] = {}
    company_names: Dict[str, List[str]] = {}
    rejected: List[RejectedEntry] = []
    entry_count = 0

    for entry in entries:
        try:
            validate_entry(entry)
        except ComputationInvariantViolation as e:
            logger.error(f"Rejected entry: {e}")
            rejected.append(RejectedEntry(entry=entry, reason=str(e)))
            continue

        company_id, project_id = project_group_key(entry.client_id, entry.project_id)
        tasks = tree.setdefault(company_id, {}).setdefault(project_id, {})

        task_name = entry.effective_task_name
        task = tasks.get(task_name)
        if task is None:
            task = TaskAggregate(task_name=task_name)
            tasks[task_name] = task
        task.minutes += entry.minutes
        task.entry_count += 1

        project_names.setdefault((company_id, project_id), []).append(entry.project_name)
        company_names.setdefault(company_id, []).append(entry.client_name)
        entry_count += 1

    companies: List[CompanyEntryGroup] = []
    for company_id in sorted(tree):
        company_name = _resolve_company_name(
            company_id, company_names[company_id], company_name_resolver
        )
        company = CompanyEntryGroup(company_id=company_id, company_name=company_name)

        projects = tree[company_id]
        for project_id in sorted(projects):
            is_unassigned = project_id == UNASSIGNED_ID
            config = resolve_billing_config(
                config_resolver,
                None if is_unassigned else project_id,
                None if company_id == UNASSIGNED_ID else company_id,
                default_config,
            )
            project_name = (
                UNASSIGNED_NAME
                if is_unassigned
                else _pick_name(project_names[(company_id, project_id)], "Unknown Project")
            )
            tasks = projects[project_id]
            company.projects.append(
                ProjectEntryGroup(
                    project_id=project_id,
                    project_name=project_name,
                    config=config,
                    tasks=[tasks[name] for name in sorted(tasks)],
                )
            )

        companies.append(company)

    logger.debug(
        f"Aggregated {entry_count} entries into {len(companies)} companies "
        f"({len(rejected)} rejected)"
    )

    return AggregatedEntries(
        companies=companies, rejected_entries=rejected, entry_count=entry_count
    )


def _resolve_company_name(
    company_id: str,
    entry_names: List[str],
    company_name_resolver: Optional[CompanyNameResolver],
) -> str:
    if company_id == UNASSIGNED_ID:
        return UNASSIGNED_NAME
    if company_name_resolver is not None:
        name = company_name_resolver(company_id)
        if name:
            return name
    return _pick_name(entry_names, "Unknown Client")
