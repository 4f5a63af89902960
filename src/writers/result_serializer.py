"""JSON persistence for monthly billing results.

Money is stored as integer cents, hours and rates as decimal strings, so
a result reloads without any binary floating point on the way.
"""

import datetime as dt
import json
import logging
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from src.calculators.billing_calculator import build_company_result, build_monthly_result
from src.calculators.rounding import from_cents, to_cents
from src.errors import ParseError
from src.models.billing_result import (
    AdjustmentType,
    BillingAdjustment,
    MonthlyBillingResult,
    ProjectBillingResult,
    TaskBillingResult,
)
from src.utils.month_utils import format_month, parse_month

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1

_PROJECT_HOURS = (
    "actual_hours",
    "rounded_hours",
    "carryover_in",
    "adjusted_hours",
    "billed_hours",
    "unbillable_hours",
    "carryover_out",
    "minimum_padding",
)


def _hours(value: Optional[Decimal]) -> Optional[str]:
    return None if value is None else f"{value:.2f}"


def _decimal(value: Optional[str]) -> Optional[Decimal]:
    return None if value is None else Decimal(value)


def _require_object(value: Any, what: str) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise TypeError(f"{what} must be a JSON object, got {type(value).__name__}")
    return value


def _require_list(value: Any, what: str) -> List[Any]:
    if not isinstance(value, list):
        raise TypeError(f"{what} must be a JSON array, got {type(value).__name__}")
    return value


def task_to_dict(task: TaskBillingResult) -> Dict[str, Any]:
    return {
        "task_name": task.task_name,
        "actual_minutes": task.actual_minutes,
        "rounded_minutes": task.rounded_minutes,
        "actual_hours": _hours(task.actual_hours),
        "rounded_hours": _hours(task.rounded_hours),
        "base_revenue_cents": to_cents(task.base_revenue),
    }


def project_to_dict(project: ProjectBillingResult) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "project_id": project.project_id,
        "project_name": project.project_name,
        "actual_minutes": project.actual_minutes,
        "rounded_minutes": project.rounded_minutes,
    }
    for name in _PROJECT_HOURS:
        data[name] = _hours(getattr(project, name))
    data.update(
        {
            "minimum_applied": project.minimum_applied,
            "maximum_applied": project.maximum_applied,
            "has_billing_limits": project.has_billing_limits,
            "base_revenue_cents": to_cents(project.base_revenue),
            "billed_revenue_cents": to_cents(project.billed_revenue),
            "rate": str(project.rate),
            "rounding_increment": project.rounding_increment,
            "matched_in_system": project.matched_in_system,
            "adjustment": {
                "type": project.adjustment.type.value,
                "limit_hours": _hours(project.adjustment.limit_hours),
                "hours": _hours(project.adjustment.hours),
            },
            "tasks": [task_to_dict(task) for task in project.tasks],
        }
    )
    return data


def result_to_dict(
    result: MonthlyBillingResult,
    month: Optional[dt.date] = None,
    generated_at: Optional[dt.datetime] = None,
) -> Dict[str, Any]:
    """Convert a monthly result into a JSON-ready dictionary.

    Company and month totals are not stored; they are exact sums and are
    rebuilt on load.
    """
    return {
        "format_version": FORMAT_VERSION,
        "month": format_month(month) if month else None,
        "generated_at": (generated_at or dt.datetime.now(dt.timezone.utc)).isoformat(),
        "billed_revenue_cents": to_cents(result.billed_revenue),
        "companies": [
            {
                "company_id": company.company_id,
                "company_name": company.company_name,
                "projects": [project_to_dict(project) for project in company.projects],
            }
            for company in result.companies
        ],
    }


def task_from_dict(data: Dict[str, Any]) -> TaskBillingResult:
    return TaskBillingResult(
        task_name=data["task_name"],
        actual_minutes=int(data["actual_minutes"]),
        rounded_minutes=int(data["rounded_minutes"]),
        actual_hours=Decimal(data["actual_hours"]),
        rounded_hours=Decimal(data["rounded_hours"]),
        base_revenue=from_cents(data["base_revenue_cents"]),
    )


def project_from_dict(data: Dict[str, Any]) -> ProjectBillingResult:
    adjustment = _require_object(data.get("adjustment") or {}, "Adjustment")
    hours = {name: Decimal(data[name]) for name in _PROJECT_HOURS}

    return ProjectBillingResult(
        project_id=data.get("project_id"),
        project_name=data["project_name"],
        actual_minutes=int(data["actual_minutes"]),
        rounded_minutes=int(data["rounded_minutes"]),
        minimum_applied=bool(data["minimum_applied"]),
        maximum_applied=bool(data["maximum_applied"]),
        has_billing_limits=bool(data["has_billing_limits"]),
        base_revenue=from_cents(data["base_revenue_cents"]),
        billed_revenue=from_cents(data["billed_revenue_cents"]),
        rate=Decimal(data["rate"]),
        rounding_increment=int(data["rounding_increment"]),
        matched_in_system=bool(data.get("matched_in_system", True)),
        adjustment=BillingAdjustment(
            type=AdjustmentType(adjustment.get("type", AdjustmentType.NONE.value)),
            limit_hours=_decimal(adjustment.get("limit_hours")),
            hours=_decimal(adjustment.get("hours")) or Decimal("0.00"),
        ),
        tasks=[
            task_from_dict(_require_object(task, "Task"))
            for task in _require_list(data.get("tasks", []), "tasks")
        ],
        **hours,
    )


def result_from_dict(data: Any) -> MonthlyBillingResult:
    """Rebuild a monthly result, recomputing company and month totals.

    Raises:
        TypeError: If the document, a company or a project is not an object
    """
    data = _require_object(data, "Billing result")
    companies = []
    for company in _require_list(data.get("companies", []), "companies"):
        company = _require_object(company, "Company")
        projects = [
            project_from_dict(_require_object(project, "Project"))
            for project in _require_list(company.get("projects", []), "projects")
        ]
        companies.append(
            build_company_result(company["company_id"], company["company_name"], projects)
        )
    return build_monthly_result(companies)


class ResultSerializer:
    """Save and load monthly billing results as JSON files.

    Example:
        >>> serializer = ResultSerializer()
        >>> serializer.save(result, "output/billing_2026-01.json", month=month)
        >>> persisted = serializer.load("output/billing_2026-01.json")
        >>> persisted.billed_revenue == result.billed_revenue
        True
    """

    def save(
        self,
        result: MonthlyBillingResult,
        path: Union[str, Path],
        month: Optional[dt.date] = None,
        generated_at: Optional[dt.datetime] = None,
    ) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        data = result_to_dict(result, month=month, generated_at=generated_at)
        path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        logger.info(f"Saved billing result to {path}")
        return path

    def load(self, path: Union[str, Path]) -> MonthlyBillingResult:
        """Load a persisted result.

        Raises:
            ParseError: If the file is missing, not JSON, or malformed
        """
        path = Path(path)
        data = self._read_json(path)

        try:
            result = result_from_dict(data)
        except (KeyError, TypeError, ValueError, ArithmeticError) as e:
            raise ParseError(f"Malformed billing result: {e}", path.name) from e

        logger.info(f"Loaded billing result from {path}")
        return result

    def load_month(self, path: Union[str, Path]) -> Optional[dt.date]:
        """Read the billing month recorded in a persisted result, if any.

        Raises:
            ParseError: If the file is missing, not JSON, or malformed
        """
        path = Path(path)
        data = self._read_json(path)
        try:
            month = _require_object(data, "Billing result").get("month")
            return parse_month(month) if month else None
        except (TypeError, ValueError) as e:
            raise ParseError(f"Malformed billing result: {e}", path.name) from e

    @staticmethod
    def _read_json(path: Path) -> Any:
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except OSError as e:
            raise ParseError(f"Cannot read billing result: {e}", path.name) from e
        except json.JSONDecodeError as e:
            raise ParseError(f"Invalid JSON: {e}", path.name) from e
