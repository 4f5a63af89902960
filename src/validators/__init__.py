"""Reconciliation layer: recompute billing from raw sources and compare."""

from src.validators.reconciliation import (
    ExpectedValues,
    ReconciliationEngine,
    SourceProjectGroup,
    compare_with_tolerance,
    create_check,
    expected_from_result,
    group_entries_by_project,
)
from src.validators.result_comparison import (
    ComparisonStatus,
    ProjectComparison,
    ResultComparison,
    compare_billing_results,
)
from src.validators.validation_report import (
    ProjectValidationResult,
    ValidationCheck,
    ValidationReport,
    ValidationStatus,
    ValidationSummary,
    format_validation_check,
)

__all__ = [
    "ReconciliationEngine",
    "ExpectedValues",
    "SourceProjectGroup",
    "compare_with_tolerance",
    "create_check",
    "expected_from_result",
    "group_entries_by_project",
    "ComparisonStatus",
    "ProjectComparison",
    "ResultComparison",
    "compare_billing_results",
    "ProjectValidationResult",
    "ValidationCheck",
    "ValidationReport",
    "ValidationStatus",
    "ValidationSummary",
    "format_validation_check",
]
