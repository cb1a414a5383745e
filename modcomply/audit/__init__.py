"""Compliance audit pipeline.

Rules are checked against discovered modules, results are scored into
reports, batches run with bounded concurrency, and fixable violations
are repaired from templates.
"""

from .checks import CheckOutcome, RuleCheck, is_test_file
from .rules import BUILTIN_RULES, RuleCatalog, build_default_catalog
from .evaluator import RuleEvaluator
from .reporter import (
    ReportAggregator,
    ReportBuilder,
    calculate_metrics,
    calculate_score,
    calculate_status,
    compare_reports,
    generate_recommendations,
)
from .validator import ModuleValidator, ValidationOptions
from .batch import BatchOptions, BatchOrchestrator
from .fixer import AutoFixEngine, FixAction, FixContext, FixOptions
from .service import ComplianceService

__all__ = [
    # Checks
    "CheckOutcome",
    "RuleCheck",
    "is_test_file",
    # Catalog
    "BUILTIN_RULES",
    "RuleCatalog",
    "build_default_catalog",
    # Evaluation
    "RuleEvaluator",
    "ModuleValidator",
    "ValidationOptions",
    # Reports
    "ReportAggregator",
    "ReportBuilder",
    "calculate_metrics",
    "calculate_score",
    "calculate_status",
    "compare_reports",
    "generate_recommendations",
    # Batch
    "BatchOptions",
    "BatchOrchestrator",
    # Fix
    "AutoFixEngine",
    "FixAction",
    "FixContext",
    "FixOptions",
    # Service
    "ComplianceService",
]
