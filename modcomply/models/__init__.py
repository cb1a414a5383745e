"""Data models for the compliance engine."""

from .module import Module, ModuleFile, ModuleType
from .rule import (
    ComplianceRule,
    FixStrategy,
    RiskLevel,
    RuleApplicability,
    RuleCategory,
    RuleSeverity,
)
from .report import (
    STATUS_PRECEDENCE,
    CategoryCount,
    ComplianceMetrics,
    PerformanceMetrics,
    ReportChanges,
    SeverityCount,
    ValidationConfig,
    ValidationReport,
    ValidationResult,
    ValidationStatus,
)
from .batch import (
    BatchItemError,
    BatchItemResult,
    BatchMetrics,
    BatchProgress,
    BatchResult,
    EcosystemSummary,
    ModuleScore,
    ScoreDistribution,
    ViolationCount,
)
from .fix import FixOutcome, FixStatus, FixSummary

__all__ = [
    # Module
    "Module",
    "ModuleFile",
    "ModuleType",
    # Rules
    "ComplianceRule",
    "FixStrategy",
    "RiskLevel",
    "RuleApplicability",
    "RuleCategory",
    "RuleSeverity",
    # Reports
    "STATUS_PRECEDENCE",
    "CategoryCount",
    "ComplianceMetrics",
    "PerformanceMetrics",
    "ReportChanges",
    "SeverityCount",
    "ValidationConfig",
    "ValidationReport",
    "ValidationResult",
    "ValidationStatus",
    # Batch
    "BatchItemError",
    "BatchItemResult",
    "BatchMetrics",
    "BatchProgress",
    "BatchResult",
    "EcosystemSummary",
    "ModuleScore",
    "ScoreDistribution",
    "ViolationCount",
    # Fix
    "FixOutcome",
    "FixStatus",
    "FixSummary",
]
