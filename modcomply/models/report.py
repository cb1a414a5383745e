"""Validation result and report models.

These are the structures exchanged across the system boundary. Renderers,
CI jobs and git hooks depend on the field names and on the status and
severity values, so changes must be additive.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from modcomply.models.module import ModuleType
from modcomply.models.rule import RuleCategory, RuleSeverity


class ValidationStatus(str, Enum):
    """Outcome of one rule, or of a whole module."""

    PASS = "PASS"
    FAIL = "FAIL"
    WARNING = "WARNING"
    PARTIAL = "PARTIAL"
    ERROR = "ERROR"


# Worst status wins when aggregating.
STATUS_PRECEDENCE: dict[ValidationStatus, int] = {
    ValidationStatus.PASS: 0,
    ValidationStatus.PARTIAL: 1,
    ValidationStatus.WARNING: 2,
    ValidationStatus.FAIL: 3,
    ValidationStatus.ERROR: 4,
}


class ValidationResult(BaseModel):
    """One rule's outcome for one module."""

    model_config = ConfigDict(frozen=True)

    result_id: str
    rule_id: str
    rule_name: str = ""
    status: ValidationStatus
    severity: RuleSeverity
    category: RuleCategory | None = None
    message: str
    file_path: str | None = None
    line_number: int | None = None
    remediation: str = ""
    can_auto_fix: bool = False
    execution_time: int = Field(default=0, description="Milliseconds")
    context: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_violation(self) -> bool:
        return self.status in (ValidationStatus.FAIL, ValidationStatus.ERROR)


class SeverityCount(BaseModel):
    passed: int = 0
    failed: int = 0


class CategoryCount(BaseModel):
    passed: int = 0
    failed: int = 0
    total: int = 0


class ComplianceMetrics(BaseModel):
    """Counts derived from a module's results."""

    total_rules: int = 0
    passed_rules: int = 0
    failed_rules: int = 0
    warning_rules: int = 0
    partial_rules: int = 0
    error_rules: int = 0
    severity_breakdown: dict[str, SeverityCount] = Field(default_factory=dict)
    category_breakdown: dict[str, CategoryCount] = Field(default_factory=dict)
    auto_fixable_violations: int = 0


class PerformanceMetrics(BaseModel):
    total_time: int = Field(default=0, description="Milliseconds")
    rules_per_second: float = 0.0
    files_scanned: int = 0


class ValidationConfig(BaseModel):
    """Which rules ran."""

    included_rules: list[str] = Field(default_factory=list)
    excluded_rules: list[str] = Field(default_factory=list)


class ReportChanges(BaseModel):
    """Rule-level differences from an earlier report of the same module.

    Rule ids are listed in the order they appear in the newer report,
    except ``fixed_violations`` which follows the older one.
    """

    model_config = ConfigDict(frozen=True)

    previous_report_id: str
    score_change: int = 0
    new_violations: list[str] = Field(default_factory=list)
    fixed_violations: list[str] = Field(default_factory=list)
    regressions: list[str] = Field(default_factory=list, description="Passed before, violated now")


class ValidationReport(BaseModel):
    """One module's full, scored validation outcome."""

    model_config = ConfigDict(frozen=True)

    report_id: str
    module_id: str
    module_name: str
    module_path: str
    module_type: ModuleType
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    overall_score: int = Field(..., ge=0, le=100)
    status: ValidationStatus
    results: list[ValidationResult] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    metrics: ComplianceMetrics = Field(default_factory=ComplianceMetrics)
    performance: PerformanceMetrics = Field(default_factory=PerformanceMetrics)
    validation_config: ValidationConfig = Field(default_factory=ValidationConfig)
    changes_since_previous: ReportChanges | None = None

    @property
    def violations(self) -> list[ValidationResult]:
        """Results with FAIL or ERROR status."""
        return [r for r in self.results if r.is_violation]

    @property
    def fixable_violations(self) -> list[ValidationResult]:
        return [
            r for r in self.results
            if r.can_auto_fix and r.status == ValidationStatus.FAIL
        ]

    def get_result(self, rule_id: str) -> ValidationResult | None:
        for result in self.results:
            if result.rule_id == rule_id:
                return result
        return None
