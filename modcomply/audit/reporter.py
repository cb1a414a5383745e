"""Report building and aggregation.

Turns a module's result list into a scored, statused ``ValidationReport``
and many reports into an ``EcosystemSummary``. Everything here is a pure
function of its inputs.
"""

import uuid
from collections import Counter

import structlog

from modcomply.models import (
    STATUS_PRECEDENCE,
    CategoryCount,
    ComplianceMetrics,
    EcosystemSummary,
    Module,
    ModuleScore,
    PerformanceMetrics,
    ReportChanges,
    RuleSeverity,
    ScoreDistribution,
    SeverityCount,
    ValidationConfig,
    ValidationReport,
    ValidationResult,
    ValidationStatus,
    ViolationCount,
)

logger = structlog.get_logger()

SEVERITY_PENALTY: dict[RuleSeverity, int] = {
    RuleSeverity.CRITICAL: 25,
    RuleSeverity.ERROR: 15,
    RuleSeverity.WARNING: 5,
    RuleSeverity.AUTO_FIX: 5,
}

STATUS_WEIGHT: dict[ValidationStatus, float] = {
    ValidationStatus.PASS: 0.0,
    ValidationStatus.PARTIAL: 0.5,
    ValidationStatus.WARNING: 0.5,
    ValidationStatus.FAIL: 1.0,
    ValidationStatus.ERROR: 1.0,
}

TOP_VIOLATIONS_LIMIT = 10


def calculate_score(results: list[ValidationResult]) -> int:
    """Score a result list: 100 minus weighted penalties, clamped to 0..100."""
    penalty = sum(
        SEVERITY_PENALTY[r.severity] * STATUS_WEIGHT[r.status]
        for r in results
    )
    return max(0, min(100, round(100 - penalty)))


def calculate_status(results: list[ValidationResult]) -> ValidationStatus:
    """Worst status wins; an empty list passes."""
    if not results:
        return ValidationStatus.PASS
    return max((r.status for r in results), key=STATUS_PRECEDENCE.__getitem__)


def calculate_metrics(results: list[ValidationResult]) -> ComplianceMetrics:
    status_counts = Counter(r.status for r in results)
    severity_breakdown: dict[str, SeverityCount] = {}
    category_breakdown: dict[str, CategoryCount] = {}

    for r in results:
        passed = r.status == ValidationStatus.PASS
        severity = severity_breakdown.setdefault(r.severity.value, SeverityCount())
        if passed:
            severity.passed += 1
        else:
            severity.failed += 1

        if r.category is not None:
            category = category_breakdown.setdefault(r.category.value, CategoryCount())
            category.total += 1
            if passed:
                category.passed += 1
            else:
                category.failed += 1

    return ComplianceMetrics(
        total_rules=len(results),
        passed_rules=status_counts[ValidationStatus.PASS],
        failed_rules=status_counts[ValidationStatus.FAIL],
        warning_rules=status_counts[ValidationStatus.WARNING],
        partial_rules=status_counts[ValidationStatus.PARTIAL],
        error_rules=status_counts[ValidationStatus.ERROR],
        severity_breakdown=severity_breakdown,
        category_breakdown=category_breakdown,
        auto_fixable_violations=sum(
            1 for r in results if r.can_auto_fix and r.status == ValidationStatus.FAIL
        ),
    )


def _priority(severity: RuleSeverity) -> str:
    match severity:
        case RuleSeverity.CRITICAL:
            return "HIGH"
        case RuleSeverity.ERROR:
            return "MEDIUM"
        case _:
            return "LOW"


def generate_recommendations(results: list[ValidationResult]) -> list[str]:
    """One line per violation; violations of one category sharing a remediation are merged."""
    groups: dict[tuple[str, str], list[ValidationResult]] = {}
    for r in results:
        if not r.is_violation:
            continue
        category = r.category.value if r.category else "general"
        remediation = r.remediation or r.message
        groups.setdefault((category, remediation), []).append(r)

    recommendations = []
    for (category, remediation), grouped in groups.items():
        worst = max(grouped, key=lambda r: SEVERITY_PENALTY[r.severity])
        rule_ids = ", ".join(dict.fromkeys(r.rule_id for r in grouped))
        recommendations.append(f"[{_priority(worst.severity)}] {category}: {remediation} ({rule_ids})")

    fixable = list(dict.fromkeys(
        r.rule_id for r in results
        if r.can_auto_fix and r.status == ValidationStatus.FAIL
    ))
    if fixable:
        recommendations.append(
            f"Run auto-fix to resolve {len(fixable)} violation(s) automatically ({', '.join(fixable)})"
        )
    return recommendations


def compare_reports(current: ValidationReport, previous: ValidationReport) -> ReportChanges:
    """Diff two reports of the same module by rule id.

    A violation is new when its rule was not violated before; it is also a
    regression when the rule had passed. A violation is fixed when its rule
    passes now.
    """
    before = {r.rule_id: r for r in previous.results}
    after = {r.rule_id: r for r in current.results}

    new_violations = [
        rule_id for rule_id, r in after.items()
        if r.is_violation and not (rule_id in before and before[rule_id].is_violation)
    ]
    regressions = [
        rule_id for rule_id in new_violations
        if rule_id in before and before[rule_id].status == ValidationStatus.PASS
    ]
    fixed_violations = [
        rule_id for rule_id, r in before.items()
        if r.is_violation and rule_id in after and after[rule_id].status == ValidationStatus.PASS
    ]

    return ReportChanges(
        previous_report_id=previous.report_id,
        score_change=current.overall_score - previous.overall_score,
        new_violations=new_violations,
        fixed_violations=fixed_violations,
        regressions=regressions,
    )


class ReportBuilder:
    """Builds validation reports from rule results."""

    def build(
        self,
        module: Module,
        results: list[ValidationResult],
        included_rules: list[str] | None = None,
        excluded_rules: list[str] | None = None,
        total_time: int = 0,
    ) -> ValidationReport:
        """Aggregate results into a report.

        Args:
            module: The validated module
            results: Rule results in evaluation order
            included_rules: Rule ids that ran
            excluded_rules: Rule ids filtered out
            total_time: Validation wall time in milliseconds

        Returns:
            The scored report
        """
        seconds = total_time / 1000
        return ValidationReport(
            report_id=uuid.uuid4().hex,
            module_id=module.module_id,
            module_name=module.name,
            module_path=module.path,
            module_type=module.module_type,
            overall_score=calculate_score(results),
            status=calculate_status(results),
            results=list(results),
            recommendations=generate_recommendations(results),
            metrics=calculate_metrics(results),
            performance=PerformanceMetrics(
                total_time=total_time,
                rules_per_second=round(len(results) / seconds, 2) if seconds > 0 else 0.0,
                files_scanned=len(module.regular_files()),
            ),
            validation_config=ValidationConfig(
                included_rules=list(included_rules or []),
                excluded_rules=list(excluded_rules or []),
            ),
        )


class ReportAggregator:
    """Summarizes many module reports."""

    def __init__(self):
        self._logger = logger.bind(component="ReportAggregator")

    def summarize(self, reports: list[ValidationReport]) -> EcosystemSummary:
        if not reports:
            return EcosystemSummary()

        distribution = ScoreDistribution()
        for report in reports:
            score = report.overall_score
            if score >= 90:
                distribution.excellent += 1
            elif score >= 80:
                distribution.good += 1
            elif score >= 70:
                distribution.fair += 1
            else:
                distribution.poor += 1

        status_distribution = Counter(r.status.value for r in reports)
        violation_counts = Counter(
            result.rule_id
            for report in reports
            for result in report.results
            if result.is_violation
        )

        summary = EcosystemSummary(
            total_modules=len(reports),
            average_score=round(sum(r.overall_score for r in reports) / len(reports)),
            score_distribution=distribution,
            status_distribution=dict(status_distribution),
            top_violations=[
                ViolationCount(rule_id=rule_id, count=count)
                for rule_id, count in violation_counts.most_common(TOP_VIOLATIONS_LIMIT)
            ],
            module_scores=[
                ModuleScore(module_id=r.module_id, score=r.overall_score, status=r.status)
                for r in reports
            ],
        )

        self._logger.info(
            "Ecosystem summarized",
            modules=summary.total_modules,
            average_score=summary.average_score,
        )
        return summary
