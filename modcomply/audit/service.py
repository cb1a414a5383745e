"""Compliance service.

Facade over the engine: validate one module, a batch, or a whole tree of
modules, and auto-fix violations with an optional re-validation pass.
"""

import asyncio
from pathlib import Path
from typing import Any

import structlog

from modcomply import __version__
from modcomply.audit.batch import BatchOptions, BatchOrchestrator
from modcomply.audit.evaluator import RuleEvaluator
from modcomply.audit.fixer import AutoFixEngine, FixOptions
from modcomply.audit.reporter import ReportAggregator, ReportBuilder, compare_reports
from modcomply.audit.rules import RuleCatalog, build_default_catalog
from modcomply.audit.validator import ModuleValidator, ValidationOptions
from modcomply.config import ComplianceSettings, get_settings
from modcomply.discovery import DiscoveryOptions, ModuleDiscoverer, discover_module_paths
from modcomply.errors import NoModulesFoundError
from modcomply.models import (
    BatchResult,
    ComplianceRule,
    EcosystemSummary,
    FixStrategy,
    FixSummary,
    ValidationReport,
    ValidationResult,
)

logger = structlog.get_logger()


class ComplianceService:
    """Entry point for validation and auto-fix.

    Example:
        service = ComplianceService()
        report = await service.validate_module("packages/auth")
        if report.fixable_violations:
            summary, report = await service.fix("packages/auth")
    """

    def __init__(
        self,
        settings: ComplianceSettings | None = None,
        catalog: RuleCatalog | None = None,
    ):
        self.settings = settings or get_settings()
        self.catalog = catalog or build_default_catalog(self.settings)
        self.discoverer = ModuleDiscoverer(self.settings)
        self.evaluator = RuleEvaluator(self.catalog, self.settings)
        self.validator = ModuleValidator(self.catalog, self.discoverer, self.evaluator, ReportBuilder())
        self.orchestrator = BatchOrchestrator(self.validator, self.settings)
        self.fixer = AutoFixEngine(self.catalog, self.settings)
        self.aggregator = ReportAggregator()
        self._logger = logger.bind(component="ComplianceService")

    async def validate_module(
        self,
        path: str | Path,
        options: ValidationOptions | None = None,
    ) -> ValidationReport:
        """Validate a single module.

        Raises:
            ModuleRootNotFoundError: path is not a directory holding a manifest
            ModuleLoadError: the manifest is malformed
            ValidationProcessError: unexpected internal failure
        """
        return await self.validator.validate(path, options)

    async def validate_batch(
        self,
        paths: list[str | Path],
        options: BatchOptions | None = None,
    ) -> BatchResult:
        """Validate many modules; failures land in ``failed_items``."""
        options = options or BatchOptions()
        return await self.orchestrator.run(paths, options)

    async def validate_ecosystem(
        self,
        root_path: str | Path,
        options: BatchOptions | None = None,
        discovery: DiscoveryOptions | None = None,
    ) -> BatchResult:
        """Discover every module under ``root_path`` and validate them all.

        Raises:
            NoModulesFoundError: no module was found
        """
        discovery = discovery or DiscoveryOptions(max_depth=self.settings.max_depth)
        paths = await asyncio.to_thread(
            discover_module_paths, root_path, discovery, False, self.settings
        )
        if not paths:
            raise NoModulesFoundError(str(root_path))

        await self._logger.ainfo("Ecosystem discovered", root=str(root_path), modules=len(paths))
        return await self.validate_batch(paths, options)

    async def auto_fix(
        self,
        path: str | Path,
        violations: list[ValidationResult],
        options: FixOptions | None = None,
    ) -> FixSummary:
        """Fix violations in a module. Dry runs never touch the disk."""
        return await asyncio.to_thread(self.fixer.apply, path, violations, options)

    async def fix(
        self,
        path: str | Path,
        validation_options: ValidationOptions | None = None,
        fix_options: FixOptions | None = None,
    ) -> tuple[FixSummary, ValidationReport]:
        """Validate, fix what can be fixed, then validate again.

        Returns:
            The fix summary and the latest report. For dry runs the report
            is the one taken before fixing; otherwise it carries the changes
            since that earlier report.
        """
        fix_options = fix_options or FixOptions()
        before = await self.validate_module(path, validation_options)
        summary = await self.auto_fix(path, before.fixable_violations, fix_options)

        if fix_options.dry_run or summary.fixed_violations == 0:
            return summary, before

        after = await self.validate_module(path, validation_options)
        changes = compare_reports(after, before)
        await self._logger.ainfo(
            "Module re-validated after fix",
            module=after.module_id,
            score_before=before.overall_score,
            score_after=after.overall_score,
            fixed=len(changes.fixed_violations),
            regressions=len(changes.regressions),
        )
        return summary, after.model_copy(update={"changes_since_previous": changes})

    def summarize(self, batch: BatchResult | list[ValidationReport]) -> EcosystemSummary:
        """Aggregate a batch, or a list of reports, into an ecosystem summary."""
        reports = batch.reports if isinstance(batch, BatchResult) else batch
        return self.aggregator.summarize(reports)

    def get_rules(self) -> list[ComplianceRule]:
        return self.catalog.get_rules()

    def get_fix_strategies(self) -> list[FixStrategy]:
        return self.catalog.fix_strategies()

    def get_health_status(self) -> dict[str, Any]:
        rules = self.catalog.get_rules()
        unimplemented = [r.rule_id for r in rules if self.catalog.get_check(r.rule_id) is None]
        return {
            "status": "healthy" if not unimplemented else "degraded",
            "version": __version__,
            "rules": len(rules),
            "enabled_rules": sum(1 for r in rules if r.enabled),
            "fix_strategies": len(self.catalog.fix_strategies()),
            "unimplemented_rules": unimplemented,
            "catalog_frozen": self.catalog.frozen,
        }
