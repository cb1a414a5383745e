"""Single-module validation pipeline: discover, select rules, evaluate, report."""

import asyncio
import time
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from modcomply.audit.evaluator import RuleEvaluator
from modcomply.audit.reporter import ReportBuilder
from modcomply.audit.rules import RuleCatalog
from modcomply.discovery import DiscoveryOptions, ModuleDiscoverer
from modcomply.errors import ComplianceError, ValidationProcessError
from modcomply.models import ValidationReport

logger = structlog.get_logger()


@dataclass
class ValidationOptions:
    """Options for validating one module."""

    include_rules: list[str] = field(default_factory=list)
    exclude_rules: list[str] = field(default_factory=list)
    discovery: DiscoveryOptions = field(default_factory=DiscoveryOptions)
    # Per-rule deadline override, in seconds
    rule_timeout: float | None = None


class ModuleValidator:
    """Validates one module end to end."""

    def __init__(
        self,
        catalog: RuleCatalog,
        discoverer: ModuleDiscoverer,
        evaluator: RuleEvaluator,
        builder: ReportBuilder | None = None,
    ):
        self.catalog = catalog
        self.discoverer = discoverer
        self.evaluator = evaluator
        self.builder = builder or ReportBuilder()
        self._logger = logger.bind(component="ModuleValidator")

    async def validate(
        self,
        path: str | Path,
        options: ValidationOptions | None = None,
    ) -> ValidationReport:
        """Validate the module rooted at ``path``.

        Raises:
            ModuleRootNotFoundError: path is not a module root
            ModuleLoadError: the manifest is malformed
            ValidationProcessError: any other failure in the pipeline
        """
        options = options or ValidationOptions()
        start = time.perf_counter()

        try:
            module = await asyncio.to_thread(self.discoverer.discover, path, options.discovery)
            rules = self.catalog.applicable_rules(module, options.include_rules, options.exclude_rules)
            results = await self.evaluator.evaluate(module, rules, options.rule_timeout)

            elapsed_ms = int((time.perf_counter() - start) * 1000)
            report = self.builder.build(
                module,
                results,
                included_rules=[rule.rule_id for rule in rules],
                excluded_rules=list(options.exclude_rules),
                total_time=elapsed_ms,
            )
        except ComplianceError:
            raise
        except Exception as e:
            await self._logger.aerror("Validation failed", path=str(path), error=str(e))
            raise ValidationProcessError(str(path), str(e)) from e

        await self._logger.ainfo(
            "Module validated",
            module=module.module_id,
            score=report.overall_score,
            status=report.status.value,
            duration_ms=elapsed_ms,
        )
        return report
