"""Rule evaluator.

Runs the applicable rules against one module, one at a time. A rule that
raises or stalls never aborts the run: it becomes an ERROR result and the
next rule starts.
"""

import asyncio
import contextvars
import threading
import time
import uuid
from typing import Any, Callable

import structlog

from modcomply.audit.checks import CheckOutcome
from modcomply.audit.rules import RuleCatalog
from modcomply.config import ComplianceSettings, get_settings
from modcomply.errors import RuleExecutionError
from modcomply.models import ComplianceRule, Module, ValidationResult, ValidationStatus

logger = structlog.get_logger()


def run_detached(func: Callable[..., Any], *args: Any, name: str | None = None) -> asyncio.Future:
    """Run ``func`` in its own daemon thread and return a future for its result.

    Unlike ``asyncio.to_thread`` no pooled worker is held, so a call that
    never returns cannot starve later calls or delay interpreter exit.
    Cancelling the future abandons the thread.
    """
    loop = asyncio.get_running_loop()
    future: asyncio.Future = loop.create_future()
    context = contextvars.copy_context()

    def settle(value: Any, error: Exception | None) -> None:
        if future.done():
            return
        if error is not None:
            future.set_exception(error)
        else:
            future.set_result(value)

    def worker() -> None:
        value, error = None, None
        try:
            value = context.run(func, *args)
        except Exception as e:
            error = e
        try:
            loop.call_soon_threadsafe(settle, value, error)
        except RuntimeError:
            # Loop already closed; nobody is waiting any more.
            pass

    threading.Thread(target=worker, name=name, daemon=True).start()
    return future


class RuleEvaluator:
    """Evaluates rules against a module with per-rule deadlines."""

    def __init__(
        self,
        catalog: RuleCatalog,
        settings: ComplianceSettings | None = None,
        rule_timeout: float | None = None,
    ):
        self.catalog = catalog
        self.settings = settings or get_settings()
        self.rule_timeout = rule_timeout if rule_timeout is not None else self.settings.rule_timeout
        self._logger = logger.bind(component="RuleEvaluator")

    async def evaluate(
        self,
        module: Module,
        rules: list[ComplianceRule],
        timeout: float | None = None,
    ) -> list[ValidationResult]:
        """Evaluate rules sequentially, in order.

        Args:
            module: The module under validation
            rules: Rules to run, already filtered for applicability
            timeout: Per-rule deadline in seconds, overriding the default

        Returns:
            One result per rule, in rule order
        """
        results: list[ValidationResult] = []
        for rule in rules:
            results.append(await self.evaluate_rule(module, rule, timeout))

        await self._logger.adebug(
            "Rules evaluated",
            module=module.module_id,
            rules=len(rules),
            violations=sum(1 for r in results if r.is_violation),
        )
        return results

    async def evaluate_rule(
        self,
        module: Module,
        rule: ComplianceRule,
        timeout: float | None = None,
    ) -> ValidationResult:
        """Evaluate a single rule, converting failures into an ERROR result."""
        timeout = timeout if timeout is not None else self.rule_timeout
        start = time.perf_counter()
        check = self.catalog.get_check(rule.rule_id)

        if check is None:
            outcome = CheckOutcome.failed(f"Rule {rule.rule_id} is not implemented", can_auto_fix=False)
        else:
            try:
                outcome = await asyncio.wait_for(
                    run_detached(check, module, name=f"rule-{rule.rule_id}"),
                    timeout=timeout,
                )
                if not isinstance(outcome, CheckOutcome):
                    raise RuleExecutionError(
                        rule.rule_id, f"check returned {type(outcome).__name__}, not CheckOutcome"
                    )
            except asyncio.TimeoutError:
                # The check thread is left to finish on its own; its result is discarded.
                outcome = CheckOutcome(
                    ValidationStatus.ERROR,
                    f"Rule execution timed out after {timeout:g}s",
                    can_auto_fix=False,
                )
                await self._logger.awarning(
                    "Rule timed out",
                    module=module.module_id,
                    rule_id=rule.rule_id,
                    timeout=timeout,
                )
            except Exception as e:
                reason = e.reason if isinstance(e, RuleExecutionError) else str(e) or type(e).__name__
                outcome = CheckOutcome(
                    ValidationStatus.ERROR,
                    f"Rule execution failed: {reason}",
                    can_auto_fix=False,
                    context={"error_type": type(e).__name__},
                )
                await self._logger.awarning(
                    "Rule execution failed",
                    module=module.module_id,
                    rule_id=rule.rule_id,
                    error=reason,
                )

        return self._to_result(rule, outcome, int((time.perf_counter() - start) * 1000))

    def _to_result(self, rule: ComplianceRule, outcome: CheckOutcome, elapsed_ms: int) -> ValidationResult:
        failing = outcome.status != ValidationStatus.PASS
        can_auto_fix = rule.can_auto_fix if outcome.can_auto_fix is None else outcome.can_auto_fix
        return ValidationResult(
            result_id=uuid.uuid4().hex,
            rule_id=rule.rule_id,
            rule_name=rule.name,
            status=outcome.status,
            severity=rule.severity,
            category=rule.category,
            message=outcome.message,
            file_path=outcome.file_path,
            line_number=outcome.line_number,
            remediation=rule.remediation if failing else "",
            can_auto_fix=failing and can_auto_fix,
            execution_time=elapsed_ms,
            context=outcome.context,
        )
