"""Batch validation with bounded concurrency.

Paths are processed in consecutive chunks of ``max_parallel``. Workers in a
chunk run concurrently and post their outcome onto a queue; one aggregator
task owns the success and failure lists and fires the callbacks.
"""

import asyncio
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

import structlog

from modcomply.audit.validator import ModuleValidator, ValidationOptions
from modcomply.config import ComplianceSettings, get_settings
from modcomply.errors import BatchValidationError
from modcomply.models import (
    BatchItemError,
    BatchItemResult,
    BatchMetrics,
    BatchProgress,
    BatchResult,
    ValidationReport,
)

logger = structlog.get_logger()

ProgressCallback = Callable[[BatchProgress], None]
ItemCallback = Callable[[str, ValidationReport], None]


@dataclass
class BatchOptions:
    """Options for batch validation."""

    max_parallel: int | None = None
    continue_on_error: bool = True
    on_progress: ProgressCallback | None = None
    on_item_complete: ItemCallback | None = None
    validation: ValidationOptions | None = None


@dataclass
class _Outcome:
    item: str
    report: ValidationReport | None = None
    error: BaseException | None = None


class _Aggregator:
    """Sole writer of the batch accumulator."""

    def __init__(self, total: int, options: BatchOptions, log):
        self.total = total
        self.options = options
        self.successes: list[BatchItemResult] = []
        self.failures: list[BatchItemError] = []
        self._log = log

    async def run(self, queue: asyncio.Queue) -> None:
        while True:
            outcome = await queue.get()
            try:
                if outcome is None:
                    return
                await self._record(outcome)
            finally:
                queue.task_done()

    async def _record(self, outcome: _Outcome) -> None:
        if outcome.report is not None:
            self.successes.append(BatchItemResult(item=outcome.item, result=outcome.report))
            if self.options.on_item_complete:
                await self._fire("on_item_complete", self.options.on_item_complete, outcome.item, outcome.report)
        else:
            self.failures.append(BatchItemError(item=outcome.item, error=str(outcome.error)))

        if self.options.on_progress:
            done = len(self.successes) + len(self.failures)
            progress = BatchProgress(
                total=self.total,
                completed=done,
                failed=len(self.failures),
                percentage=round(done / self.total * 100) if self.total else 100,
            )
            await self._fire("on_progress", self.options.on_progress, progress)

    async def _fire(self, name: str, callback: Callable, *args) -> None:
        try:
            callback(*args)
        except Exception as e:
            await self._log.awarning("Batch callback raised", callback=name, error=str(e))


class BatchOrchestrator:
    """Validates many modules with bounded concurrency."""

    def __init__(self, validator: ModuleValidator, settings: ComplianceSettings | None = None):
        self.validator = validator
        self.settings = settings or get_settings()
        self._logger = logger.bind(component="BatchOrchestrator")

    async def run(
        self,
        paths: list[str | Path],
        options: BatchOptions | None = None,
    ) -> BatchResult:
        """Validate every path.

        Args:
            paths: Module root paths
            options: Batch options

        Returns:
            Batch result accounting for every path

        Raises:
            BatchValidationError: a module failed and ``continue_on_error`` is off
        """
        options = options or BatchOptions()
        items = [str(p) for p in paths]
        max_parallel = options.max_parallel
        if max_parallel is None:
            max_parallel = self.settings.max_parallel
        chunk_size = max(1, max_parallel)
        operation_id = uuid.uuid4().hex
        start = time.perf_counter()

        await self._logger.ainfo(
            "Batch validation started",
            operation_id=operation_id,
            items=len(items),
            max_parallel=chunk_size,
        )

        queue: asyncio.Queue = asyncio.Queue()
        aggregator = _Aggregator(len(items), options, self._logger)
        aggregator_task = asyncio.create_task(aggregator.run(queue))

        try:
            for offset in range(0, len(items), chunk_size):
                chunk = items[offset:offset + chunk_size]
                outcomes = await asyncio.gather(
                    *(self._validate_item(item, options.validation, queue) for item in chunk)
                )
                await queue.join()

                if not options.continue_on_error:
                    failed = next((o for o in outcomes if o.error is not None), None)
                    if failed is not None:
                        await self._logger.aerror(
                            "Batch validation stopped",
                            operation_id=operation_id,
                            item=failed.item,
                            error=str(failed.error),
                        )
                        raise BatchValidationError(failed.item, str(failed.error)) from failed.error
        finally:
            await queue.put(None)
            await aggregator_task

        elapsed_ms = int((time.perf_counter() - start) * 1000)
        total = len(items)
        successes = aggregator.successes
        result = BatchResult(
            operation_id=operation_id,
            total_items=total,
            success=not aggregator.failures,
            successful_results=successes,
            failed_items=aggregator.failures,
            metrics=BatchMetrics(
                total_time=elapsed_ms,
                average_time_per_item=round(elapsed_ms / total, 2) if total else 0.0,
                success_rate=round(len(successes) / total * 100, 2) if total else 100.0,
                throughput=round(total / (elapsed_ms / 1000), 2) if elapsed_ms else float(total),
            ),
        )

        await self._logger.ainfo(
            "Batch validation complete",
            operation_id=operation_id,
            succeeded=len(successes),
            failed=len(aggregator.failures),
            duration_ms=elapsed_ms,
        )
        return result

    async def _validate_item(
        self,
        item: str,
        options: ValidationOptions | None,
        queue: asyncio.Queue,
    ) -> _Outcome:
        try:
            outcome = _Outcome(item, report=await self.validator.validate(item, options))
        except Exception as e:
            await self._logger.awarning("Module validation failed", item=item, error=str(e))
            outcome = _Outcome(item, error=e)
        await queue.put(outcome)
        return outcome
