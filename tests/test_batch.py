"""Tests for batch validation."""

import asyncio
from pathlib import Path

import pytest

from modcomply.audit import BatchOptions, BatchOrchestrator, ReportAggregator
from modcomply.config import ComplianceSettings
from modcomply.errors import BatchValidationError, ModuleRootNotFoundError
from modcomply.models import BatchProgress, ValidationStatus


class RecordingValidator:
    """Validator stand-in that records concurrency and start order."""

    def __init__(self, delegate=None, delay: float = 0.01):
        self.delegate = delegate
        self.delay = delay
        self.started: list[str] = []
        self.active = 0
        self.max_active = 0

    async def validate(self, path, options=None):
        self.started.append(str(path))
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(self.delay)
            if self.delegate is not None:
                return await self.delegate.validate(path, options)
            raise ModuleRootNotFoundError(str(path))
        finally:
            self.active -= 1


@pytest.fixture
def ecosystem(make_module, tmp_path: Path) -> list[Path]:
    """Seven modules: five compliant, two missing README and tests."""
    parent = tmp_path / "packages"
    compliant = [make_module(f"service-{i}", parent=parent) for i in range(5)]
    lacking = [
        make_module(f"legacy-{i}", parent=parent, readme=None, tests=False)
        for i in range(2)
    ]
    return compliant + lacking


class TestBatchOrchestrator:
    """Tests for BatchOrchestrator."""

    @pytest.mark.asyncio
    async def test_seven_module_batch(self, service, ecosystem):
        """Test a mixed batch and its ecosystem summary."""
        result = await service.orchestrator.run(ecosystem, BatchOptions(max_parallel=3))

        assert result.success
        assert result.total_items == 7
        assert len(result.successful_results) == 7
        assert result.failed_items == []

        summary = ReportAggregator().summarize(result.reports)
        assert summary.status_distribution.get("PASS", 0) >= 5
        failing = summary.status_distribution.get("FAIL", 0) + summary.status_distribution.get("WARNING", 0)
        assert failing >= 2
        assert {v.rule_id for v in summary.top_violations[:2]} == {
            "README_EXISTS",
            "TEST_DIRECTORY_REQUIRED",
        }

    @pytest.mark.asyncio
    async def test_partial_failure_is_isolated(self, service, compliant_module, tmp_path):
        """Test that a bad path becomes a failed item."""
        missing = tmp_path / "nowhere"
        (tmp_path / "no-manifest").mkdir()

        result = await service.orchestrator.run([compliant_module, missing, tmp_path / "no-manifest"])

        assert not result.success
        assert result.total_items == 3
        assert [i.item for i in result.successful_results] == [str(compliant_module)]
        assert {f.item for f in result.failed_items} == {str(missing), str(tmp_path / "no-manifest")}
        assert all("No module found" in f.error for f in result.failed_items)
        assert result.metrics.success_rate == pytest.approx(33.33)

    @pytest.mark.asyncio
    async def test_callbacks(self, service, ecosystem, tmp_path):
        """Test progress after every item and item callbacks on success only."""
        progress: list[BatchProgress] = []
        completed: list[str] = []
        paths = ecosystem[:3] + [tmp_path / "missing"]

        await service.orchestrator.run(paths, BatchOptions(
            max_parallel=2,
            on_progress=progress.append,
            on_item_complete=lambda item, report: completed.append(item),
        ))

        assert len(progress) == 4
        assert [p.completed for p in progress] == [1, 2, 3, 4]
        assert progress[-1].percentage == 100
        assert progress[-1].failed == 1
        assert sorted(completed) == sorted(str(p) for p in ecosystem[:3])

    @pytest.mark.asyncio
    async def test_callback_errors_are_ignored(self, service, ecosystem):
        """Test that a raising callback does not break the batch."""

        def explode(progress):
            raise ValueError("renderer crashed")

        result = await service.orchestrator.run(ecosystem[:2], BatchOptions(on_progress=explode))

        assert len(result.successful_results) == 2

    @pytest.mark.asyncio
    async def test_bounded_concurrency_and_chunk_order(self, service, ecosystem):
        """Test that at most max_parallel items run and chunks run in order."""
        validator = RecordingValidator(delegate=service.validator)
        orchestrator = BatchOrchestrator(validator)

        result = await orchestrator.run(ecosystem, BatchOptions(max_parallel=2))

        assert validator.max_active <= 2
        assert len(result.successful_results) == 7
        starts = validator.started
        for offset in range(0, 7, 2):
            assert sorted(starts[offset:offset + 2]) == sorted(str(p) for p in ecosystem[offset:offset + 2])

    @pytest.mark.asyncio
    async def test_parallelism_defaults_to_settings(self, service, ecosystem):
        """Test that options without max_parallel use the configured value."""
        validator = RecordingValidator(delegate=service.validator, delay=0.05)
        orchestrator = BatchOrchestrator(validator, ComplianceSettings(max_parallel=1))

        result = await orchestrator.run(ecosystem[:4], BatchOptions(continue_on_error=True))

        assert validator.max_active == 1
        assert len(result.successful_results) == 4

    @pytest.mark.asyncio
    async def test_fail_fast(self, service, ecosystem, tmp_path):
        """Test that fail-fast finishes the chunk and starts no further chunk."""
        missing = tmp_path / "missing"
        paths = [ecosystem[0], missing] + ecosystem[1:4]
        completed: list[str] = []

        with pytest.raises(BatchValidationError) as exc_info:
            await service.orchestrator.run(paths, BatchOptions(
                max_parallel=2,
                continue_on_error=False,
                on_item_complete=lambda item, report: completed.append(item),
            ))

        assert exc_info.value.item == str(missing)
        assert isinstance(exc_info.value.__cause__, ModuleRootNotFoundError)
        assert completed == [str(ecosystem[0])]

    @pytest.mark.asyncio
    async def test_empty_batch(self, service):
        """Test that an empty batch succeeds trivially."""
        result = await service.orchestrator.run([])

        assert result.total_items == 0
        assert result.success

    @pytest.mark.asyncio
    async def test_all_reports_scored(self, service, ecosystem):
        """Test that every report keeps the score bounds."""
        result = await service.orchestrator.run(ecosystem)

        for report in result.reports:
            assert 0 <= report.overall_score <= 100
            if report.status in (ValidationStatus.FAIL, ValidationStatus.ERROR):
                assert report.violations
