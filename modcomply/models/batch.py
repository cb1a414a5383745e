"""Batch and ecosystem models."""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, model_validator

from modcomply.models.report import ValidationReport, ValidationStatus


class BatchProgress(BaseModel):
    """Running totals reported after every completed item."""

    total: int
    completed: int
    failed: int
    percentage: int


class BatchItemResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    item: str
    result: ValidationReport


class BatchItemError(BaseModel):
    model_config = ConfigDict(frozen=True)

    item: str
    error: str


class BatchMetrics(BaseModel):
    total_time: int = Field(default=0, description="Milliseconds")
    average_time_per_item: float = 0.0
    success_rate: float = 0.0
    throughput: float = Field(default=0.0, description="Items per second")


class BatchResult(BaseModel):
    """Outcome of validating many modules."""

    model_config = ConfigDict(frozen=True)

    operation_id: str
    total_items: int
    success: bool
    successful_results: list[BatchItemResult] = Field(default_factory=list)
    failed_items: list[BatchItemError] = Field(default_factory=list)
    metrics: BatchMetrics = Field(default_factory=BatchMetrics)

    @model_validator(mode="after")
    def _check_totals(self) -> "BatchResult":
        accounted = len(self.successful_results) + len(self.failed_items)
        if accounted != self.total_items:
            raise ValueError(
                f"total_items={self.total_items} but {accounted} items were accounted for"
            )
        return self

    @property
    def reports(self) -> list[ValidationReport]:
        return [r.result for r in self.successful_results]


class ScoreDistribution(BaseModel):
    excellent: int = 0  # 90+
    good: int = 0  # 80-89
    fair: int = 0  # 70-79
    poor: int = 0  # <70


class ViolationCount(BaseModel):
    rule_id: str
    count: int


class ModuleScore(BaseModel):
    module_id: str
    score: int
    status: ValidationStatus


class EcosystemSummary(BaseModel):
    """Aggregate view over many module reports."""

    total_modules: int = 0
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    average_score: int = 0
    score_distribution: ScoreDistribution = Field(default_factory=ScoreDistribution)
    status_distribution: dict[str, int] = Field(default_factory=dict)
    top_violations: list[ViolationCount] = Field(default_factory=list)
    module_scores: list[ModuleScore] = Field(default_factory=list)
