"""Auto-fix outcome models."""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from modcomply.models.rule import RiskLevel


class FixStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


class FixOutcome(BaseModel):
    """Result of one auto-fix attempt."""

    model_config = ConfigDict(frozen=True)

    rule_id: str
    status: FixStatus
    risk_level: RiskLevel = RiskLevel.MEDIUM
    file_path: str | None = None
    applied_fixes: list[str] = Field(default_factory=list)
    backup_path: str | None = None
    error_message: str | None = None


class FixSummary(BaseModel):
    """Aggregate of one fix run."""

    model_config = ConfigDict(frozen=True)

    module_path: str
    dry_run: bool = False
    total_violations: int = 0
    fixed_violations: int = 0
    failed_fixes: int = 0
    skipped_violations: int = 0
    files_modified: int = 0
    backups_created: int = 0
    results: list[FixOutcome] = Field(default_factory=list)
    duration: int = Field(default=0, description="Milliseconds")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
