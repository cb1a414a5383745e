"""Configuration for the compliance engine.

Settings are read from the environment (prefix ``MODCOMPLY_``) so the same
engine can be tuned from CI jobs and git hooks without code changes.
"""

import logging
from functools import lru_cache
from pathlib import Path

import structlog
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ComplianceSettings(BaseSettings):
    """Compliance engine settings."""

    model_config = SettingsConfigDict(env_prefix="MODCOMPLY_", case_sensitive=False)

    # Module layout conventions
    manifest_name: str = "package.json"
    type_config_name: str = "tsconfig.json"
    ignore_file_name: str = ".gitignore"
    readme_name: str = "README.md"

    # Rule thresholds
    readme_min_length: int = Field(default=50, ge=0)
    max_file_lines: int = Field(default=200, ge=1)

    # Execution
    rule_timeout: float = Field(default=30.0, gt=0, description="Per-rule deadline in seconds")
    max_parallel: int = Field(default=3, ge=1)
    max_depth: int = Field(default=10, ge=0)

    # Auto-fix
    backup_directory: Path = Path(".modcomply-backup")
    max_files_to_fix: int = Field(default=100, ge=0)

    log_level: str = "INFO"


@lru_cache
def get_settings() -> ComplianceSettings:
    """Get the process-wide settings instance."""
    return ComplianceSettings()


def configure_logging(level: str | None = None) -> None:
    """Configure structlog for console output.

    Library code never calls this; scripts and front ends do.
    """
    level_name = (level or get_settings().log_level).upper()
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level_name, logging.INFO)
        ),
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
    )
