"""Module structure models.

A Module is the unit of validation: a directory subtree rooted at a
manifest file, described once per validation call by the discoverer.
"""

from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ModuleType(str, Enum):
    """Inferred role of a module."""

    BACKEND = "backend"
    FRONTEND = "frontend"
    UTILITY = "utility"
    API = "api"
    CORE = "core"


class ModuleFile(BaseModel):
    """A file or directory inside a module."""

    model_config = ConfigDict(frozen=True)

    path: str = Field(..., description="POSIX path relative to the module root")
    is_dir: bool = False
    size: int = 0
    line_count: int | None = None
    generated: bool = False

    @property
    def name(self) -> str:
        return self.path.rsplit("/", 1)[-1]

    @property
    def suffix(self) -> str:
        return Path(self.path).suffix.lower()


class Module(BaseModel):
    """Structural description of one module."""

    model_config = ConfigDict(frozen=True)

    module_id: str
    name: str
    path: str = Field(..., description="Absolute path to the module root")
    module_type: ModuleType = ModuleType.UTILITY
    version: str = "0.0.0"
    description: str = ""
    manifest: dict[str, Any] = Field(default_factory=dict)
    files: list[ModuleFile] = Field(default_factory=list)
    compliance_score: int = Field(default=0, ge=0, le=100)

    @property
    def root(self) -> Path:
        return Path(self.path)

    def has_file(self, relative_path: str) -> bool:
        """True if a regular file exists at the relative path."""
        return any(f.path == relative_path and not f.is_dir for f in self.files)

    def has_directory(self, relative_path: str) -> bool:
        """True if a directory exists at the relative path."""
        return any(f.path == relative_path and f.is_dir for f in self.files)

    def regular_files(self) -> list[ModuleFile]:
        return [f for f in self.files if not f.is_dir]
