"""Module structure discovery.

Walks a module directory and produces an immutable ``Module`` description
that every rule check reads from. Discovery is synchronous file-system work;
async callers run it in a worker thread.
"""

import json
import os
from dataclasses import dataclass
from fnmatch import fnmatch
from pathlib import Path
from typing import Any

import structlog

from modcomply.config import ComplianceSettings, get_settings
from modcomply.errors import ModuleLoadError, ModuleRootNotFoundError
from modcomply.models import Module, ModuleFile, ModuleType

logger = structlog.get_logger()

# VCS metadata and dependency/build caches are never part of a module.
IGNORED_DIRECTORIES = frozenset({
    ".git",
    ".hg",
    ".svn",
    "node_modules",
    "__pycache__",
    ".venv",
    "venv",
    ".tox",
    ".mypy_cache",
    ".pytest_cache",
    "dist",
    "build",
    "coverage",
})

# Dotfiles that rules read, listed even when hidden entries are skipped.
WELL_KNOWN_DOTFILES = (".env", ".env.*", ".eslintrc*", ".prettierrc*")

GENERATED_PATTERNS = ("*.min.js", "*.d.ts", "*.generated.*", "*.map", "*_pb2.py")

FRONTEND_DEPENDENCIES = frozenset({"react", "vue", "svelte", "@angular/core", "angular"})

# Files larger than this are not read for line counting.
MAX_ANALYZED_BYTES = 5 * 1024 * 1024


@dataclass
class DiscoveryOptions:
    """Options controlling the module file walk."""

    include_hidden: bool = False
    follow_symlinks: bool = False
    max_depth: int = 10
    analyze_content: bool = True


def is_generated(relative_path: str) -> bool:
    """True if the path looks like a generated artifact."""
    name = relative_path.rsplit("/", 1)[-1]
    return any(fnmatch(name, pattern) for pattern in GENERATED_PATTERNS)


def _count_lines(path: Path) -> int | None:
    try:
        if path.stat().st_size > MAX_ANALYZED_BYTES:
            return None
        data = path.read_bytes()
    except OSError:
        return None
    if b"\0" in data[:1024]:
        return None  # binary
    if not data:
        return 0
    return data.count(b"\n") + (0 if data.endswith(b"\n") else 1)


class ModuleDiscoverer:
    """Builds ``Module`` descriptions from directories on disk."""

    def __init__(self, settings: ComplianceSettings | None = None):
        self.settings = settings or get_settings()
        self._logger = logger.bind(component="ModuleDiscoverer")

    def discover(self, path: str | Path, options: DiscoveryOptions | None = None) -> Module:
        """Describe the module rooted at ``path``.

        Args:
            path: Module root directory
            options: Walk options

        Returns:
            The module description

        Raises:
            ModuleRootNotFoundError: path is not a directory holding a manifest
            ModuleLoadError: the manifest cannot be read or is not a JSON object
        """
        options = options or DiscoveryOptions()
        root = Path(path).resolve()

        if not root.is_dir():
            raise ModuleRootNotFoundError(str(root), "not a directory")
        manifest_path = root / self.settings.manifest_name
        if not manifest_path.is_file():
            raise ModuleRootNotFoundError(str(root), f"missing {self.settings.manifest_name}")

        manifest = self.load_manifest(manifest_path)
        files = self._walk(root, options)
        module_type = self.infer_module_type(root, manifest, files)
        name = manifest.get("name") if isinstance(manifest.get("name"), str) else None
        version = manifest.get("version")
        description = manifest.get("description")

        module = Module(
            module_id=name or root.name,
            name=name or root.name,
            path=str(root),
            module_type=module_type,
            version=version if isinstance(version, str) else "0.0.0",
            description=description if isinstance(description, str) else "",
            manifest=manifest,
            files=files,
            compliance_score=self.heuristic_score(files, manifest),
        )

        self._logger.debug(
            "Module discovered",
            module=module.module_id,
            module_type=module_type.value,
            files=len(files),
        )
        return module

    def load_manifest(self, manifest_path: Path) -> dict[str, Any]:
        """Parse the manifest, which must be a JSON object."""
        try:
            data = json.loads(manifest_path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError) as e:
            raise ModuleLoadError(str(manifest_path.parent), f"cannot read manifest: {e}") from e
        except json.JSONDecodeError as e:
            raise ModuleLoadError(str(manifest_path.parent), f"invalid JSON in manifest: {e}") from e
        if not isinstance(data, dict):
            raise ModuleLoadError(str(manifest_path.parent), "manifest is not a JSON object")
        return data

    def _walk(self, root: Path, options: DiscoveryOptions) -> list[ModuleFile]:
        files: list[ModuleFile] = []
        visited: set[Path] = {root}

        def visit(directory: Path, depth: int) -> None:
            try:
                entries = sorted(directory.iterdir(), key=lambda p: p.name)
            except OSError as e:
                self._logger.warning("Cannot list directory", path=str(directory), error=str(e))
                return

            for entry in entries:
                if entry.is_symlink() and not options.follow_symlinks:
                    continue
                if not self._is_listed(entry.name, options):
                    continue

                relative = entry.relative_to(root).as_posix()
                if entry.is_dir():
                    if entry.name in IGNORED_DIRECTORIES:
                        continue
                    files.append(ModuleFile(path=relative, is_dir=True))
                    resolved = entry.resolve()
                    if depth < options.max_depth and resolved not in visited:
                        visited.add(resolved)
                        visit(entry, depth + 1)
                elif entry.is_file():
                    try:
                        size = entry.stat().st_size
                    except OSError:
                        size = 0
                    files.append(ModuleFile(
                        path=relative,
                        size=size,
                        line_count=_count_lines(entry) if options.analyze_content else None,
                        generated=is_generated(relative),
                    ))

        visit(root, 0)
        return files

    def _is_listed(self, name: str, options: DiscoveryOptions) -> bool:
        if not name.startswith(".") or options.include_hidden:
            return True
        if name == self.settings.ignore_file_name:
            return True
        return any(fnmatch(name, pattern) for pattern in WELL_KNOWN_DOTFILES)

    def infer_module_type(
        self,
        root: Path,
        manifest: dict[str, Any],
        files: list[ModuleFile],
    ) -> ModuleType:
        """Infer the module's role from its dependencies, name and layout."""
        dependencies: set[str] = set()
        for key in ("dependencies", "devDependencies", "peerDependencies"):
            declared = manifest.get(key)
            if isinstance(declared, dict):
                dependencies.update(declared)
        if dependencies & FRONTEND_DEPENDENCIES:
            return ModuleType.FRONTEND

        manifest_name = manifest.get("name") if isinstance(manifest.get("name"), str) else ""
        # Manifest name wins over the directory name.
        names = (manifest_name.rsplit("/", 1)[-1].lower(), root.name.lower())
        for name in names:
            tokens = set(name.replace("_", "-").split("-"))
            if "api" in tokens:
                return ModuleType.API
            if tokens & {"core", "shared", "common", "types"}:
                return ModuleType.CORE
            if tokens & {"backend", "server", "service", "functions"}:
                return ModuleType.BACKEND

        directories = {f.path for f in files if f.is_dir}
        if {"routes", "src/routes", "api", "src/api"} & directories:
            return ModuleType.API
        if {"components", "src/components"} & directories:
            return ModuleType.FRONTEND

        return ModuleType.UTILITY

    def heuristic_score(self, files: list[ModuleFile], manifest: dict[str, Any]) -> int:
        """Rough structural score computed at discovery time."""
        paths = [f.path for f in files]
        score = 0
        if manifest:
            score += 20
        if self.settings.type_config_name in paths:
            score += 15
        if any("test" in p or "spec" in p for p in paths):
            score += 20
        if any("readme" in p.lower() for p in paths):
            score += 15
        if any(p == "src" or p.startswith("src/") for p in paths):
            score += 10
        if any(p.startswith((".eslintrc", "eslint.config", ".prettierrc")) for p in paths):
            score += 10
        if sum(1 for f in files if "/" not in f.path and not f.is_dir) > 10:
            score -= 10
        return max(0, min(100, score))


def discover_module_paths(
    root: str | Path,
    options: DiscoveryOptions | None = None,
    include_root: bool = False,
    settings: ComplianceSettings | None = None,
) -> list[Path]:
    """Find manifest-bearing directories under ``root``.

    Does not descend into a module once found. ``root`` is treated as a
    container and reported only when ``include_root`` is set.

    Returns:
        Sorted list of module root paths
    """
    options = options or DiscoveryOptions()
    settings = settings or get_settings()
    root = Path(root).resolve()
    found: list[Path] = []

    if not root.is_dir():
        return found
    if include_root and (root / settings.manifest_name).is_file():
        found.append(root)

    for dirpath, dirnames, _ in os.walk(root, followlinks=options.follow_symlinks):
        current = Path(dirpath)
        depth = len(current.relative_to(root).parts)
        kept = []
        for name in sorted(dirnames):
            if name in IGNORED_DIRECTORIES:
                continue
            if name.startswith(".") and not options.include_hidden:
                continue
            candidate = current / name
            if (candidate / settings.manifest_name).is_file():
                found.append(candidate)
            elif depth < options.max_depth:
                kept.append(name)
        dirnames[:] = kept

    logger.debug("Module paths discovered", root=str(root), count=len(found))
    return sorted(found)
