"""Auto-fix engine.

Repairs the mechanically fixable subset of violations using templates.
Each fixer first produces a plan of file actions; the engine gates the
plan by risk and file budget, backs up files it will overwrite, and then
applies it. Dry runs compute the same plan and never touch the disk.
"""

import json
import shutil
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable

import structlog

from modcomply.audit.rules import RuleCatalog
from modcomply.config import ComplianceSettings, get_settings
from modcomply.errors import AutoFixError
from modcomply.models import (
    FixOutcome,
    FixStatus,
    FixSummary,
    RiskLevel,
    ValidationResult,
    ValidationStatus,
)

logger = structlog.get_logger()


@dataclass
class FixOptions:
    """Options for an auto-fix run."""

    dry_run: bool = False
    backup_files: bool = True
    # Relative paths resolve against the module root
    backup_directory: Path | None = None
    max_files_to_fix: int | None = None
    aggressive_mode: bool = False
    include_rules: list[str] = field(default_factory=list)
    exclude_rules: list[str] = field(default_factory=list)
    confirm_high_risk: Callable[[ValidationResult], bool] | None = None


@dataclass
class FixAction:
    """One file-system change a fix wants to make."""

    path: str  # relative to the module root
    description: str
    content: str | None = None  # None creates a directory


@dataclass
class FixContext:
    """What a fixer knows about the module it repairs."""

    root: Path
    settings: ComplianceSettings

    @property
    def module_name(self) -> str:
        manifest = self.read_manifest()
        name = manifest.get("name") if manifest else None
        return name if isinstance(name, str) and name else self.root.name

    def read_manifest(self) -> dict[str, Any] | None:
        """Parsed manifest, or None when it is missing or invalid."""
        try:
            data = json.loads((self.root / self.settings.manifest_name).read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError):
            return None
        return data if isinstance(data, dict) else None


Fixer = Callable[[FixContext, ValidationResult], list[FixAction]]


def _dump_json(data: dict[str, Any]) -> str:
    return json.dumps(data, indent=2) + "\n"


def fix_manifest(ctx: FixContext, violation: ValidationResult) -> list[FixAction]:
    manifest = ctx.read_manifest()
    if manifest is None:
        manifest = {
            "name": ctx.root.name,
            "version": "1.0.0",
            "description": f"{ctx.root.name} module",
            "scripts": {"build": "tsc", "test": "jest"},
        }
        return [FixAction(ctx.settings.manifest_name, f"Generated {ctx.settings.manifest_name}", _dump_json(manifest))]

    added = []
    if not isinstance(manifest.get("name"), str) or not manifest["name"].strip():
        manifest["name"] = ctx.root.name
        added.append("name")
    if not isinstance(manifest.get("version"), str) or not manifest["version"].strip():
        manifest["version"] = "1.0.0"
        added.append("version")
    if not added:
        return []
    return [FixAction(
        ctx.settings.manifest_name,
        f"Added missing manifest fields: {', '.join(added)}",
        _dump_json(manifest),
    )]


def fix_readme(ctx: FixContext, violation: ValidationResult) -> list[FixAction]:
    name = ctx.module_name
    content = (
        f"# {name}\n\n"
        "## Overview\n\n"
        f"The {name} module.\n\n"
        "## Installation\n\n"
        f"```bash\nnpm install {name}\n```\n\n"
        "## Usage\n\n"
        f"Import {name} from your code and call its exported functions.\n\n"
        "## Contributing\n\n"
        "Follow the coding standards and add tests for any new functionality.\n"
    )
    return [FixAction(ctx.settings.readme_name, f"Generated {ctx.settings.readme_name}", content)]


TYPE_CONFIG_TEMPLATE: dict[str, Any] = {
    "compilerOptions": {
        "target": "ES2020",
        "module": "commonjs",
        "strict": True,
        "declaration": True,
        "outDir": "./dist",
        "rootDir": "./src",
        "esModuleInterop": True,
        "skipLibCheck": True,
    },
    "include": ["src/**/*"],
    "exclude": ["node_modules", "dist"],
}


def fix_type_config(ctx: FixContext, violation: ValidationResult) -> list[FixAction]:
    name = ctx.settings.type_config_name
    return [FixAction(name, f"Generated {name}", _dump_json(TYPE_CONFIG_TEMPLATE))]


def fix_test_directory(ctx: FixContext, violation: ValidationResult) -> list[FixAction]:
    manifest_name = ctx.settings.manifest_name
    smoke_test = (
        f"describe('{ctx.module_name}', () => {{\n"
        "  it('declares a name in its manifest', () => {\n"
        f"    const manifest = require('../{manifest_name}');\n"
        "    expect(manifest.name).toBeTruthy();\n"
        "  });\n"
        "});\n"
    )
    return [
        FixAction("tests", "Created tests/ directory"),
        FixAction("tests/smoke.test.js", "Added smoke test", smoke_test),
    ]


def fix_build_script(ctx: FixContext, violation: ValidationResult) -> list[FixAction]:
    manifest = ctx.read_manifest()
    if manifest is None:
        raise AutoFixError(violation.rule_id, f"{ctx.settings.manifest_name} is missing or invalid")
    scripts = manifest.get("scripts")
    if not isinstance(scripts, dict):
        scripts = manifest["scripts"] = {}
    scripts["build"] = "tsc"
    return [FixAction(ctx.settings.manifest_name, "Added build script", _dump_json(manifest))]


IGNORE_FILE_ENTRIES = ("node_modules/", "dist/", "coverage/", "*.log", ".env", ".DS_Store")


def fix_ignore_file(ctx: FixContext, violation: ValidationResult) -> list[FixAction]:
    name = ctx.settings.ignore_file_name
    return [FixAction(name, f"Generated {name}", "\n".join(IGNORE_FILE_ENTRIES) + "\n")]


class AutoFixEngine:
    """Applies template-based remediations to failing, fixable results."""

    def __init__(self, catalog: RuleCatalog, settings: ComplianceSettings | None = None):
        self.catalog = catalog
        self.settings = settings or get_settings()
        self._logger = logger.bind(component="AutoFixEngine")
        self._fixers: dict[str, Fixer] = {
            "MANIFEST_VALID": fix_manifest,
            "README_EXISTS": fix_readme,
            "TYPE_CONFIG_REQUIRED": fix_type_config,
            "TEST_DIRECTORY_REQUIRED": fix_test_directory,
            "BUILD_SCRIPT_REQUIRED": fix_build_script,
            "IGNORE_FILE_REQUIRED": fix_ignore_file,
        }

    def register_fixer(self, rule_id: str, fixer: Fixer) -> None:
        """Register a custom fixer for a rule id."""
        self._fixers[rule_id] = fixer

    def apply(
        self,
        module_path: str | Path,
        violations: list[ValidationResult],
        options: FixOptions | None = None,
    ) -> FixSummary:
        """Fix violations in input order.

        Args:
            module_path: Module root directory
            violations: Results to consider, normally a report's results
            options: Fix options

        Returns:
            Summary with one outcome per violation
        """
        options = options or FixOptions()
        root = Path(module_path).resolve()
        ctx = FixContext(root=root, settings=self.settings)
        max_files = (
            options.max_files_to_fix
            if options.max_files_to_fix is not None
            else self.settings.max_files_to_fix
        )
        backup_dir = options.backup_directory or self.settings.backup_directory
        if not backup_dir.is_absolute():
            backup_dir = root / backup_dir

        start = time.perf_counter()
        touched: set[str] = set()
        outcomes: list[FixOutcome] = []

        self._logger.info(
            "Auto-fix started",
            module=str(root),
            violations=len(violations),
            dry_run=options.dry_run,
        )

        for violation in violations:
            outcome = self._fix_one(ctx, violation, options, touched, max_files, backup_dir)
            outcomes.append(outcome)
            self._logger.debug(
                "Fix outcome",
                rule_id=violation.rule_id,
                status=outcome.status.value,
                reason=outcome.error_message,
            )

        succeeded = [o for o in outcomes if o.status == FixStatus.SUCCESS]
        summary = FixSummary(
            module_path=str(root),
            dry_run=options.dry_run,
            total_violations=len(violations),
            fixed_violations=len(succeeded),
            failed_fixes=sum(1 for o in outcomes if o.status == FixStatus.FAILED),
            skipped_violations=sum(1 for o in outcomes if o.status == FixStatus.SKIPPED),
            files_modified=len({o.file_path for o in succeeded if o.file_path}),
            backups_created=sum(1 for o in outcomes if o.backup_path),
            results=outcomes,
            duration=int((time.perf_counter() - start) * 1000),
        )

        self._logger.info(
            "Auto-fix complete",
            module=str(root),
            fixed=summary.fixed_violations,
            failed=summary.failed_fixes,
            skipped=summary.skipped_violations,
            duration_ms=summary.duration,
        )
        return summary

    def _fix_one(
        self,
        ctx: FixContext,
        violation: ValidationResult,
        options: FixOptions,
        touched: set[str],
        max_files: int,
        backup_dir: Path,
    ) -> FixOutcome:
        risk = self.catalog.risk_level(violation.rule_id)

        def skipped(reason: str) -> FixOutcome:
            return FixOutcome(
                rule_id=violation.rule_id,
                status=FixStatus.SKIPPED,
                risk_level=risk,
                file_path=violation.file_path,
                error_message=reason,
            )

        if violation.status != ValidationStatus.FAIL or not violation.can_auto_fix:
            return skipped(f"Not auto-fixable (status {violation.status.value})")
        if options.include_rules and violation.rule_id not in options.include_rules:
            return skipped("Rule not in include list")
        if violation.rule_id in options.exclude_rules:
            return skipped("Rule excluded")

        if risk == RiskLevel.HIGH:
            if not options.aggressive_mode:
                return skipped("High-risk fix requires aggressive mode")
            if options.confirm_high_risk is not None and not options.confirm_high_risk(violation):
                return skipped("High-risk fix not confirmed")

        fixer = self._fixers.get(violation.rule_id)
        if fixer is None:
            return skipped("No automated fix available; marked for manual resolution")

        try:
            actions = fixer(ctx, violation)
        except AutoFixError as e:
            return self._failed(violation, risk, e)

        targets = {a.path for a in actions if a.content is not None}
        if len(touched | targets) > max_files:
            return skipped(f"File limit reached ({max_files} files)")
        touched.update(targets)

        primary = next((a.path for a in actions if a.content is not None), violation.file_path)
        backup_path = None
        try:
            if not options.dry_run:
                backup_path = self._apply_actions(ctx.root, actions, options, backup_dir, violation.rule_id)
        except AutoFixError as e:
            return self._failed(violation, risk, e, primary)

        return FixOutcome(
            rule_id=violation.rule_id,
            status=FixStatus.SUCCESS,
            risk_level=risk,
            file_path=primary,
            applied_fixes=[a.description for a in actions] or ["Nothing to change"],
            backup_path=backup_path,
        )

    def _failed(
        self,
        violation: ValidationResult,
        risk: RiskLevel,
        error: AutoFixError,
        file_path: str | None = None,
    ) -> FixOutcome:
        self._logger.warning("Auto-fix failed", rule_id=violation.rule_id, error=error.reason)
        return FixOutcome(
            rule_id=violation.rule_id,
            status=FixStatus.FAILED,
            risk_level=risk,
            file_path=file_path or violation.file_path,
            error_message=str(error),
        )

    def _apply_actions(
        self,
        root: Path,
        actions: list[FixAction],
        options: FixOptions,
        backup_dir: Path,
        rule_id: str,
    ) -> str | None:
        """Apply actions, backing up files before overwriting them.

        Returns:
            Path of the first backup written, if any
        """
        first_backup = None
        for action in actions:
            target = root / action.path
            try:
                if action.content is None:
                    target.mkdir(parents=True, exist_ok=True)
                    continue
                if options.backup_files and target.is_file():
                    backup = self.create_backup(root, action.path, backup_dir)
                    first_backup = first_backup or str(backup)
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_text(action.content, encoding="utf-8")
            except OSError as e:
                raise AutoFixError(rule_id, f"cannot write {action.path}: {e}") from e
        return first_backup

    def create_backup(self, root: Path, relative_path: str, backup_dir: Path) -> Path:
        """Copy a module file into the backup directory."""
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%f")
        name = relative_path.replace("/", "__")
        backup_dir.mkdir(parents=True, exist_ok=True)
        backup = backup_dir / f"{name}.{timestamp}.backup"
        shutil.copy2(root / relative_path, backup)
        return backup

    def restore_backup(self, backup_path: str | Path, original_path: str | Path) -> None:
        """Copy a backup over the original file."""
        backup = Path(backup_path)
        if not backup.is_file():
            raise AutoFixError("restore", f"backup not found: {backup}")
        shutil.copy2(backup, original_path)
        self._logger.info("Backup restored", backup=str(backup), original=str(original_path))
