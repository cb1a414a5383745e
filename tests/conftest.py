"""Pytest configuration and shared fixtures."""

import json
from pathlib import Path
from typing import Any, Callable

import pytest

from modcomply.audit import ComplianceService, RuleCatalog, build_default_catalog
from modcomply.config import ComplianceSettings
from modcomply.models import (
    RuleCategory,
    RuleSeverity,
    ValidationResult,
    ValidationStatus,
)


TSCONFIG = {
    "compilerOptions": {"target": "ES2020", "module": "commonjs", "strict": True},
    "include": ["src/**/*"],
}

INDEX_SOURCE = "export const greet = (name: string): string => `Hello, ${name}`;\n"

TEST_SOURCE = (
    "import { greet } from '../src/index';\n\n"
    "test('greets by name', () => {\n"
    "  expect(greet('Ada')).toBe('Hello, Ada');\n"
    "});\n"
)


def write_module(
    parent: Path,
    name: str,
    *,
    manifest: dict[str, Any] | None = None,
    readme: str | None = "default",
    type_config: bool = True,
    tests: bool = True,
    ignore_file: bool = True,
    build_script: bool = True,
    files: dict[str, str] | None = None,
) -> Path:
    """Create a module directory; by default it satisfies every built-in rule."""
    root = parent / name
    root.mkdir(parents=True)

    if manifest is None:
        manifest = {"name": name, "version": "1.0.0", "description": f"The {name} module"}
        manifest["scripts"] = {"build": "tsc", "test": "jest"} if build_script else {"test": "jest"}
    (root / "package.json").write_text(json.dumps(manifest, indent=2))

    if readme == "default":
        readme = (
            f"# {name}\n\n"
            f"The {name} module provides shared helpers used across the platform.\n"
        )
    if readme is not None:
        (root / "README.md").write_text(readme)
    if type_config:
        (root / "tsconfig.json").write_text(json.dumps(TSCONFIG, indent=2))
    if ignore_file:
        (root / ".gitignore").write_text("node_modules/\ndist/\n")
    if tests:
        (root / "tests").mkdir()
        (root / "tests" / "index.test.ts").write_text(TEST_SOURCE)

    (root / "src").mkdir()
    (root / "src" / "index.ts").write_text(INDEX_SOURCE)

    for relative, content in (files or {}).items():
        target = root / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content)

    return root


@pytest.fixture
def settings() -> ComplianceSettings:
    """Settings with the default conventions."""
    return ComplianceSettings()


@pytest.fixture
def make_module(tmp_path: Path) -> Callable[..., Path]:
    """Factory creating module directories under a temporary root."""

    def factory(name: str, parent: Path | None = None, **kwargs: Any) -> Path:
        return write_module(parent or tmp_path, name, **kwargs)

    return factory


@pytest.fixture
def compliant_module(make_module) -> Path:
    """A module that passes every built-in rule."""
    return make_module("billing")


@pytest.fixture
def bare_module(make_module) -> Path:
    """A module with only a manifest without a build script, and source."""
    return make_module(
        "inventory",
        readme=None,
        type_config=False,
        tests=False,
        ignore_file=False,
        build_script=False,
    )


@pytest.fixture
def catalog(settings: ComplianceSettings) -> RuleCatalog:
    return build_default_catalog(settings)


@pytest.fixture
def service(settings: ComplianceSettings) -> ComplianceService:
    return ComplianceService(settings=settings)


@pytest.fixture
def make_result() -> Callable[..., ValidationResult]:
    """Factory for standalone validation results."""
    counter = iter(range(1, 10_000))

    def factory(
        rule_id: str = "RULE",
        status: ValidationStatus = ValidationStatus.FAIL,
        severity: RuleSeverity = RuleSeverity.ERROR,
        category: RuleCategory = RuleCategory.CONFIGURATION,
        **kwargs: Any,
    ) -> ValidationResult:
        return ValidationResult(
            result_id=f"r{next(counter)}",
            rule_id=rule_id,
            rule_name=rule_id.title(),
            status=status,
            severity=severity,
            category=category,
            message=kwargs.pop("message", f"{rule_id} {status.value}"),
            **kwargs,
        )

    return factory
