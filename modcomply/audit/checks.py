"""Executable rule checks.

Each check inspects a ``Module`` (reading file contents from disk where it
must) and returns a ``CheckOutcome``. Checks are synchronous; the evaluator
runs them in worker threads under a deadline.
"""

import re
from dataclasses import dataclass, field
from fnmatch import fnmatch
from typing import Any, Protocol

from modcomply.config import ComplianceSettings
from modcomply.models import Module, ModuleFile, ValidationStatus


@dataclass
class CheckOutcome:
    """What a check found."""

    status: ValidationStatus
    message: str
    file_path: str | None = None
    line_number: int | None = None
    context: dict[str, Any] = field(default_factory=dict)
    # None means "as the rule declares"
    can_auto_fix: bool | None = None

    @classmethod
    def passed(cls, message: str, **kwargs: Any) -> "CheckOutcome":
        return cls(ValidationStatus.PASS, message, **kwargs)

    @classmethod
    def failed(cls, message: str, **kwargs: Any) -> "CheckOutcome":
        return cls(ValidationStatus.FAIL, message, **kwargs)


class RuleCheck(Protocol):
    """Protocol for rule check callables."""

    def __call__(self, module: Module) -> CheckOutcome:
        ...


TEST_DIRECTORIES = ("tests", "test", "__tests__", "src/__tests__")

SOURCE_EXTENSIONS = frozenset({".ts", ".tsx", ".js", ".jsx", ".py"})
MOCK_SCANNED_EXTENSIONS = SOURCE_EXTENSIONS | {".json"}
SECRET_SCANNED_EXTENSIONS = frozenset({".json", ".js", ".ts", ".env"})

MOCK_PATTERN = re.compile(
    r"mock|fake|dummy|placeholder|test-data|example-data|sample-data|fixture",
    re.IGNORECASE,
)

# Test files may legitimately contain mock data.
TEST_FILE_PATTERNS = (
    re.compile(r"\.(test|spec)\.[^/]+$", re.IGNORECASE),
    re.compile(r"(^|/)(__tests__|__mocks__|tests|test)/", re.IGNORECASE),
    re.compile(r"(^|/)test_[^/]*\.py$"),
    re.compile(r"(^|/)[^/]*_test\.py$"),
)

SECRET_PATTERNS: dict[str, re.Pattern[str]] = {
    "password": re.compile(r"password\s*[:=]\s*['\"][^'\"]{8,}['\"]", re.IGNORECASE),
    "secret": re.compile(r"secret\s*[:=]\s*['\"][^'\"]{10,}['\"]", re.IGNORECASE),
    "api_key": re.compile(r"api[_-]?key\s*[:=]\s*['\"][^'\"]{15,}['\"]", re.IGNORECASE),
    "token": re.compile(r"token\s*[:=]\s*['\"][^'\"]{20,}['\"]", re.IGNORECASE),
    "private_key": re.compile(r"private[_-]?key\s*[:=]\s*['\"][^'\"]{50,}['\"]", re.IGNORECASE),
}

TYPE_CONFIG_PATTERN = re.compile(r"[\"']compilerOptions[\"']\s*:", re.IGNORECASE)


def is_test_file(relative_path: str) -> bool:
    return any(p.search(relative_path) for p in TEST_FILE_PATTERNS)


def _read_text(module: Module, relative_path: str) -> str | None:
    try:
        return (module.root / relative_path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return None


def _first_matching_line(content: str, pattern: re.Pattern[str]) -> int | None:
    for number, line in enumerate(content.splitlines(), start=1):
        if pattern.search(line):
            return number
    return None


def _find_readme(module: Module, settings: ComplianceSettings) -> ModuleFile | None:
    wanted = settings.readme_name.lower()
    for f in module.regular_files():
        if "/" not in f.path and f.path.lower() == wanted:
            return f
    return None


def check_manifest_valid(module: Module, settings: ComplianceSettings) -> CheckOutcome:
    """Manifest parses and declares a name and a version."""
    manifest_file = settings.manifest_name
    missing = [
        key for key in ("name", "version")
        if not isinstance(module.manifest.get(key), str) or not module.manifest[key].strip()
    ]
    if missing:
        return CheckOutcome.failed(
            f"{manifest_file} is missing required fields: {', '.join(missing)}",
            file_path=manifest_file,
            context={"missing_fields": missing},
        )
    return CheckOutcome.passed(
        f"{manifest_file} exists and is valid",
        file_path=manifest_file,
        context={"name": module.manifest["name"], "version": module.manifest["version"]},
    )


def check_readme_exists(module: Module, settings: ComplianceSettings) -> CheckOutcome:
    """README exists with enough non-blank content."""
    readme = _find_readme(module, settings)
    if readme is None:
        return CheckOutcome.failed(
            f"{settings.readme_name} file is missing",
            file_path=settings.readme_name,
        )

    content = _read_text(module, readme.path) or ""
    length = len(content.strip())
    if length < settings.readme_min_length:
        return CheckOutcome.failed(
            f"{readme.path} exists but is too short "
            f"({length} < {settings.readme_min_length} characters)",
            file_path=readme.path,
            context={"length": length},
            can_auto_fix=False,
        )
    return CheckOutcome.passed(f"{readme.path} exists and has adequate content", file_path=readme.path)


def check_type_config(module: Module, settings: ComplianceSettings) -> CheckOutcome:
    """Type configuration exists and declares compiler options."""
    name = settings.type_config_name
    if not module.has_file(name):
        return CheckOutcome.failed(f"{name} file is missing", file_path=name)

    content = _read_text(module, name)
    if content is None or not content.strip():
        return CheckOutcome.failed(f"{name} exists but is empty", file_path=name)
    if not TYPE_CONFIG_PATTERN.search(content):
        # Existing configuration is never overwritten automatically.
        return CheckOutcome.failed(
            f"{name} exists but is missing compilerOptions",
            file_path=name,
            can_auto_fix=False,
        )
    return CheckOutcome.passed(f"{name} exists and has compilerOptions", file_path=name)


def check_test_directory(module: Module, settings: ComplianceSettings) -> CheckOutcome:
    """A conventional test directory exists and holds files."""
    for directory in TEST_DIRECTORIES:
        if not module.has_directory(directory):
            continue
        prefix = directory + "/"
        test_files = [f.path for f in module.regular_files() if f.path.startswith(prefix)]
        if not test_files:
            return CheckOutcome(
                ValidationStatus.PARTIAL,
                f"Test directory {directory}/ exists but contains no files",
                file_path=directory,
                can_auto_fix=False,
            )
        return CheckOutcome.passed(
            f"Test directory found at {directory}/",
            file_path=directory,
            context={"test_files": len(test_files)},
        )

    return CheckOutcome.failed(
        "No test directory found (checked: " + ", ".join(d + "/" for d in TEST_DIRECTORIES) + ")"
    )


def check_build_script(module: Module, settings: ComplianceSettings) -> CheckOutcome:
    scripts = module.manifest.get("scripts")
    build = scripts.get("build") if isinstance(scripts, dict) else None
    if not isinstance(build, str) or not build.strip():
        return CheckOutcome.failed(
            f"{settings.manifest_name} is missing a build script",
            file_path=settings.manifest_name,
        )
    return CheckOutcome.passed(f"Build script found: {build}", file_path=settings.manifest_name)


def check_ignore_file(module: Module, settings: ComplianceSettings) -> CheckOutcome:
    name = settings.ignore_file_name
    if module.has_file(name):
        return CheckOutcome.passed(f"{name} file exists", file_path=name)
    return CheckOutcome.failed(f"{name} file is missing", file_path=name)


def check_no_mock_data(module: Module, settings: ComplianceSettings) -> CheckOutcome:
    """No mock-like file names or content outside test files."""
    violations: list[dict[str, Any]] = []

    for f in module.regular_files():
        if f.generated or f.suffix not in MOCK_SCANNED_EXTENSIONS or is_test_file(f.path):
            continue
        if MOCK_PATTERN.search(f.name):
            violations.append({"file": f.path, "reason": "name"})
            continue
        content = _read_text(module, f.path)
        if content is None:
            continue
        line = _first_matching_line(content, MOCK_PATTERN)
        if line is not None:
            violations.append({"file": f.path, "reason": "content", "line": line})

    if violations:
        first = violations[0]
        kind = "file" if first["reason"] == "name" else "content"
        return CheckOutcome.failed(
            f"Mock data {kind} detected in: {first['file']}",
            file_path=first["file"],
            line_number=first.get("line"),
            context={"violating_files": violations},
        )
    return CheckOutcome.passed("No mock data detected in module")


def check_file_size(module: Module, settings: ComplianceSettings) -> CheckOutcome:
    """No hand-written source file exceeds the line limit."""
    limit = settings.max_file_lines
    violating = [
        {"file": f.path, "lines": f.line_count}
        for f in module.regular_files()
        if f.suffix in SOURCE_EXTENSIONS
        and not f.generated
        and f.line_count is not None
        and f.line_count > limit
    ]
    if violating:
        return CheckOutcome.failed(
            f"{len(violating)} files exceed {limit}-line limit",
            file_path=violating[0]["file"],
            context={"violating_files": violating},
        )
    return CheckOutcome.passed(f"All source files are under {limit} lines")


def check_security_config(module: Module, settings: ComplianceSettings) -> CheckOutcome:
    """No credential-like literals in configuration or source files."""
    findings: list[dict[str, Any]] = []

    for f in module.regular_files():
        is_env = f.name == ".env" or fnmatch(f.name, ".env.*")
        if not is_env and f.suffix not in SECRET_SCANNED_EXTENSIONS:
            continue
        content = _read_text(module, f.path)
        if content is None:
            continue
        for kind, pattern in SECRET_PATTERNS.items():
            line = _first_matching_line(content, pattern)
            if line is not None:
                # The matched value itself is never recorded.
                findings.append({"file": f.path, "line": line, "kind": kind})

    if findings:
        first = findings[0]
        return CheckOutcome.failed(
            f"Potential sensitive data in: {first['file']}",
            file_path=first["file"],
            line_number=first["line"],
            context={"findings": findings},
        )
    return CheckOutcome.passed("No sensitive data detected in configuration files")
