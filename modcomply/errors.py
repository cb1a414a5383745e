"""Exception hierarchy for the compliance engine."""


class ComplianceError(Exception):
    """Base class for all compliance engine errors."""


class ModuleRootNotFoundError(ComplianceError):
    """No manifest-bearing directory exists at the requested path."""

    def __init__(self, path: str, reason: str = "") -> None:
        message = f"No module found at: {path}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)
        self.path = path
        self.reason = reason


class ModuleLoadError(ComplianceError):
    """The module manifest is unreadable or malformed."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Failed to load module at {path}: {reason}")
        self.path = path
        self.reason = reason


class NoModulesFoundError(ComplianceError):
    """An ecosystem scan found no modules."""

    def __init__(self, root_path: str) -> None:
        super().__init__(f"No modules found under: {root_path}")
        self.root_path = root_path


class RuleExecutionError(ComplianceError):
    """A rule check raised or exceeded its deadline.

    Never escapes the evaluator; it is turned into an ERROR result.
    """

    def __init__(self, rule_id: str, reason: str) -> None:
        super().__init__(f"Rule {rule_id} failed: {reason}")
        self.rule_id = rule_id
        self.reason = reason


class AutoFixError(ComplianceError):
    """A single remediation step failed."""

    def __init__(self, rule_id: str, reason: str) -> None:
        super().__init__(f"Auto-fix for {rule_id} failed: {reason}")
        self.rule_id = rule_id
        self.reason = reason


class BatchValidationError(ComplianceError):
    """Fail-fast batch validation stopped on a module failure."""

    def __init__(self, item: str, reason: str) -> None:
        super().__init__(f"Batch validation stopped at {item}: {reason}")
        self.item = item
        self.reason = reason


class ValidationProcessError(ComplianceError):
    """Unexpected internal failure while validating a module."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Module validation failed for {path}: {reason}")
        self.path = path
        self.reason = reason


class CatalogFrozenError(ComplianceError):
    """The rule catalog was modified after being frozen."""

    def __init__(self, rule_id: str) -> None:
        super().__init__(f"Cannot register rule {rule_id}: catalog is frozen")
        self.rule_id = rule_id
