"""Rule catalog.

The catalog holds declarative ``ComplianceRule`` records and a registry
mapping each ``rule_id`` to its executable check. Dispatch is by lookup,
so new rules are added by registration rather than by editing the
evaluator.
"""

from functools import partial

import structlog

from modcomply.audit.checks import (
    RuleCheck,
    check_build_script,
    check_file_size,
    check_ignore_file,
    check_manifest_valid,
    check_no_mock_data,
    check_readme_exists,
    check_security_config,
    check_test_directory,
    check_type_config,
)
from modcomply.config import ComplianceSettings, get_settings
from modcomply.errors import CatalogFrozenError
from modcomply.models import (
    ComplianceRule,
    FixStrategy,
    Module,
    RiskLevel,
    RuleCategory,
    RuleSeverity,
)

logger = structlog.get_logger()


BUILTIN_RULES: list[ComplianceRule] = [
    ComplianceRule(
        rule_id="MANIFEST_VALID",
        name="Valid manifest",
        description="Module manifest exists, parses and declares a name and version",
        category=RuleCategory.CONFIGURATION,
        severity=RuleSeverity.CRITICAL,
        remediation="Declare name and version in the module manifest",
        can_auto_fix=True,
        risk_level=RiskLevel.LOW,
        tags=["manifest"],
    ),
    ComplianceRule(
        rule_id="README_EXISTS",
        name="README present",
        description="Module has a README with meaningful content",
        category=RuleCategory.DOCUMENTATION,
        severity=RuleSeverity.ERROR,
        remediation="Create a README with module description, installation and usage instructions",
        can_auto_fix=True,
        risk_level=RiskLevel.LOW,
        tags=["docs"],
    ),
    ComplianceRule(
        rule_id="TYPE_CONFIG_REQUIRED",
        name="Type configuration",
        description="Module has a type configuration declaring compiler options",
        category=RuleCategory.CONFIGURATION,
        severity=RuleSeverity.ERROR,
        remediation="Create a type configuration with target, module and strict settings",
        can_auto_fix=True,
        risk_level=RiskLevel.MEDIUM,
        tags=["typescript"],
    ),
    ComplianceRule(
        rule_id="TEST_DIRECTORY_REQUIRED",
        name="Test directory",
        description="Module has a conventional test directory with test files",
        category=RuleCategory.TESTING,
        severity=RuleSeverity.WARNING,
        remediation="Create a tests/ directory with test files",
        can_auto_fix=True,
        risk_level=RiskLevel.LOW,
        tags=["tests"],
    ),
    ComplianceRule(
        rule_id="BUILD_SCRIPT_REQUIRED",
        name="Build script",
        description="Module manifest declares a build script",
        category=RuleCategory.CONFIGURATION,
        severity=RuleSeverity.ERROR,
        remediation="Add a build script to the manifest scripts section",
        can_auto_fix=True,
        risk_level=RiskLevel.MEDIUM,
        tags=["manifest", "build"],
    ),
    ComplianceRule(
        rule_id="IGNORE_FILE_REQUIRED",
        name="Ignore file",
        description="Module has a VCS ignore file",
        category=RuleCategory.CONFIGURATION,
        severity=RuleSeverity.WARNING,
        remediation="Create an ignore file excluding dependencies, build output and logs",
        can_auto_fix=True,
        risk_level=RiskLevel.LOW,
        tags=["vcs"],
    ),
    ComplianceRule(
        rule_id="NO_MOCK_DATA",
        name="No mock data",
        description="No mock, fake or placeholder data outside test files",
        category=RuleCategory.STRUCTURE,
        severity=RuleSeverity.CRITICAL,
        remediation="Remove mock data and use real data sources",
        can_auto_fix=False,
        risk_level=RiskLevel.HIGH,
        tags=["data"],
    ),
    ComplianceRule(
        rule_id="FILE_SIZE_LIMIT",
        name="File size limit",
        description="No hand-written source file exceeds the line limit",
        category=RuleCategory.PERFORMANCE,
        severity=RuleSeverity.WARNING,
        remediation="Refactor large files into smaller modules",
        can_auto_fix=False,
        risk_level=RiskLevel.MEDIUM,
        tags=["size"],
    ),
    ComplianceRule(
        rule_id="SECURITY_CONFIG_CHECK",
        name="No hard-coded secrets",
        description="No credential-like literals in configuration or source files",
        category=RuleCategory.SECURITY,
        severity=RuleSeverity.CRITICAL,
        remediation="Remove hard-coded secrets and read them from environment variables",
        can_auto_fix=False,
        risk_level=RiskLevel.HIGH,
        tags=["secrets"],
    ),
]


class RuleCatalog:
    """Registry of compliance rules and their checks.

    Rules keep registration order, which is also evaluation order.
    """

    def __init__(self):
        self._rules: dict[str, ComplianceRule] = {}
        self._checks: dict[str, RuleCheck] = {}
        self._frozen = False
        self._logger = logger.bind(component="RuleCatalog")

    def register(self, rule: ComplianceRule, check: RuleCheck | None = None) -> None:
        """Add or replace a rule, optionally with its check."""
        if self._frozen:
            raise CatalogFrozenError(rule.rule_id)
        self._rules[rule.rule_id] = rule
        if check is not None:
            self._checks[rule.rule_id] = check

    def register_check(self, rule_id: str, check: RuleCheck) -> None:
        """Register a custom check for a rule id."""
        if self._frozen:
            raise CatalogFrozenError(rule_id)
        self._checks[rule_id] = check

    def freeze(self) -> None:
        """Reject any further registration."""
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def get_rules(self) -> list[ComplianceRule]:
        return list(self._rules.values())

    def get_rule(self, rule_id: str) -> ComplianceRule | None:
        return self._rules.get(rule_id)

    def get_check(self, rule_id: str) -> RuleCheck | None:
        return self._checks.get(rule_id)

    def applicable_rules(
        self,
        module: Module,
        include_rules: list[str] | None = None,
        exclude_rules: list[str] | None = None,
    ) -> list[ComplianceRule]:
        """Select the rules that should run against a module.

        Args:
            module: The module to validate
            include_rules: If non-empty, only these rule ids run
            exclude_rules: Rule ids that never run

        Returns:
            Applicable rules in catalog order
        """
        include = set(include_rules or [])
        exclude = set(exclude_rules or [])
        return [
            rule for rule in self._rules.values()
            if rule.applies_to(module)
            and (not include or rule.rule_id in include)
            and rule.rule_id not in exclude
        ]

    def fix_strategies(self) -> list[FixStrategy]:
        """Derive fix strategies from the auto-fixable rules."""
        return [
            FixStrategy(
                rule_id=rule.rule_id,
                risk_level=rule.risk_level,
                category=rule.category,
                description=rule.remediation or rule.description,
            )
            for rule in self._rules.values()
            if rule.can_auto_fix
        ]

    def risk_level(self, rule_id: str) -> RiskLevel:
        """Fix risk for a rule; unknown rules count as medium."""
        rule = self._rules.get(rule_id)
        return rule.risk_level if rule else RiskLevel.MEDIUM


def build_default_catalog(settings: ComplianceSettings | None = None) -> RuleCatalog:
    """Create a catalog holding the built-in rules and checks."""
    settings = settings or get_settings()
    checks = {
        "MANIFEST_VALID": check_manifest_valid,
        "README_EXISTS": check_readme_exists,
        "TYPE_CONFIG_REQUIRED": check_type_config,
        "TEST_DIRECTORY_REQUIRED": check_test_directory,
        "BUILD_SCRIPT_REQUIRED": check_build_script,
        "IGNORE_FILE_REQUIRED": check_ignore_file,
        "NO_MOCK_DATA": check_no_mock_data,
        "FILE_SIZE_LIMIT": check_file_size,
        "SECURITY_CONFIG_CHECK": check_security_config,
    }

    catalog = RuleCatalog()
    for rule in BUILTIN_RULES:
        catalog.register(rule, partial(checks[rule.rule_id], settings=settings))
    return catalog
