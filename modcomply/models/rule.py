"""Compliance rule models.

A rule carries both its validation severity and the risk of repairing it
automatically, so the fix engine never needs a separate catalog.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from modcomply.models.module import Module, ModuleType


class RuleCategory(str, Enum):
    """What aspect of a module a rule governs."""

    STRUCTURE = "structure"
    DOCUMENTATION = "documentation"
    CONFIGURATION = "configuration"
    TESTING = "testing"
    SECURITY = "security"
    PERFORMANCE = "performance"


class RuleSeverity(str, Enum):
    """How serious a violation of the rule is."""

    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"
    AUTO_FIX = "AUTO_FIX"  # Trivial, mechanically repairable


class RiskLevel(str, Enum):
    """Likelihood that an automated fix has unintended side effects."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class RuleApplicability(BaseModel):
    """Which modules a rule applies to.

    An empty ``module_types`` list means every type. Module ids in
    ``module_ids`` are always accepted and ids in ``excluded_module_ids``
    always rejected, whatever their type.
    """

    model_config = ConfigDict(frozen=True)

    module_types: list[ModuleType] = Field(default_factory=list)
    module_ids: list[str] = Field(default_factory=list)
    excluded_module_ids: list[str] = Field(default_factory=list)

    def accepts(self, module_type: ModuleType, module_id: str) -> bool:
        if module_id in self.excluded_module_ids:
            return False
        if module_id in self.module_ids:
            return True
        return not self.module_types or module_type in self.module_types


class ComplianceRule(BaseModel):
    """A named, categorized, severity-tagged check definition."""

    model_config = ConfigDict(frozen=True)

    rule_id: str
    name: str
    description: str = ""
    category: RuleCategory
    severity: RuleSeverity
    applicability: RuleApplicability = Field(default_factory=RuleApplicability)
    enabled: bool = True
    remediation: str = ""
    can_auto_fix: bool = False
    risk_level: RiskLevel = RiskLevel.MEDIUM
    tags: list[str] = Field(default_factory=list)

    def applies_to(self, module: Module) -> bool:
        """Check whether this rule should run against the module."""
        return self.enabled and self.applicability.accepts(module.module_type, module.module_id)


class FixStrategy(BaseModel):
    """How, and how riskily, a rule's violations are auto-remediated."""

    model_config = ConfigDict(frozen=True)

    rule_id: str
    risk_level: RiskLevel
    category: RuleCategory
    description: str
