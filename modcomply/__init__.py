"""modcomply - Module Compliance Engine.

Validates that the modules of a multi-module repository conform to a
catalog of structural, documentation, configuration, testing, security
and performance rules, scores each module, and repairs the mechanical
subset of violations.
"""

__version__ = "0.1.0"
