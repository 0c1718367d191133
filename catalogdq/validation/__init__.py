"""Rule-based validation engine for catalog entities.

Rules implementing the ValidationRule protocol are collected in a frozen
RuleRegistry built by ``bootstrap_registry()``. The ValidationEngine runs the
rules that apply to an entity type and persists failing findings; the
ValidationService answers queries over what was stored.
"""

# Engine and registry
from catalogdq.validation.engine import ValidationEngine, has_errors, has_warnings

# Exceptions
from catalogdq.validation.exceptions import (
    RuleConfigurationError,
    ValidatorError,
)

# Core protocol
from catalogdq.validation.protocols import ValidationRule
from catalogdq.validation.registry import RuleRegistry, bootstrap_registry

# Data structures
from catalogdq.validation.result import (
    Severity,
    StoredValidationResult,
    ValidationContext,
    ValidationFinding,
)

# Built-in rules
from catalogdq.validation.rules import (
    AlarmCompletenessRule,
    DuplicateNameRule,
    NamingConventionRule,
    RuleBase,
    ScalingUnitsRule,
)

# Query API
from catalogdq.validation.service import ValidationService

__all__ = [
    # Core protocol and data structures
    "ValidationRule",
    "Severity",
    "ValidationContext",
    "ValidationFinding",
    "StoredValidationResult",
    # Engine and registry
    "RuleRegistry",
    "bootstrap_registry",
    "ValidationEngine",
    "has_errors",
    "has_warnings",
    "ValidationService",
    # Built-in rules
    "RuleBase",
    "NamingConventionRule",
    "ScalingUnitsRule",
    "DuplicateNameRule",
    "AlarmCompletenessRule",
    # Exceptions
    "ValidatorError",
    "RuleConfigurationError",
]
