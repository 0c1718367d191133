"""Built-in validation rules.

These four rules are registered by ``bootstrap_registry()``. Naming,
scaling and alarm rules apply to specific entity types; the duplicate name
rule applies to every entity type.
"""

from catalogdq.validation.rules.alarms import AlarmCompletenessRule
from catalogdq.validation.rules.base import RuleBase
from catalogdq.validation.rules.duplicates import DuplicateNameRule
from catalogdq.validation.rules.naming import NamingConventionRule
from catalogdq.validation.rules.scaling import ScalingUnitsRule

BUILTIN_RULES = (
    NamingConventionRule,
    ScalingUnitsRule,
    DuplicateNameRule,
    AlarmCompletenessRule,
)

__all__ = [
    "RuleBase",
    "NamingConventionRule",
    "ScalingUnitsRule",
    "DuplicateNameRule",
    "AlarmCompletenessRule",
    "BUILTIN_RULES",
]
