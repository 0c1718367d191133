"""Shared helpers for rule implementations.

Entities arrive as untyped field maps, and rows imported from files carry
numbers as strings or strings as numbers. The helpers here read field values
the same way in every rule.
"""

import math
from collections.abc import Mapping, Sequence
from typing import Any

from catalogdq.validation.result import Severity, ValidationContext, ValidationFinding


def text_value(entity: Mapping[str, Any], field: str) -> str | None:
    """Return a field as stripped text, or None when it is missing or blank.

    Example:
        >>> text_value({"name": "  FT-101 "}, "name")
        'FT-101'
        >>> text_value({"name": "   "}, "name") is None
        True
    """
    value = entity.get(field)
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def numeric_value(value: Any) -> float | None:
    """Coerce a cell value to a float, or None if it is not a finite number.

    Example:
        >>> numeric_value("4.5")
        4.5
        >>> numeric_value("high") is None
        True
    """
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def is_missing(value: Any) -> bool:
    """Return True for None and blank strings."""
    return value is None or (isinstance(value, str) and not value.strip())


class RuleBase:
    """Base class for rules with a fixed name, description and applicability.

    Subclasses set the three class attributes and implement validate().
    ``finding`` builds a failing finding attributed to the rule.
    """

    name: str = "Unnamed Rule"
    description: str = ""
    applicable_entity_types: Sequence[str] = ()

    def finding(self, severity: Severity, message: str) -> ValidationFinding:
        return ValidationFinding(rule_name=self.name, severity=severity, message=message)

    def validate(self, context: ValidationContext) -> list[ValidationFinding]:
        raise NotImplementedError("Subclasses must implement validate()")

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
