"""Validation-specific exceptions.

This module defines the exception hierarchy for the validation engine.
All exceptions extend from CatalogError for consistent error handling.
"""

from typing import Any

from catalogdq.core.exceptions import CatalogError


class ValidatorError(CatalogError):
    """Base exception for rule-related errors.

    Context typically includes:
        - rule_name: Name of the rule that raised the error
        - entity_type: Entity type being validated
    """

    def __init__(
        self,
        message: str,
        rule_name: str | None = None,
        entity_type: str | None = None,
        **extra_context: Any,
    ) -> None:
        context: dict[str, Any] = {}
        if rule_name is not None:
            context["rule_name"] = rule_name
        if entity_type is not None:
            context["entity_type"] = entity_type
        context.update(extra_context)

        super().__init__(message, context)


class RuleConfigurationError(ValidatorError):
    """Exception raised when a rule is registered or constructed incorrectly.

    Context typically includes:
        - rule_name: Name of the rule
        - parameter: Name of the invalid attribute or parameter
        - value: Invalid value provided
        - reason: Why the value is invalid
    """

    def __init__(
        self,
        message: str,
        rule_name: str | None = None,
        parameter: str | None = None,
        value: Any = None,
        reason: str | None = None,
        **extra_context: Any,
    ) -> None:
        context: dict[str, Any] = {}
        if parameter is not None:
            context["parameter"] = parameter
        if value is not None:
            context["value"] = value
        if reason is not None:
            context["reason"] = reason
        context.update(extra_context)

        super().__init__(message, rule_name=rule_name, **context)
