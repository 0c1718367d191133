"""Rule registry.

The registry holds named validation rules plus a side index by entity type,
so that finding the rules for one entity is a dictionary lookup instead of a
scan over every rule. Rules are registered once at process start through
``bootstrap_registry()``, after which the registry is frozen and read-only.
"""

import logging
from collections.abc import Iterable, Sequence

from catalogdq.core.exceptions import RegistryFrozenError
from catalogdq.validation.exceptions import RuleConfigurationError
from catalogdq.validation.protocols import ValidationRule
from catalogdq.validation.rules import BUILTIN_RULES

logger = logging.getLogger(__name__)


class RuleRegistry:
    """Registry of validation rules keyed by name.

    Rules with an empty applicable_entity_types list apply to every entity
    type. Registration order is preserved and is the order in which the
    engine runs rules.

    Example:
        >>> registry = RuleRegistry()
        >>> registry.register_rule(NamingConventionRule())
        >>> [r.name for r in registry.get_rules_for_entity_type("tag")]
        ['Naming Convention']
        >>> registry.get_rules_for_entity_type("document")
        []
    """

    def __init__(self) -> None:
        self._rules: dict[str, ValidationRule] = {}
        self._by_entity_type: dict[str, list[str]] = {}
        self._universal: list[str] = []
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> "RuleRegistry":
        """Reject any further registration. Returns the registry."""
        self._frozen = True
        return self

    def register_rule(self, rule: ValidationRule) -> None:
        """Register a rule, replacing any rule with the same name.

        Raises:
            RegistryFrozenError: If the registry has been frozen
            RuleConfigurationError: If the rule lacks a name or validate method
        """
        if self._frozen:
            raise RegistryFrozenError(
                "Rules cannot be registered after startup",
                rule_name=getattr(rule, "name", None),
            )

        name = getattr(rule, "name", None)
        if not name or not isinstance(name, str):
            raise RuleConfigurationError(
                "Validation rule must have a non-empty name",
                parameter="name",
                value=name,
                rule_type=type(rule).__name__,
            )
        if not callable(getattr(rule, "validate", None)):
            raise RuleConfigurationError(
                f"Validation rule '{name}' has no validate method",
                rule_name=name,
                parameter="validate",
            )

        if name in self._rules:
            logger.warning('Validation rule "%s" is already registered. Overwriting.', name)
            self._unindex(name)

        self._rules[name] = rule
        entity_types = tuple(getattr(rule, "applicable_entity_types", ()) or ())
        if entity_types:
            for entity_type in entity_types:
                self._by_entity_type.setdefault(entity_type, []).append(name)
        else:
            self._universal.append(name)
        logger.debug("Registered validation rule: %s", name)

    def register_rules(self, rules: Iterable[ValidationRule]) -> None:
        """Register several rules in order."""
        for rule in rules:
            self.register_rule(rule)

    def unregister_rule(self, name: str) -> bool:
        """Remove a rule. Returns False if it was not registered.

        Raises:
            RegistryFrozenError: If the registry has been frozen
        """
        if self._frozen:
            raise RegistryFrozenError("Rules cannot be unregistered after startup", rule_name=name)
        if name not in self._rules:
            return False
        self._unindex(name)
        del self._rules[name]
        logger.debug("Unregistered validation rule: %s", name)
        return True

    def _unindex(self, name: str) -> None:
        for names in self._by_entity_type.values():
            if name in names:
                names.remove(name)
        if name in self._universal:
            self._universal.remove(name)

    def get_rule(self, name: str) -> ValidationRule | None:
        return self._rules.get(name)

    def get_all_rules(self) -> list[ValidationRule]:
        return list(self._rules.values())

    def get_rules_for_entity_type(self, entity_type: str) -> list[ValidationRule]:
        """Return the rules applicable to entity_type in registration order."""
        names = set(self._by_entity_type.get(entity_type, ())) | set(self._universal)
        return [rule for name, rule in self._rules.items() if name in names]

    def __len__(self) -> int:
        return len(self._rules)

    def __contains__(self, name: object) -> bool:
        return name in self._rules


def bootstrap_registry(
    extra_rules: Iterable[ValidationRule] = (),
    disabled_rules: Sequence[str] = (),
) -> RuleRegistry:
    """Build the process-wide rule registry.

    Registers the built-in rules, then any extra rules, drops the disabled
    rule names and freezes the registry. Call once during process start and
    pass the result to the ValidationEngine.

    Args:
        extra_rules: Additional rules implementing the ValidationRule protocol
        disabled_rules: Names of rules to leave out

    Returns:
        Frozen RuleRegistry

    Raises:
        RuleConfigurationError: If a disabled rule name is unknown

    Example:
        >>> registry = bootstrap_registry(disabled_rules=["Duplicate Detection"])
        >>> len(registry)
        3
        >>> registry.frozen
        True
    """
    registry = RuleRegistry()
    registry.register_rules(rule_cls() for rule_cls in BUILTIN_RULES)
    registry.register_rules(extra_rules)

    for name in disabled_rules:
        if not registry.unregister_rule(name):
            raise RuleConfigurationError(
                f"Cannot disable unknown rule '{name}'",
                rule_name=name,
                parameter="disabled_rules",
                reason=f"Available: {', '.join(r.name for r in registry.get_all_rules())}",
            )

    logger.info("Rule registry ready with %d rules", len(registry))
    return registry.freeze()
