"""ValidationRule protocol definition.

Every rule, built-in or third party, implements the same small contract: a
unique name, a description, the entity types it applies to and a validate
method turning a ValidationContext into findings.

Protocols:
    - ValidationRule: Checks one entity and returns ValidationFindings

All implementations must:
    - Not mutate the context or the entity it carries
    - Be stateless and deterministic (safe to call concurrently)
    - Use an empty applicable_entity_types to apply to every entity type
"""

from collections.abc import Sequence
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from catalogdq.validation.result import ValidationContext, ValidationFinding


class ValidationRule(Protocol):
    """Protocol for validation rules.

    Rules are registered once at startup in a RuleRegistry and executed by the
    ValidationEngine. A rule that raises is contained by the engine and turned
    into a single Error finding, so rules do not need defensive handling of
    their own.

    Attributes:
        name: Unique rule name, also used as the finding's rule_name
        description: One-line description shown by ``catalogdq list-rules``
        applicable_entity_types: Entity types the rule checks; empty means all

    Example:
        >>> class DescriptionRequired:
        ...     name = "Description Required"
        ...     description = "Documents must carry a description"
        ...     applicable_entity_types = ("document",)
        ...
        ...     def validate(self, context):
        ...         if context.entity.get("description"):
        ...             return []
        ...         return [ValidationFinding(self.name, Severity.WARNING,
        ...                                   "Description is missing")]
    """

    name: str
    description: str
    applicable_entity_types: Sequence[str]

    def validate(self, context: "ValidationContext") -> list["ValidationFinding"]:
        """Check the entity carried by context.

        Args:
            context: Entity payload plus project, type and optional siblings

        Returns:
            Findings produced by the rule. An empty list means the entity
            satisfies the rule.
        """
        ...
