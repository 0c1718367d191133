"""ValidationEngine orchestration.

The engine runs the rules a RuleRegistry holds for an entity type against one
entity, collects their findings and, when asked, replaces the entity's stored
validation results inside a single store transaction.
"""

import logging
from collections.abc import Iterable, Sequence

from catalogdq.core.exceptions import PreconditionError
from catalogdq.core.protocols import EntityStore
from catalogdq.core.schema import VALIDATION_RESULT
from catalogdq.core.store import new_id, utcnow
from catalogdq.validation.protocols import ValidationRule
from catalogdq.validation.registry import RuleRegistry
from catalogdq.validation.result import (
    Severity,
    StoredValidationResult,
    ValidationContext,
    ValidationFinding,
)

logger = logging.getLogger(__name__)


def has_errors(findings: Iterable[ValidationFinding]) -> bool:
    """Return True if any failing finding has Error severity."""
    return any(f.is_error for f in findings)


def has_warnings(findings: Iterable[ValidationFinding]) -> bool:
    """Return True if any failing finding has Warning severity."""
    return any(f.is_warning for f in findings)


class ValidationEngine:
    """Executes validation rules against entities.

    A rule that raises never aborts the pass: the exception is logged with
    its traceback and reported as one Error finding named after the rule.

    Attributes:
        registry: Rules to execute, usually from bootstrap_registry()
        store: Entity store for persisted results. Optional for callers that
               only need validate_entity.

    Example:
        >>> from catalogdq.validation.registry import bootstrap_registry
        >>> engine = ValidationEngine(bootstrap_registry())
        >>> ctx = ValidationContext("p1", "tag", {"name": "FT-101", "type": "AI"})
        >>> engine.has_errors(engine.validate_entity(ctx))
        True
    """

    def __init__(self, registry: RuleRegistry, store: EntityStore | None = None):
        self.registry = registry
        self.store = store

    has_errors = staticmethod(has_errors)
    has_warnings = staticmethod(has_warnings)

    def validate_entity(self, context: ValidationContext) -> list[ValidationFinding]:
        """Run every rule applicable to context.entity_type, in registration order."""
        rules = self.registry.get_rules_for_entity_type(context.entity_type)
        if not rules:
            logger.debug("No validation rules found for entity type: %s", context.entity_type)
            return []

        logger.debug(
            "Executing %d validation rules for entity type: %s", len(rules), context.entity_type
        )
        findings: list[ValidationFinding] = []
        for rule in rules:
            findings.extend(self._run_rule(rule, context))
        return findings

    def validate_with_rules(
        self, context: ValidationContext, rule_names: Sequence[str]
    ) -> list[ValidationFinding]:
        """Run only the named rules, in the order given.

        Unknown names and rules not applicable to the entity type are skipped.
        """
        findings: list[ValidationFinding] = []
        for rule_name in rule_names:
            rule = self.registry.get_rule(rule_name)
            if rule is None:
                logger.warning("Validation rule not found: %s", rule_name)
                continue

            entity_types = rule.applicable_entity_types
            if entity_types and context.entity_type not in entity_types:
                logger.debug(
                    'Skipping rule "%s" - not applicable to entity type: %s',
                    rule_name,
                    context.entity_type,
                )
                continue

            findings.extend(self._run_rule(rule, context))
        return findings

    def _run_rule(
        self, rule: ValidationRule, context: ValidationContext
    ) -> list[ValidationFinding]:
        try:
            return list(rule.validate(context))
        except Exception as e:
            message = getattr(e, "message", None) or str(e)
            logger.exception('Error executing validation rule "%s": %s', rule.name, message)
            return [
                ValidationFinding(
                    rule_name=rule.name,
                    severity=Severity.ERROR,
                    message=f"Validation rule execution failed: {message}",
                )
            ]

    def _require_store(self) -> EntityStore:
        if self.store is None:
            raise PreconditionError(
                "Validation results cannot be stored without an entity store",
                operation="store_findings",
            )
        return self.store

    def clear_results(self, project_id: str, entity_type: str, entity_id: str) -> int:
        """Delete every stored result for one entity. Returns the count removed."""
        store = self._require_store()
        existing = store.find_all(
            VALIDATION_RESULT,
            {"project_id": project_id, "entity_type": entity_type, "entity_id": entity_id},
        )
        for record in existing:
            store.delete(VALIDATION_RESULT, record["id"])
        logger.debug("Cleared %d validation results for entity %s", len(existing), entity_id)
        return len(existing)

    def store_findings(
        self,
        project_id: str,
        entity_type: str,
        entity_id: str,
        findings: Iterable[ValidationFinding],
    ) -> list[StoredValidationResult]:
        """Persist one result row per failing finding."""
        store = self._require_store()
        stored = []
        for finding in findings:
            if finding.passed:
                continue
            result = StoredValidationResult(
                id=new_id(),
                project_id=project_id,
                entity_type=entity_type,
                entity_id=entity_id,
                rule_name=finding.rule_name,
                severity=finding.severity,
                message=finding.message,
                created_at=utcnow(),
            )
            store.create(VALIDATION_RESULT, result.to_record())
            stored.append(result)

        if stored:
            logger.info("Stored %d validation results for entity %s", len(stored), entity_id)
        return stored

    def validate_and_store(self, context: ValidationContext) -> list[ValidationFinding]:
        """Validate, then replace the entity's stored results.

        Results are only stored when context.entity_id is set. The delete and
        the inserts run in one transaction, so readers never see stale and
        fresh results together.
        """
        findings = self.validate_entity(context)
        if context.entity_id:
            store = self._require_store()
            with store.transaction():
                self.clear_results(context.project_id, context.entity_type, context.entity_id)
                self.store_findings(
                    context.project_id, context.entity_type, context.entity_id, findings
                )
        return findings
