"""Validation query API.

ValidationService exposes stored validation results to callers outside the
core: per-entity and per-project listings, warning acknowledgement, a
project summary and the pre-save gate used by entity editors.
"""

import logging
from typing import Any

import polars as pl

from catalogdq.core.exceptions import AcknowledgementError, NotFoundError, ValidationBlockedError
from catalogdq.core.protocols import EntityStore
from catalogdq.core.schema import VALIDATION_RESULT, validation_results_frame
from catalogdq.validation.engine import ValidationEngine
from catalogdq.validation.result import (
    Severity,
    StoredValidationResult,
    ValidationContext,
    ValidationFinding,
)

logger = logging.getLogger(__name__)


def _newest_first(records: list[dict[str, Any]]) -> list[StoredValidationResult]:
    results = [StoredValidationResult.from_record(r) for r in records]
    return sorted(results, key=lambda r: r.created_at, reverse=True)


class ValidationService:
    """Query and control operations over stored validation results.

    Example:
        >>> service = ValidationService(engine, store)
        >>> summary = service.get_validation_summary("p1")
        >>> summary["errors"], summary["warnings"]
        (0, 2)
    """

    def __init__(self, engine: ValidationEngine, store: EntityStore):
        self.engine = engine
        self.store = store

    def validate_entity(self, context: ValidationContext) -> list[ValidationFinding]:
        """Validate an entity and replace its stored results."""
        return self.engine.validate_and_store(context)

    def get_validation_results(
        self, project_id: str, entity_type: str, entity_id: str
    ) -> list[StoredValidationResult]:
        """Return one entity's stored results, newest first."""
        records = self.store.find_all(
            VALIDATION_RESULT,
            {"project_id": project_id, "entity_type": entity_type, "entity_id": entity_id},
        )
        return _newest_first(records)

    def get_project_validation_results(
        self, project_id: str, entity_type: str | None = None
    ) -> list[StoredValidationResult]:
        """Return a project's stored results, optionally for one entity type."""
        filters = {"project_id": project_id}
        if entity_type:
            filters["entity_type"] = entity_type
        return _newest_first(self.store.find_all(VALIDATION_RESULT, filters))

    def acknowledge_warning(self, result_id: str) -> StoredValidationResult:
        """Mark a Warning or Info result as acknowledged.

        Raises:
            NotFoundError: If the result does not exist
            AcknowledgementError: If the result has Error severity
        """
        record = self.store.find(VALIDATION_RESULT, result_id)
        if record is None:
            raise NotFoundError(
                "Validation result not found",
                record_type=VALIDATION_RESULT,
                record_id=result_id,
            )

        result = StoredValidationResult.from_record(record)
        if not result.can_acknowledge:
            raise AcknowledgementError(
                "Cannot acknowledge errors, only warnings",
                result_id=result_id,
                severity=result.severity.value,
            )

        result.acknowledged = True
        self.store.save(VALIDATION_RESULT, {**record, "acknowledged": True})
        logger.info("Acknowledged validation result %s", result_id)
        return result

    def clear_validation_results(self, project_id: str, entity_type: str, entity_id: str) -> int:
        return self.engine.clear_results(project_id, entity_type, entity_id)

    def get_validation_summary(self, project_id: str) -> dict[str, Any]:
        """Count a project's results by severity, entity type and rule.

        Returns:
            Dictionary with total, errors, warnings, info, acknowledged,
            by_entity_type and by_rule
        """
        records = self.store.find_all(VALIDATION_RESULT, {"project_id": project_id})
        df = validation_results_frame(records)

        def count_by(column: str) -> dict[str, int]:
            if df.is_empty():
                return {}
            grouped = df.group_by(column).agg(pl.len().alias("count")).sort(column)
            return dict(zip(grouped[column].to_list(), grouped["count"].to_list()))

        def count_severity(severity: Severity) -> int:
            return df.filter(pl.col("severity") == severity.value).height

        return {
            "total": df.height,
            "errors": count_severity(Severity.ERROR),
            "warnings": count_severity(Severity.WARNING),
            "info": count_severity(Severity.INFO),
            "acknowledged": df.filter(pl.col("acknowledged")).height,
            "by_entity_type": count_by("entity_type"),
            "by_rule": count_by("rule_name"),
        }

    def can_save_entity(
        self,
        project_id: str,
        entity_type: str,
        entity: dict[str, Any],
        entity_id: str | None = None,
        allow_override: bool = False,
    ) -> bool:
        """Check that an entity may be saved.

        Returns:
            True when the entity has no Error findings, or allow_override is set

        Raises:
            ValidationBlockedError: If Error findings exist and no override
        """
        findings = self.engine.validate_entity(
            ValidationContext(
                project_id=project_id,
                entity_type=entity_type,
                entity=entity,
                entity_id=entity_id,
            )
        )
        if self.engine.has_errors(findings) and not allow_override:
            errors = [f"{f.rule_name}: {f.message}" for f in findings if f.is_error]
            raise ValidationBlockedError(
                f"Cannot save entity due to validation errors: {'; '.join(errors)}",
                entity_type=entity_type,
                entity_id=entity_id,
                errors=errors,
            )
        return True
