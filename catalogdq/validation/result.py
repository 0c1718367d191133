"""Validation data structures.

This module defines the value types that flow through the validation engine:
the per-call ValidationContext handed to every rule, the ValidationFinding a
rule returns, and the StoredValidationResult row persisted for each failing
finding.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class Severity(Enum):
    """Severity of a validation finding.

    Attributes:
        ERROR: Blocks entity creation or update, cannot be acknowledged
        WARNING: Entity is saved, finding is stored and acknowledgeable
        INFO: Advisory, stored and acknowledgeable like a warning
    """

    ERROR = "Error"
    WARNING = "Warning"
    INFO = "Info"


@dataclass
class ValidationContext:
    """Input of one validation pass.

    Attributes:
        project_id: Owning project
        entity_type: Entity type tag (tag, equipment, alarm, document)
        entity: Candidate entity payload as an untyped field map
        entity_id: Persisted entity id, None for pre-create checks
        all_entities: Sibling entities of the same type, only supplied when
                      duplicate-name checking is requested

    Example:
        >>> ctx = ValidationContext(
        ...     project_id="p1",
        ...     entity_type="tag",
        ...     entity={"name": "FT-101", "type": "AI"},
        ... )
        >>> ctx.entity_id is None
        True
    """

    project_id: str
    entity_type: str
    entity: dict[str, Any]
    entity_id: str | None = None
    all_entities: list[dict[str, Any]] | None = None


@dataclass(frozen=True)
class ValidationFinding:
    """Outcome of one rule check against one entity.

    A finding with passed=True records that a rule ran and was satisfied. Such
    findings are never persisted; only failing findings become stored results.

    Example:
        >>> finding = ValidationFinding(
        ...     rule_name="Scaling and Units",
        ...     severity=Severity.ERROR,
        ...     message="Engineering units are required for AI tags",
        ... )
        >>> finding.is_error
        True
        >>> finding.format()
        '[Error] Scaling and Units: Engineering units are required for AI tags'
    """

    rule_name: str
    severity: Severity
    message: str
    passed: bool = False

    @property
    def is_error(self) -> bool:
        return not self.passed and self.severity is Severity.ERROR

    @property
    def is_warning(self) -> bool:
        return not self.passed and self.severity is Severity.WARNING

    def format(self) -> str:
        """Format the finding as a single console line."""
        return f"[{self.severity.value}] {self.rule_name}: {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Export the finding with camelCase keys, as embedded in import reports."""
        return {
            "ruleName": self.rule_name,
            "severity": self.severity.value,
            "message": self.message,
            "passed": self.passed,
        }


@dataclass
class StoredValidationResult:
    """Persisted row for one failing finding.

    Rows for one (project_id, entity_type, entity_id) are replaced as a set on
    every re-validation. Acknowledgement is only permitted when the severity
    is not Error.

    Attributes:
        id: Result identifier
        project_id: Owning project
        entity_type: Entity type of the validated entity
        entity_id: Validated entity
        rule_name: Rule that produced the finding
        severity: Finding severity
        message: Finding text
        acknowledged: Whether a user acknowledged the finding
        created_at: When the row was written
    """

    id: str
    project_id: str
    entity_type: str
    entity_id: str
    rule_name: str
    severity: Severity
    message: str
    acknowledged: bool = False
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def can_acknowledge(self) -> bool:
        return self.severity is not Severity.ERROR

    def to_record(self) -> dict[str, Any]:
        """Convert to the entity store record layout."""
        return {
            "id": self.id,
            "project_id": self.project_id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "rule_name": self.rule_name,
            "severity": self.severity.value,
            "message": self.message,
            "acknowledged": self.acknowledged,
            "created_at": self.created_at,
        }

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "StoredValidationResult":
        """Build a result from an entity store record."""
        return cls(
            id=record["id"],
            project_id=record["project_id"],
            entity_type=record["entity_type"],
            entity_id=record["entity_id"],
            rule_name=record["rule_name"],
            severity=Severity(record["severity"]),
            message=record["message"],
            acknowledged=bool(record.get("acknowledged", False)),
            created_at=record.get("created_at") or record.get("createdAt") or datetime.now(timezone.utc),
        )
