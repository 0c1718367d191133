"""Transactional entity merge.

MergeEngine consolidates a source entity into a target entity: it writes the
merged field map under the target id, re-points every link and attachment
that referenced the source, deletes the source and records one audit entry.
All of it happens under an advisory lock on the target and inside one store
transaction, so a merge either fully happens or leaves no trace.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from catalogdq.core.exceptions import NotFoundError, PreconditionError, UnsupportedEntityTypeError
from catalogdq.core.protocols import AuditSink, EntityStore
from catalogdq.core.schema import ATTACHMENT, LINK, MERGEABLE_ENTITY_TYPES

logger = logging.getLogger(__name__)

MERGE_OPERATION = "Merge"


class MergeStrategy(Enum):
    """How field conflicts between source and target are resolved.

    Attributes:
        SKIP: Keep the target unchanged
        OVERWRITE: Source fields win over target fields
        MERGE_FIELDS: Per-field choice of source or target
    """

    SKIP = "skip"
    OVERWRITE = "overwrite"
    MERGE_FIELDS = "merge_fields"


@dataclass
class MergeRequest:
    """Request to merge source_entity_id into target_entity_id.

    Attributes:
        entity_type: Entity type of both entities
        source_entity_id: Entity merged from, deleted on success
        target_entity_id: Entity merged into, kept and updated
        strategy: MergeStrategy or its string value
        field_selections: For MERGE_FIELDS, field name to "source" or "target"
    """

    entity_type: str
    source_entity_id: str
    target_entity_id: str
    strategy: MergeStrategy | str
    field_selections: dict[str, str] | None = None


@dataclass
class MergeResult:
    """Outcome of a merge. Failures carry zeroed counts and an error message."""

    success: bool
    merged_entity_id: str = ""
    preserved_links: int = 0
    preserved_attachments: int = 0
    audit_log_id: str = ""
    error: str | None = None

    @classmethod
    def failure(cls, error: str) -> "MergeResult":
        return cls(success=False, error=error)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "success": self.success,
            "mergedEntityId": self.merged_entity_id,
            "preservedLinks": self.preserved_links,
            "preservedAttachments": self.preserved_attachments,
            "auditLogId": self.audit_log_id,
        }
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass
class _MergeOutcome:
    links: list[dict[str, Any]] = field(default_factory=list)
    attachments: list[dict[str, Any]] = field(default_factory=list)
    audit_log_id: str = ""


def merge_entities(
    source: dict[str, Any],
    target: dict[str, Any],
    strategy: MergeStrategy,
    field_selections: dict[str, str] | None = None,
) -> dict[str, Any]:
    """Compute the merged field map. The result always carries target's id.

    Example:
        >>> merge_entities(
        ...     {"id": "s", "name": "P-101B", "type": "Pump"},
        ...     {"id": "t", "name": "P-101", "type": None},
        ...     MergeStrategy.OVERWRITE,
        ... )
        {'id': 't', 'name': 'P-101B', 'type': 'Pump'}
    """
    if strategy is MergeStrategy.SKIP:
        return dict(target)

    if strategy is MergeStrategy.OVERWRITE:
        merged = {**target, **source}
    elif field_selections is None:
        # No selections: take every non-null source value
        merged = dict(target)
        merged.update({k: v for k, v in source.items() if v is not None})
    else:
        merged = dict(target)
        for name, selection in field_selections.items():
            if selection not in ("source", "target"):
                raise PreconditionError(
                    f"Invalid field selection '{selection}' for field '{name}'",
                    operation="merge",
                    field=name,
                )
            merged[name] = (source if selection == "source" else target).get(name)

    merged["id"] = target["id"]
    return merged


class MergeEngine:
    """Applies merge strategies to stored entities.

    ``merge`` never raises: every failure, including a precondition failure,
    rolls back and comes back as a MergeResult with success=False.

    Example:
        >>> engine = MergeEngine(store, StoreAuditSink(store))
        >>> result = engine.merge(
        ...     MergeRequest("equipment", source_id, target_id, MergeStrategy.OVERWRITE),
        ...     user_id="u1",
        ... )
        >>> result.success, result.merged_entity_id == target_id
        (True, True)
    """

    def __init__(self, store: EntityStore, audit: AuditSink):
        self.store = store
        self.audit = audit

    def merge(self, request: MergeRequest, user_id: str) -> MergeResult:
        """Merge request.source_entity_id into request.target_entity_id."""
        try:
            strategy = self._resolve_strategy(request.strategy)
            entity_type = self._resolve_entity_type(request.entity_type)
            if request.source_entity_id == request.target_entity_id:
                raise PreconditionError(
                    "Source and target must be different entities",
                    operation="merge",
                    entity_id=request.target_entity_id,
                )

            with self.store.lock(entity_type, request.target_entity_id):
                with self.store.transaction():
                    outcome = self._apply(request, entity_type, strategy, user_id)
        except Exception as e:
            logger.warning(
                "Merge of %s %s into %s failed: %s",
                request.entity_type,
                request.source_entity_id,
                request.target_entity_id,
                e,
            )
            return MergeResult.failure(getattr(e, "message", None) or str(e))

        logger.info(
            "Merged %s %s into %s (%d links, %d attachments)",
            entity_type,
            request.source_entity_id,
            request.target_entity_id,
            len(outcome.links),
            len(outcome.attachments),
        )
        return MergeResult(
            success=True,
            merged_entity_id=request.target_entity_id,
            preserved_links=len(outcome.links),
            preserved_attachments=len(outcome.attachments),
            audit_log_id=outcome.audit_log_id,
        )

    @staticmethod
    def _resolve_strategy(strategy: MergeStrategy | str) -> MergeStrategy:
        if isinstance(strategy, MergeStrategy):
            return strategy
        try:
            return MergeStrategy(strategy)
        except ValueError:
            raise PreconditionError(
                "Invalid merge strategy",
                operation="merge",
                strategy=strategy,
            ) from None

    @staticmethod
    def _resolve_entity_type(entity_type: str) -> str:
        normalized = entity_type.lower()
        if normalized not in MERGEABLE_ENTITY_TYPES:
            raise UnsupportedEntityTypeError(
                f"Unsupported entity type: {entity_type}",
                entity_type=entity_type,
                supported=list(MERGEABLE_ENTITY_TYPES),
            )
        return normalized

    def _apply(
        self,
        request: MergeRequest,
        entity_type: str,
        strategy: MergeStrategy,
        user_id: str,
    ) -> _MergeOutcome:
        source_id = request.source_entity_id
        target_id = request.target_entity_id

        source = self.store.find(entity_type, source_id)
        target = self.store.find(entity_type, target_id)
        if source is None or target is None:
            raise NotFoundError(
                "One or both entities not found",
                record_type=entity_type,
                source_entity_id=source_id,
                target_entity_id=target_id,
            )

        merged = merge_entities(source, target, strategy, request.field_selections)
        self.store.save(entity_type, merged)

        outcome = _MergeOutcome()
        for link in self.store.find_relationships(entity_type, source_id):
            if link.get("sourceEntityId") == source_id:
                link["sourceEntityId"] = target_id
            if link.get("targetEntityId") == source_id:
                link["targetEntityId"] = target_id
            self.store.save(LINK, link)
            outcome.links.append(link)

        for attachment in self.store.find_all(ATTACHMENT, {"entityId": source_id}):
            attachment["entityId"] = target_id
            self.store.save(ATTACHMENT, attachment)
            outcome.attachments.append(attachment)

        self.store.delete(entity_type, source_id)

        outcome.audit_log_id = self.audit.record(
            user_id,
            MERGE_OPERATION,
            entity_type,
            target_id,
            {
                "mergedFrom": source_id,
                "strategy": strategy.value,
                "preservedLinks": len(outcome.links),
                "preservedAttachments": len(outcome.attachments),
            },
        )
        return outcome
