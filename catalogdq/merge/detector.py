"""Pairwise duplicate detection.

DuplicateDetector scores every (existing, candidate) pair on the fields named
by a DuplicateMatchRule and reports the pairs whose mean field score reaches
the rule's threshold. Detection is O(|existing| x |candidates| x |fields|);
callers bound the sets, typically to one project and entity type.
"""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from catalogdq.core.exceptions import UnsupportedEntityTypeError
from catalogdq.core.protocols import EntityStore
from catalogdq.core.schema import ENTITY_TYPES, is_entity_type
from catalogdq.merge.similarity import SimilarityScorer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DuplicateMatchRule:
    """Which fields define a duplicate, and how strictly.

    Attributes:
        match_fields: Ordered field names to compare
        case_sensitive: Compare strings without case folding
        exact_match: Score strings 1 or 0 by equality instead of similarity
        similarity_threshold: Minimum mean score for a candidate, in [0, 1]
        entity_type: Entity type the rule is meant for (informational)

    Example:
        >>> rule = DuplicateMatchRule(match_fields=("name", "type"), exact_match=True)
        >>> rule.similarity_threshold
        0.8
    """

    match_fields: tuple[str, ...]
    case_sensitive: bool = False
    exact_match: bool = False
    similarity_threshold: float = 0.8
    entity_type: str | None = None

    def __post_init__(self) -> None:
        # Accept any sequence of names but store an immutable tuple
        object.__setattr__(self, "match_fields", tuple(self.match_fields))
        if not self.match_fields:
            raise ValueError("match_fields must contain at least one field name")
        if not 0.0 <= self.similarity_threshold <= 1.0:
            raise ValueError(
                f"similarity_threshold must be between 0 and 1, got: {self.similarity_threshold}"
            )

    @classmethod
    def default(cls, entity_type: str | None = None) -> "DuplicateMatchRule":
        """Fuzzy, case-insensitive match on name at 0.8."""
        return cls(match_fields=("name",), entity_type=entity_type)


@dataclass
class DuplicateCandidate:
    """A scored (existing, new) pair that looks like a duplicate."""

    existing_entity: dict[str, Any]
    new_entity: dict[str, Any]
    match_score: float
    matched_fields: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "existingEntity": self.existing_entity,
            "newEntity": self.new_entity,
            "matchScore": self.match_score,
            "matchedFields": list(self.matched_fields),
        }


def _is_blank(value: Any) -> bool:
    return value is None or value == ""


class DuplicateDetector:
    """Finds duplicate candidates between two entity sets.

    String fields are compared with the SimilarityScorer (or by equality when
    the rule asks for exact matching), after case folding unless the rule is
    case sensitive. Other values compare by strict equality. A field that is
    None or empty on either side does not contribute to the pair's score, and
    a pair with no contributing fields is never a candidate.

    Example:
        >>> detector = DuplicateDetector()
        >>> found = detector.detect(
        ...     [{"id": "e1", "name": "P-101"}],
        ...     [{"name": "p-101"}],
        ...     DuplicateMatchRule(match_fields=("name",)),
        ... )
        >>> found[0].match_score, found[0].matched_fields
        (1.0, ['name'])
    """

    def __init__(self, scorer: SimilarityScorer | None = None):
        self.scorer = scorer or SimilarityScorer()

    def score_field(self, existing: Any, new: Any, rule: DuplicateMatchRule) -> float:
        """Score one field pair in [0, 1]."""
        if isinstance(existing, str) and isinstance(new, str):
            if not rule.case_sensitive:
                existing, new = existing.lower(), new.lower()
            if rule.exact_match:
                return 1.0 if existing == new else 0.0
            return self.scorer.score(existing, new)

        # bool is an int subclass; keep True distinct from 1
        if isinstance(existing, bool) != isinstance(new, bool):
            return 0.0
        return 1.0 if existing == new else 0.0

    def compare(
        self,
        existing: dict[str, Any],
        new: dict[str, Any],
        rule: DuplicateMatchRule,
    ) -> DuplicateCandidate | None:
        """Score one pair and return it when it is a duplicate candidate."""
        scores: list[float] = []
        matched: list[str] = []
        for name in rule.match_fields:
            existing_value = existing.get(name)
            new_value = new.get(name)
            if _is_blank(existing_value) or _is_blank(new_value):
                continue

            score = self.score_field(existing_value, new_value, rule)
            scores.append(score)
            if score > rule.similarity_threshold:
                matched.append(name)

        if not scores:
            return None

        match_score = sum(scores) / len(scores)
        if match_score < rule.similarity_threshold:
            return None

        return DuplicateCandidate(
            existing_entity=existing,
            new_entity=new,
            match_score=match_score,
            matched_fields=matched,
        )

    def detect(
        self,
        existing: Sequence[dict[str, Any]],
        candidates: Iterable[dict[str, Any]],
        match_rule: DuplicateMatchRule,
    ) -> list[DuplicateCandidate]:
        """Return duplicate candidates, ordered by candidate then existing entity."""
        found = []
        for new_entity in candidates:
            for existing_entity in existing:
                candidate = self.compare(existing_entity, new_entity, match_rule)
                if candidate is not None:
                    found.append(candidate)

        logger.debug(
            "Duplicate detection on %s found %d candidates",
            ", ".join(match_rule.match_fields),
            len(found),
        )
        return found

    def detect_in_store(
        self,
        store: EntityStore,
        project_id: str,
        entity_type: str,
        candidates: Iterable[dict[str, Any]],
        match_rule: DuplicateMatchRule | None = None,
    ) -> list[DuplicateCandidate]:
        """Compare candidates against a project's stored entities of one type.

        Uses DuplicateMatchRule.default() when no rule is given.

        Raises:
            UnsupportedEntityTypeError: If entity_type is not a catalog entity type
        """
        if not is_entity_type(entity_type):
            raise UnsupportedEntityTypeError(
                f"Unsupported entity type: {entity_type}",
                entity_type=entity_type,
                supported=list(ENTITY_TYPES),
            )
        existing = store.find_all(entity_type, {"projectId": project_id})
        rule = match_rule or DuplicateMatchRule.default(entity_type)
        return self.detect(existing, candidates, rule)
