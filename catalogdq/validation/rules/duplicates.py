"""Duplicate name rule.

Flags entities whose name is the same as, or very close to, the name of a
sibling entity, and names that look like an accidental copy. This is a
validation-time heuristic; the scored DuplicateDetector in catalogdq.merge is
used for merge workflows.
"""

import re
from typing import Any

from catalogdq.merge.similarity import similarity
from catalogdq.validation.result import Severity, ValidationContext, ValidationFinding
from catalogdq.validation.rules.base import RuleBase, text_value

SEPARATORS = re.compile(r"[-_\s]")
SHORT_NAME_LENGTH = 10
SIMILARITY_THRESHOLD = 0.8
MAX_LISTED_NAMES = 5

COPY_PATTERNS = (
    re.compile(r"\s*\(copy\)$", re.IGNORECASE),
    re.compile(r"\s*\(duplicate\)$", re.IGNORECASE),
    re.compile(r"\s*-\s*copy$", re.IGNORECASE),
    re.compile(r"\s*_copy$", re.IGNORECASE),
    re.compile(r"\s*\(\d+\)$"),
)


def names_are_similar(first: str, second: str) -> bool:
    """Return True if two lowercased names are near-duplicates.

    Separators are removed before comparing. Names are similar when one
    contains the other or, for names of at most 10 characters, when their
    similarity exceeds 0.8.

    Example:
        >>> names_are_similar("p-101", "p101")
        True
        >>> names_are_similar("fic-1001", "fic-1002")
        True
        >>> names_are_similar("ft-101", "tt-205")
        False
    """
    norm_first = SEPARATORS.sub("", first).lower()
    norm_second = SEPARATORS.sub("", second).lower()

    if norm_first in norm_second or norm_second in norm_first:
        return True

    if len(norm_first) <= SHORT_NAME_LENGTH and len(norm_second) <= SHORT_NAME_LENGTH:
        return similarity(norm_first, norm_second) > SIMILARITY_THRESHOLD

    return False


class DuplicateNameRule(RuleBase):
    """Detects potential duplicate entities based on name matching.

    Applies to every entity type. Sibling comparison only runs when the
    context carries all_entities; the copy-suffix check always runs.

    Example:
        >>> rule = DuplicateNameRule()
        >>> ctx = ValidationContext("p1", "equipment", {"name": "P-101 (copy)"})
        >>> rule.validate(ctx)[0].severity
        <Severity.INFO: 'Info'>
    """

    name = "Duplicate Detection"
    description = "Detects potential duplicate entities based on name matching"
    applicable_entity_types = ()

    def validate(self, context: ValidationContext) -> list[ValidationFinding]:
        entity = context.entity
        raw_name = entity.get("name")
        if not raw_name:
            return []

        name = str(raw_name)
        findings: list[ValidationFinding] = []

        if context.all_entities:
            duplicates = self._find_duplicates(
                name.strip().lower(),
                entity.get("id") or context.entity_id,
                context.all_entities,
            )
            if duplicates:
                listed = ", ".join(str(d["name"]) for d in duplicates[:MAX_LISTED_NAMES])
                more = len(duplicates) - MAX_LISTED_NAMES
                suffix = f" and {more} more" if more > 0 else ""
                findings.append(
                    self.finding(
                        Severity.WARNING,
                        f"Potential duplicate detected. Similar entities found: {listed}{suffix}",
                    )
                )

        if any(pattern.search(name) for pattern in COPY_PATTERNS):
            findings.append(
                self.finding(
                    Severity.INFO,
                    f'Entity name "{name}" appears to be a copy. Consider using a unique name.',
                )
            )

        return findings

    @staticmethod
    def _find_duplicates(
        name: str, entity_id: Any, siblings: list[dict[str, Any]]
    ) -> list[dict[str, Any]]:
        duplicates = []
        for other in siblings:
            if entity_id and other.get("id") == entity_id:
                continue
            other_name = text_value(other, "name")
            if other_name is None:
                continue
            other_name = other_name.lower()
            if name == other_name or names_are_similar(name, other_name):
                duplicates.append(other)
        return duplicates
