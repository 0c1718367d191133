"""Naming convention rule.

Checks entity names for presence and length and, for tags and equipment,
against the plant naming standard.
"""

import re

from catalogdq.core.schema import EQUIPMENT, TAG
from catalogdq.validation.result import Severity, ValidationContext, ValidationFinding
from catalogdq.validation.rules.base import RuleBase, text_value

MIN_NAME_LENGTH = 3
MAX_NAME_LENGTH = 50

# Tag name patterns by tag type, with an example of each
TAG_PATTERNS: dict[str, re.Pattern[str]] = {
    "AI": re.compile(r"^AI[-_]\d+[A-Z]?$", re.IGNORECASE),
    "AO": re.compile(r"^AO[-_]\d+[A-Z]?$", re.IGNORECASE),
    "DI": re.compile(r"^DI[-_]\d+[A-Z]?$", re.IGNORECASE),
    "DO": re.compile(r"^DO[-_]\d+[A-Z]?$", re.IGNORECASE),
    "PID": re.compile(r"^PID[-_]\d+[A-Z]?$", re.IGNORECASE),
    "Valve": re.compile(r"^[A-Z]{2,3}V[-_]\d+[A-Z]?$", re.IGNORECASE),
    "Drive": re.compile(r"^[A-Z]{2,3}D[-_]\d+[A-Z]?$", re.IGNORECASE),
    "Totaliser": re.compile(r"^[A-Z]{2,3}T[-_]\d+[A-Z]?$", re.IGNORECASE),
    "Calc": re.compile(r"^CALC[-_]\d+[A-Z]?$", re.IGNORECASE),
}

TAG_EXAMPLES = {
    "AI": "AI-101",
    "AO": "AO-201",
    "DI": "DI-301",
    "DO": "DO-401",
    "PID": "PID-501",
    "Valve": "FV-101",
    "Drive": "MD-101",
    "Totaliser": "FT-101",
    "Calc": "CALC-101",
}

EQUIPMENT_PATTERN = re.compile(r"^[A-Z0-9][-_A-Z0-9]*$", re.IGNORECASE)
SPECIAL_CHARACTERS = re.compile(r"[^A-Z0-9_-]", re.IGNORECASE)
EDGE_SEPARATOR = re.compile(r"^[-_]|[-_]$")


class NamingConventionRule(RuleBase):
    """Validates that entity names follow standard naming patterns.

    Missing names are errors. Names shorter than 3 characters produce a
    warning and names longer than 50 characters an error. Tag names are
    matched against the pattern of their tag type (unknown types are not
    checked) and equipment names may only use letters, digits, hyphens and
    underscores.

    Example:
        >>> rule = NamingConventionRule()
        >>> ctx = ValidationContext("p1", "tag", {"name": "AI-101", "type": "AI"})
        >>> rule.validate(ctx)
        []
        >>> ctx = ValidationContext("p1", "tag", {"name": "FT-101", "type": "AI"})
        >>> [f.severity.value for f in rule.validate(ctx)]
        ['Warning']
    """

    name = "Naming Convention"
    description = "Validates that entity names follow standard naming patterns"
    applicable_entity_types = (TAG, EQUIPMENT)

    def validate(self, context: ValidationContext) -> list[ValidationFinding]:
        entity = context.entity
        if entity.get("name") is None or entity.get("name") == "":
            return [self.finding(Severity.ERROR, "Entity name is required")]

        name = text_value(entity, "name")
        if name is None:
            return [self.finding(Severity.ERROR, "Entity name cannot be empty")]

        findings: list[ValidationFinding] = []
        if len(name) < MIN_NAME_LENGTH:
            findings.append(
                self.finding(
                    Severity.WARNING,
                    f"Entity name is too short (minimum {MIN_NAME_LENGTH} characters)",
                )
            )
        if len(name) > MAX_NAME_LENGTH:
            findings.append(
                self.finding(
                    Severity.ERROR,
                    f"Entity name is too long (maximum {MAX_NAME_LENGTH} characters)",
                )
            )

        if context.entity_type == TAG:
            findings.extend(self._check_tag_name(name, entity.get("type")))
        elif context.entity_type == EQUIPMENT:
            findings.extend(self._check_equipment_name(name))

        return findings

    def _check_tag_name(self, name: str, tag_type: object) -> list[ValidationFinding]:
        if not tag_type:
            return [
                self.finding(
                    Severity.WARNING,
                    "Tag type is not specified, cannot validate naming pattern",
                )
            ]

        pattern = TAG_PATTERNS.get(str(tag_type))
        if pattern is None:
            return []

        findings = []
        if not pattern.match(name):
            example = TAG_EXAMPLES.get(str(tag_type), f"{tag_type}-101")
            findings.append(
                self.finding(
                    Severity.WARNING,
                    f'Tag name "{name}" does not follow standard pattern for type '
                    f"{tag_type}. Expected format: {example}",
                )
            )
        if SPECIAL_CHARACTERS.search(name):
            findings.append(
                self.finding(
                    Severity.WARNING,
                    "Tag name contains special characters. Use only letters, "
                    "numbers, hyphens, and underscores",
                )
            )
        return findings

    def _check_equipment_name(self, name: str) -> list[ValidationFinding]:
        findings = []
        if not EQUIPMENT_PATTERN.match(name):
            findings.append(
                self.finding(
                    Severity.WARNING,
                    f'Equipment name "{name}" should contain only letters, numbers, '
                    f"hyphens, and underscores",
                )
            )
        if EDGE_SEPARATOR.search(name):
            findings.append(
                self.finding(
                    Severity.WARNING,
                    "Equipment name should not start or end with hyphens or underscores",
                )
            )
        return findings
