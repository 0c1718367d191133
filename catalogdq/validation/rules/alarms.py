"""Alarm completeness rule."""

import re

from catalogdq.core.schema import ALARM
from catalogdq.validation.result import Severity, ValidationContext, ValidationFinding
from catalogdq.validation.rules.base import RuleBase, is_missing, numeric_value, text_value

VALID_PRIORITIES = ("Critical", "High", "Medium", "Low")
MIN_TEXT_LENGTH = 10

PLACEHOLDER_PATTERNS = (
    re.compile(r"^tbd$", re.IGNORECASE),
    re.compile(r"^to be determined$", re.IGNORECASE),
    re.compile(r"^todo$", re.IGNORECASE),
    re.compile(r"^n/a$", re.IGNORECASE),
    re.compile(r"^na$", re.IGNORECASE),
    re.compile(r"^none$", re.IGNORECASE),
    re.compile(r"^xxx$", re.IGNORECASE),
    re.compile(r"^\?\?+$"),
)

# (entity field, label used in messages, hint for too-brief text)
RATIONALIZATION_FIELDS = (
    (
        "rationalization",
        "rationalization",
        "Alarm rationalization is too brief. Provide detailed justification.",
    ),
    (
        "consequence",
        "consequence",
        "Alarm consequence description is too brief. Provide detailed impact analysis.",
    ),
    (
        "operatorAction",
        "operator action",
        "Operator action description is too brief. Provide clear instructions.",
    ),
)


class AlarmCompletenessRule(RuleBase):
    """Validates that alarms have all required rationalization fields.

    Priority, numeric setpoint, tag reference and the three rationalization
    texts are required. Texts shorter than 10 characters or consisting of
    placeholder text such as "TBD" produce warnings.

    Example:
        >>> rule = AlarmCompletenessRule()
        >>> ctx = ValidationContext("p1", "alarm", {
        ...     "priority": "High", "setpoint": 80, "tagId": "t1",
        ...     "rationalization": "tbd",
        ...     "consequence": "Pump cavitation and seal damage",
        ...     "operatorAction": "Reduce flow and inspect the pump",
        ... })
        >>> [f.severity.value for f in rule.validate(ctx)]
        ['Warning', 'Warning']
    """

    name = "Alarm Completeness"
    description = "Validates that alarms have all required rationalization fields"
    applicable_entity_types = (ALARM,)

    def validate(self, context: ValidationContext) -> list[ValidationFinding]:
        alarm = context.entity
        findings: list[ValidationFinding] = []

        priority = alarm.get("priority")
        if not priority:
            findings.append(self.finding(Severity.ERROR, "Alarm priority is required"))
        elif priority not in VALID_PRIORITIES:
            findings.append(
                self.finding(
                    Severity.ERROR,
                    f'Invalid alarm priority "{priority}". Must be one of: '
                    f"{', '.join(VALID_PRIORITIES)}",
                )
            )

        setpoint = alarm.get("setpoint")
        if setpoint is None:
            findings.append(self.finding(Severity.ERROR, "Alarm setpoint is required"))
        elif numeric_value(setpoint) is None:
            findings.append(self.finding(Severity.ERROR, "Alarm setpoint must be a valid number"))

        if not alarm.get("tagId"):
            findings.append(self.finding(Severity.ERROR, "Alarm must be linked to a tag"))

        for field, label, _ in RATIONALIZATION_FIELDS:
            if is_missing(alarm.get(field)):
                findings.append(
                    self.finding(
                        Severity.ERROR,
                        f"Alarm {label} is required for proper alarm rationalization",
                    )
                )

        for field, _, too_brief in RATIONALIZATION_FIELDS:
            text = text_value(alarm, field)
            if text is not None and len(text) < MIN_TEXT_LENGTH:
                findings.append(self.finding(Severity.WARNING, too_brief))

        for field, label, _ in RATIONALIZATION_FIELDS:
            text = text_value(alarm, field)
            if text is not None and any(p.match(text) for p in PLACEHOLDER_PATTERNS):
                findings.append(
                    self.finding(
                        Severity.WARNING,
                        f'Alarm {label} contains placeholder text "{text}". '
                        f"Replace with actual content.",
                    )
                )

        return findings
