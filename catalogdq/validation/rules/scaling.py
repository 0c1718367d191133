"""Scaling and engineering units rule for analog tags."""

from catalogdq.core.schema import TAG
from catalogdq.validation.result import Severity, ValidationContext, ValidationFinding
from catalogdq.validation.rules.base import RuleBase, is_missing, numeric_value, text_value

# Tag types that carry a scale
SCALED_TYPES = ("AI", "AO")

KNOWN_UNITS = frozenset(
    {
        # Temperature
        "degC", "degF", "K",
        # Pressure
        "bar", "psi", "kPa", "MPa", "Pa",
        # Flow
        "m3/h", "L/min", "gpm", "kg/h", "t/h",
        # Level
        "m", "mm", "%", "cm",
        # Other
        "V", "mA", "Hz", "rpm", "kW", "MW", "pH",
    }
)

# Lowercased fragments of units whose quantity can legitimately be negative
NEGATIVE_CAPABLE_UNITS = ("k", "degc", "degf")

MIN_RANGE = 0.001
MAX_RANGE = 1_000_000


class ScalingUnitsRule(RuleBase):
    """Validates that AI and AO tags have engineering units and a sane scale.

    Example:
        >>> rule = ScalingUnitsRule()
        >>> ctx = ValidationContext("p1", "tag", {
        ...     "name": "FT-101", "type": "AI", "scaleLow": 0, "scaleHigh": 100,
        ... })
        >>> rule.validate(ctx)[0].message
        'Tag type AI requires engineering units to be specified'
    """

    name = "Scaling and Units"
    description = "Validates that tags have proper scaling and engineering units"
    applicable_entity_types = (TAG,)

    def validate(self, context: ValidationContext) -> list[ValidationFinding]:
        tag = context.entity
        tag_type = tag.get("type")
        if tag_type not in SCALED_TYPES:
            return []

        findings: list[ValidationFinding] = []
        units = text_value(tag, "engineeringUnits")
        if units is None:
            findings.append(
                self.finding(
                    Severity.ERROR,
                    f"Tag type {tag_type} requires engineering units to be specified",
                )
            )
        elif units not in KNOWN_UNITS:
            findings.append(
                self.finding(
                    Severity.INFO,
                    f'Engineering units "{units}" are not in the common units list. '
                    f"Verify this is correct.",
                )
            )

        if is_missing(tag.get("scaleLow")) or is_missing(tag.get("scaleHigh")):
            findings.append(
                self.finding(
                    Severity.ERROR,
                    f"Tag type {tag_type} requires both scaleLow and scaleHigh to be specified",
                )
            )
            return findings

        scale_low = numeric_value(tag["scaleLow"])
        scale_high = numeric_value(tag["scaleHigh"])
        if scale_low is None or scale_high is None:
            findings.append(self.finding(Severity.ERROR, "Scale values must be valid numbers"))
            return findings

        if scale_low >= scale_high:
            findings.append(
                self.finding(
                    Severity.ERROR,
                    f"scaleLow ({_fmt(scale_low)}) must be less than scaleHigh ({_fmt(scale_high)})",
                )
            )

        span = scale_high - scale_low
        if span == 0:
            findings.append(self.finding(Severity.ERROR, "Scale range cannot be zero"))
        elif span < MIN_RANGE:
            findings.append(
                self.finding(
                    Severity.WARNING,
                    f"Scale range ({_fmt(span)}) is very small. Verify this is correct.",
                )
            )
        elif span > MAX_RANGE:
            findings.append(
                self.finding(
                    Severity.WARNING,
                    f"Scale range ({_fmt(span)}) is very large. Verify this is correct.",
                )
            )

        if units is not None and scale_low < 0:
            lowered = units.lower()
            if not any(fragment in lowered for fragment in NEGATIVE_CAPABLE_UNITS):
                findings.append(
                    self.finding(
                        Severity.INFO,
                        f'Negative scaleLow ({_fmt(scale_low)}) with units "{units}". '
                        f"Verify this is correct.",
                    )
                )

        return findings


def _fmt(number: float) -> str:
    """Render whole numbers without a trailing .0."""
    return str(int(number)) if number.is_integer() else str(number)
