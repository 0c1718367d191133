"""Record type names and tabular schemas shared across the data-quality core.

Entities reach the core as untyped field maps. This module fixes the small set
of names the core relies on: which entity types exist, which record types hold
relationships, attachments, audit entries and stored validation results, and
the polars schema used when validation results are analysed as a table.

Schema (validation results table):
    - id (Utf8): Result identifier
    - project_id (Utf8): Owning project
    - entity_type (Utf8): Entity type of the validated entity
    - entity_id (Utf8): Validated entity
    - rule_name (Utf8): Rule that produced the finding
    - severity (Utf8): Error, Warning or Info
    - message (Utf8): Finding text
    - acknowledged (Boolean): Whether the finding was acknowledged
"""

from collections.abc import Iterable, Mapping
from typing import Any

import polars as pl

# Entity types known to the catalog
TAG = "tag"
EQUIPMENT = "equipment"
ALARM = "alarm"
DOCUMENT = "document"

ENTITY_TYPES = (TAG, EQUIPMENT, ALARM, DOCUMENT)

# Entity types whose rows can be consolidated by a merge
MERGEABLE_ENTITY_TYPES = ENTITY_TYPES

# Auxiliary record types kept in the entity store
LINK = "link"
ATTACHMENT = "attachment"
AUDIT_LOG = "audit_log"
VALIDATION_RESULT = "validation_result"
IMPORT_PROFILE = "import_profile"

VALIDATION_RESULT_SCHEMA = {
    "id": pl.Utf8,
    "project_id": pl.Utf8,
    "entity_type": pl.Utf8,
    "entity_id": pl.Utf8,
    "rule_name": pl.Utf8,
    "severity": pl.Utf8,
    "message": pl.Utf8,
    "acknowledged": pl.Boolean,
}


def is_entity_type(entity_type: str) -> bool:
    """Return True if entity_type is one of the catalog entity types."""
    return entity_type in ENTITY_TYPES


def validation_results_frame(rows: Iterable[Mapping[str, Any]]) -> pl.DataFrame:
    """Build a validation results DataFrame from row mappings.

    Only the columns of VALIDATION_RESULT_SCHEMA are kept, so callers can pass
    stored records that carry extra fields such as timestamps.

    Args:
        rows: Mappings with (at least) the schema's keys

    Returns:
        DataFrame with the validation results schema. Empty input yields an
        empty frame with the same schema.

    Example:
        >>> df = validation_results_frame([])
        >>> df.columns[:3]
        ['id', 'project_id', 'entity_type']
    """
    data: dict[str, list[Any]] = {name: [] for name in VALIDATION_RESULT_SCHEMA}
    for row in rows:
        for name in VALIDATION_RESULT_SCHEMA:
            data[name].append(row.get(name))

    return pl.DataFrame(data, schema=VALIDATION_RESULT_SCHEMA)
