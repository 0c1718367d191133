"""Configuration file loading and validation.

This module handles loading configuration from JSON and YAML files, merging
CLI arguments with file-based configuration (with CLI taking precedence), and
validating that referenced entity types, rules and readers exist.

Configuration files can specify:
- entity_type: Entity type of the imported rows (tag, equipment, alarm, document)
- column_mappings: File column name to entity field name
- sheet_name: Sheet name recorded in import lineage
- disabled_rules: Names of built-in rules to leave out
- match_rule: Duplicate match rule (match_fields, case_sensitive,
  exact_match, similarity_threshold)
- reader: Reader type name
"""

import json
from pathlib import Path
from typing import Any

import yaml

from catalogdq.cli.registry import get_reader
from catalogdq.core.exceptions import CatalogError
from catalogdq.core.schema import ENTITY_TYPES, is_entity_type
from catalogdq.merge.detector import DuplicateMatchRule
from catalogdq.validation.rules import BUILTIN_RULES

MATCH_RULE_KEYS = ("match_fields", "case_sensitive", "exact_match", "similarity_threshold")


class ConfigError(CatalogError):
    """Configuration file error.

    Raised when configuration files cannot be loaded, parsed, or validated.
    This includes file not found errors, syntax errors in JSON/YAML, and
    configuration values of the wrong shape.
    """


def load_config(path: Path) -> dict[str, Any]:
    """Load configuration from JSON or YAML file.

    Format is determined by file extension (.json, .yaml, .yml) or
    auto-detected if the extension is ambiguous.

    Args:
        path: Path to configuration file

    Returns:
        Configuration dictionary (empty for an empty file)

    Raises:
        ConfigError: If file cannot be loaded, parsed, or is not a mapping

    Example:
        >>> config = load_config(Path("tags.yaml"))
        >>> config["entity_type"]
        'tag'
    """
    if not path.exists():
        raise ConfigError(f"Configuration file not found: {path}", {"path": str(path)})

    try:
        content = path.read_text()
        if path.suffix == ".json":
            data = json.loads(content)
        elif path.suffix in (".yaml", ".yml"):
            data = yaml.safe_load(content)
        else:
            try:
                data = json.loads(content)
            except json.JSONDecodeError:
                data = yaml.safe_load(content)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to load config from {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(
            f"Configuration in {path} must be a mapping, got {type(data).__name__}"
        )
    return data


def merge_config(base: dict[str, Any], **overrides: Any) -> dict[str, Any]:
    """Merge CLI arguments into base configuration.

    CLI arguments take precedence over config file values. Only non-None
    override values are applied, allowing config file defaults to be used
    when CLI arguments are not specified.

    Example:
        >>> merge_config({"entity_type": "tag", "reader": "csv"}, reader=None, entity_type="alarm")
        {'entity_type': 'alarm', 'reader': 'csv'}
    """
    merged = base.copy()
    for key, value in overrides.items():
        if value is not None:
            merged[key] = value
    return merged


def build_match_rule(config: dict[str, Any]) -> DuplicateMatchRule | None:
    """Build the configured duplicate match rule, or None when absent.

    Raises:
        ConfigError: If match_rule has unknown keys or invalid values
    """
    raw = config.get("match_rule")
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise ConfigError("match_rule must be a mapping", {"value": raw})

    unknown = sorted(set(raw) - set(MATCH_RULE_KEYS))
    if unknown:
        raise ConfigError(
            f"Unknown match_rule keys: {', '.join(unknown)}",
            {"allowed": list(MATCH_RULE_KEYS)},
        )
    try:
        return DuplicateMatchRule(
            entity_type=config.get("entity_type"),
            **raw,
        )
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid match_rule: {e}") from e


def validate_config(config: dict[str, Any]) -> list[str]:
    """Validate configuration structure and referenced components.

    Checks that:
    - entity_type is a catalog entity type
    - column_mappings maps column names to field names
    - disabled_rules only names built-in rules
    - match_rule builds a valid DuplicateMatchRule
    - the referenced reader exists in the registry

    Returns:
        List of validation error messages (empty list if valid)

    Example:
        >>> validate_config({"entity_type": "pump"})
        ['Unsupported entity type: pump (supported: tag, equipment, alarm, document)']
    """
    errors = []

    entity_type = config.get("entity_type")
    if entity_type is not None and not is_entity_type(entity_type):
        errors.append(
            f"Unsupported entity type: {entity_type} (supported: {', '.join(ENTITY_TYPES)})"
        )

    mappings = config.get("column_mappings")
    if mappings is not None:
        if not isinstance(mappings, dict):
            errors.append("column_mappings must be a mapping of column name to field name")
        else:
            for column, field_name in mappings.items():
                if not isinstance(field_name, str) or not field_name:
                    errors.append(f"column_mappings[{column!r}] must be a non-empty field name")

    disabled = config.get("disabled_rules")
    if disabled is not None:
        known = {rule_cls.name for rule_cls in BUILTIN_RULES}
        if not isinstance(disabled, list):
            errors.append("disabled_rules must be a list of rule names")
        else:
            for name in disabled:
                if name not in known:
                    errors.append(
                        f"Unknown rule '{name}'. Available: {', '.join(sorted(known))}"
                    )

    try:
        build_match_rule(config)
    except ConfigError as e:
        errors.append(e.message)

    if "reader" in config:
        try:
            get_reader(config["reader"])
        except KeyError as e:
            errors.append(e.args[0])

    return errors
