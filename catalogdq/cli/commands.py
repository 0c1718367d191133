"""CLI command implementations.

This module implements the CLI commands for the catalogdq tool:
- import: Run a bulk import of a file's rows into an in-memory catalog
- validate: Run the validation rules over a file's rows without importing
- duplicates: Find likely duplicates between two files
- list_rules / list_readers: List available components
- check_config: Validate configuration files

Each command is implemented as a function that returns an exit code,
enabling both direct invocation and subprocess-based testing.
"""

import json
import sys
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, Any

import polars as pl
from cyclopts import Parameter

from catalogdq.cli.config import (
    ConfigError,
    build_match_rule,
    load_config,
    merge_config,
    validate_config,
)
from catalogdq.cli.exit_codes import ExitCode
from catalogdq.cli.output import ProgressIndicator, configure_logging, handle_error
from catalogdq.cli.registry import get_reader, infer_reader
from catalogdq.cli.registry import list_readers as registry_list_readers
from catalogdq.core.exceptions import RowSourceError, UnsupportedEntityTypeError
from catalogdq.core.queue import InProcessWorkQueue
from catalogdq.core.schema import ENTITY_TYPES, is_entity_type
from catalogdq.core.sources import DataFrameRowSource, FileRowSource
from catalogdq.core.store import InMemoryEntityStore, InMemoryJobRepository
from catalogdq.importing import ImportPipeline, ImportRequest, ImportService, map_row
from catalogdq.jobs import JobService, JobStatus
from catalogdq.merge import DuplicateDetector, DuplicateMatchRule
from catalogdq.validation import (
    RuleConfigurationError,
    Severity,
    ValidationContext,
    ValidationEngine,
    bootstrap_registry,
    has_errors,
)

CLI_PROJECT = "cli"


@dataclass
class Runtime:
    """Services wired over in-memory collaborators for one CLI run."""

    store: InMemoryEntityStore
    jobs: JobService
    queue: InProcessWorkQueue
    engine: ValidationEngine
    imports: ImportService


def build_runtime(disabled_rules: Sequence[str] = ()) -> Runtime:
    """Wire the import service, pipeline and work queue together."""
    store = InMemoryEntityStore()
    jobs = JobService(InMemoryJobRepository())
    engine = ValidationEngine(bootstrap_registry(disabled_rules=disabled_rules), store)
    queue = InProcessWorkQueue(ImportPipeline(engine, store, jobs))
    return Runtime(
        store=store,
        jobs=jobs,
        queue=queue,
        engine=engine,
        imports=ImportService(jobs, queue, store),
    )


def load_frame(path: Path, reader: str | None) -> pl.DataFrame:
    """Read a file with the named (or inferred) reader.

    Raises:
        ValueError: If no reader is given and the extension is unknown
        KeyError: If the reader is not registered
        RowSourceError: If the file is missing or cannot be parsed
    """
    reader_instance = get_reader(reader or infer_reader(path))
    return FileRowSource(path, reader_instance).load()


def resolve_mappings(cfg: dict[str, Any], df: pl.DataFrame) -> dict[str, str]:
    """Configured column mappings, or every column mapped to itself."""
    mappings = cfg.get("column_mappings")
    if mappings:
        return dict(mappings)
    return {column: column for column in df.columns}


def _check_entity_type(entity_type: str) -> None:
    if not is_entity_type(entity_type):
        raise UnsupportedEntityTypeError(
            f"Unsupported entity type: {entity_type}",
            entity_type=entity_type,
            supported=list(ENTITY_TYPES),
        )


def _load_cli_config(config: Path | None, **overrides: Any) -> dict[str, Any]:
    cfg = load_config(config) if config else {}
    cfg = merge_config(cfg, **overrides)
    if cfg.get("entity_type") is not None:
        _check_entity_type(cfg["entity_type"])
    errors = validate_config(cfg)
    if errors:
        raise ConfigError("Invalid configuration: " + "; ".join(errors))
    return cfg


def _require_entity_type(cfg: dict[str, Any]) -> str:
    entity_type = cfg.get("entity_type")
    if not entity_type:
        raise ConfigError("Entity type is required (--entity-type or entity_type in config)")
    _check_entity_type(entity_type)
    return entity_type


def _write_json(data: Any, output: Path | None) -> None:
    text = json.dumps(data, indent=2, default=str)
    if output is None:
        print(text)
    else:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(text + "\n")


def import_file(
    input_path: Annotated[Path, Parameter(help="Input file path")],
    entity_type: Annotated[str | None, Parameter(help="Entity type (tag, equipment, alarm, document)")] = None,
    config: Annotated[Path | None, Parameter(help="Configuration file path")] = None,
    project: Annotated[str, Parameter(help="Project id recorded on created entities")] = CLI_PROJECT,
    user: Annotated[str, Parameter(help="User id recorded as creator")] = "cli",
    sheet: Annotated[str | None, Parameter(help="Sheet name recorded in lineage")] = None,
    reader: Annotated[str | None, Parameter(help="Reader type (csv, parquet, json, ndjson)")] = None,
    output: Annotated[Path | None, Parameter(help="Write the report JSON to this path")] = None,
    quiet: Annotated[bool, Parameter(help="Suppress progress output")] = False,
    verbose: Annotated[bool, Parameter(help="Show detailed error information")] = False,
    log_level: Annotated[str, Parameter(help="Log level (debug, info, warning, error)")] = "warning",
    log_file: Annotated[Path | None, Parameter(help="Log file path")] = None,
) -> int:
    """Import a file's rows as catalog entities and print the import report.

    Each row is mapped through the column mappings, validated, and either
    created or rejected. The run uses an in-memory catalog, so the report is
    the output.

    Returns:
        0 when every row was imported, 2 when some rows were rejected,
        4 when the import job failed as a whole, other codes for setup errors

    Example:
        >>> exit_code = import_file(Path("tags.csv"), entity_type="tag", config=Path("tags.yaml"))
    """
    try:
        configure_logging(log_level, log_file)
        cfg = _load_cli_config(config, entity_type=entity_type, sheet_name=sheet, reader=reader)
        resolved_type = _require_entity_type(cfg)
        df = load_frame(input_path, cfg.get("reader"))

        runtime = build_runtime(cfg.get("disabled_rules") or ())
        progress = ProgressIndicator(enabled=not quiet)
        progress.start(f"Importing {input_path.name}")

        job = runtime.imports.start_import(
            project,
            ImportRequest(
                source_file=input_path.name,
                entity_type=resolved_type,
                column_mappings=resolve_mappings(cfg, df),
                sheet_name=cfg.get("sheet_name"),
                rows=DataFrameRowSource(df),
            ),
            user,
        )
        runtime.queue.drain()

        job = runtime.jobs.get_job(job.id)
        report = runtime.imports.get_import_report(job.id)
        _write_json(report.to_json(), output)

        if job.status is JobStatus.FAILED:
            progress.error(f"Import failed: {job.error}")
            return ExitCode.IMPORT_ERROR

        progress.success(report.summary())
        return ExitCode.VALIDATION_ERROR if report.errors else ExitCode.SUCCESS

    except (ConfigError, RuleConfigurationError) as e:
        handle_error(e, verbose=verbose)
        return ExitCode.CONFIG_ERROR
    except UnsupportedEntityTypeError as e:
        handle_error(e, verbose=verbose)
        return ExitCode.ENTITY_TYPE_ERROR
    except RowSourceError as e:
        handle_error(e, verbose=verbose)
        return ExitCode.READER_ERROR
    except (KeyError, ValueError) as e:
        print(f"Error: {e.args[0] if e.args else e}", file=sys.stderr)
        return ExitCode.CONFIG_ERROR
    except Exception as e:
        handle_error(e, verbose=verbose)
        return ExitCode.UNEXPECTED_ERROR


def validate(
    input_path: Annotated[Path, Parameter(help="Input file path")],
    entity_type: Annotated[str | None, Parameter(help="Entity type (tag, equipment, alarm, document)")] = None,
    config: Annotated[Path | None, Parameter(help="Configuration file path")] = None,
    check_duplicates: Annotated[bool, Parameter(help="Compare each row's name with the other rows")] = False,
    reader: Annotated[str | None, Parameter(help="Reader type")] = None,
    verbose: Annotated[bool, Parameter(help="Show Info findings and stack traces")] = False,
    log_level: Annotated[str, Parameter(help="Log level (debug, info, warning, error)")] = "warning",
    log_file: Annotated[Path | None, Parameter(help="Log file path")] = None,
) -> int:
    """Validate every row of a file without importing it.

    Prints the failing findings per row (file row numbers, header is row 1)
    and a severity summary.

    Returns:
        0 when no row has an Error finding, 2 otherwise
    """
    try:
        configure_logging(log_level, log_file)
        cfg = _load_cli_config(config, entity_type=entity_type, reader=reader)
        resolved_type = _require_entity_type(cfg)
        df = load_frame(input_path, cfg.get("reader"))
        mappings = resolve_mappings(cfg, df)
        engine = ValidationEngine(bootstrap_registry(disabled_rules=cfg.get("disabled_rules") or ()))

        entities = []
        for index, row in enumerate(df.iter_rows(named=True)):
            entity = map_row(row, mappings)
            entity["id"] = f"row-{index + 2}"
            entities.append(entity)

        counts = {severity: 0 for severity in Severity}
        rows_with_errors = 0
        for row_number, entity in enumerate(entities, start=2):
            findings = engine.validate_entity(
                ValidationContext(
                    project_id=CLI_PROJECT,
                    entity_type=resolved_type,
                    entity=entity,
                    entity_id=entity["id"],
                    all_entities=entities if check_duplicates else None,
                )
            )
            rows_with_errors += int(has_errors(findings))
            for finding in findings:
                if finding.passed:
                    continue
                counts[finding.severity] += 1
                if finding.severity is not Severity.INFO or verbose:
                    print(f"Row {row_number}: {finding.format()}")

        summary = ", ".join(f"{counts[s]} {s.value.lower()}" for s in Severity)
        if rows_with_errors:
            print(f"✗ {rows_with_errors} of {len(entities)} rows failed validation ({summary})", file=sys.stderr)
            return ExitCode.VALIDATION_ERROR

        print(f"✓ Validation successful: {len(entities)} rows ({summary})")
        return ExitCode.SUCCESS

    except (ConfigError, RuleConfigurationError) as e:
        handle_error(e, verbose=verbose)
        return ExitCode.CONFIG_ERROR
    except UnsupportedEntityTypeError as e:
        handle_error(e, verbose=verbose)
        return ExitCode.ENTITY_TYPE_ERROR
    except RowSourceError as e:
        handle_error(e, verbose=verbose)
        return ExitCode.READER_ERROR
    except (KeyError, ValueError) as e:
        print(f"Error: {e.args[0] if e.args else e}", file=sys.stderr)
        return ExitCode.CONFIG_ERROR
    except Exception as e:
        handle_error(e, verbose=verbose)
        return ExitCode.UNEXPECTED_ERROR


def duplicates(
    existing_path: Annotated[Path, Parameter(help="File with the existing entities")],
    candidates_path: Annotated[Path, Parameter(help="File with the new entities")],
    field: Annotated[list[str] | None, Parameter(help="Field to compare (repeatable)")] = None,
    threshold: Annotated[float | None, Parameter(help="Similarity threshold in [0, 1]")] = None,
    exact: Annotated[bool, Parameter(help="Require exact field equality")] = False,
    case_sensitive: Annotated[bool, Parameter(help="Compare text case-sensitively")] = False,
    config: Annotated[Path | None, Parameter(help="Configuration file path")] = None,
    reader: Annotated[str | None, Parameter(help="Reader type")] = None,
    output: Annotated[Path | None, Parameter(help="Write candidates as JSON to this path")] = None,
    verbose: Annotated[bool, Parameter(help="Show detailed error information")] = False,
) -> int:
    """Find likely duplicates of the candidate rows among the existing rows.

    The match rule comes from the configuration's match_rule, overridden by
    the command-line options, and defaults to a fuzzy, case-insensitive
    match on name at 0.8.
    """
    try:
        cfg = _load_cli_config(config, reader=reader)
        base = build_match_rule(cfg) or DuplicateMatchRule.default()
        rule = DuplicateMatchRule(
            match_fields=tuple(field) if field else base.match_fields,
            case_sensitive=case_sensitive or base.case_sensitive,
            exact_match=exact or base.exact_match,
            similarity_threshold=threshold if threshold is not None else base.similarity_threshold,
            entity_type=base.entity_type,
        )

        existing_df = load_frame(existing_path, cfg.get("reader"))
        candidates_df = load_frame(candidates_path, cfg.get("reader"))
        existing = [map_row(r, resolve_mappings(cfg, existing_df)) for r in existing_df.iter_rows(named=True)]
        candidates = [map_row(r, resolve_mappings(cfg, candidates_df)) for r in candidates_df.iter_rows(named=True)]

        found = DuplicateDetector().detect(existing, candidates, rule)
        if output is not None:
            _write_json([c.to_dict() for c in found], output)

        label_field = rule.match_fields[0]
        for candidate in found:
            print(
                f"{candidate.match_score:.2f}  "
                f"{candidate.new_entity.get(label_field)} ~ {candidate.existing_entity.get(label_field)}  "
                f"[{', '.join(candidate.matched_fields)}]"
            )
        print(f"{len(found)} duplicate candidates", file=sys.stderr)
        return ExitCode.SUCCESS

    except ConfigError as e:
        handle_error(e, verbose=verbose)
        return ExitCode.CONFIG_ERROR
    except UnsupportedEntityTypeError as e:
        handle_error(e, verbose=verbose)
        return ExitCode.ENTITY_TYPE_ERROR
    except RowSourceError as e:
        handle_error(e, verbose=verbose)
        return ExitCode.READER_ERROR
    except (KeyError, ValueError) as e:
        print(f"Error: {e.args[0] if e.args else e}", file=sys.stderr)
        return ExitCode.CONFIG_ERROR
    except Exception as e:
        handle_error(e, verbose=verbose)
        return ExitCode.UNEXPECTED_ERROR


def list_rules() -> int:
    """List the built-in validation rules and the entity types they apply to."""
    registry = bootstrap_registry()

    print("Available rules:")
    for rule in registry.get_all_rules():
        applies_to = ", ".join(rule.applicable_entity_types) or "all"
        print(f"  {rule.name:22} [{applies_to}] {rule.description}")

    return ExitCode.SUCCESS


def list_readers() -> int:
    """List available readers with descriptions.

    Displays all registered reader types with their descriptions extracted
    from class docstrings.
    """
    readers = registry_list_readers()

    if not readers:
        print("No readers registered.")
        return ExitCode.SUCCESS

    print("Available readers:")
    for name, description in readers.items():
        # First docstring line only
        desc_line = description.split("\n")[0].strip()
        print(f"  {name:15} {desc_line}")

    return ExitCode.SUCCESS


def check_config(
    config_path: Annotated[Path, Parameter(help="Configuration file path")],
) -> int:
    """Validate configuration file.

    Loads and validates a configuration file, checking syntax, structure,
    and that referenced entity types, rules and readers exist.

    Returns:
        Exit code (0 for valid config, 6 for invalid config)
    """
    try:
        config = load_config(config_path)
        errors = validate_config(config)

        if errors:
            print("✗ Configuration validation failed:", file=sys.stderr)
            for error in errors:
                print(f"  {error}", file=sys.stderr)
            return ExitCode.CONFIG_ERROR

        print("✓ Configuration is valid")
        if "entity_type" in config:
            print(f"  Entity type: {config['entity_type']}")
        if config.get("column_mappings"):
            print(f"  Column mappings: {len(config['column_mappings'])}")
        if config.get("disabled_rules"):
            print(f"  Disabled rules: {', '.join(config['disabled_rules'])}")
        if "reader" in config:
            print(f"  Reader: {config['reader']}")

        return ExitCode.SUCCESS

    except ConfigError as e:
        print("✗ Configuration error:", file=sys.stderr)
        print(f"  {e.message}", file=sys.stderr)
        return ExitCode.CONFIG_ERROR
    except Exception as e:
        handle_error(e, verbose=False)
        return ExitCode.UNEXPECTED_ERROR
