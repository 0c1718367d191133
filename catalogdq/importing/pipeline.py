"""Bulk import pipeline.

ImportPipeline executes one import job: it maps every row of an
already-parsed file to an entity payload, validates it, creates the entity or
rejects the row, and keeps the job's progress current while it goes. The job
ends Completed with an ImportReport as its result, Failed with an error
message, or stays Cancelled (with the partial report) when a cancellation is
noticed between rows.

Rows of one job run strictly in file order. Nothing here locks across jobs:
two concurrent imports into the same entity type may both create rows that
duplicate each other.
"""

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from pathlib import PurePath
from typing import Any, Union

import polars as pl

from catalogdq.core.exceptions import (
    ImportPipelineError,
    InvalidJobTransitionError,
    UnsupportedEntityTypeError,
)
from catalogdq.core.protocols import EntityStore, RowSource
from catalogdq.core.schema import ENTITY_TYPES, is_entity_type
from catalogdq.core.store import utcnow
from catalogdq.importing.report import ImportReport
from catalogdq.jobs.models import JobStatus
from catalogdq.jobs.service import JobService
from catalogdq.validation.engine import ValidationEngine
from catalogdq.validation.result import Severity, ValidationContext, ValidationFinding

logger = logging.getLogger(__name__)

# Row 1 of the source file is the header
FIRST_DATA_ROW = 2

Row = Mapping[str, Any]
RowSupplier = Union[Callable[[], Iterable[Row]], Iterable[Row], RowSource]


@dataclass
class ImportSpec:
    """Everything an import job needs once its rows can be produced.

    Attributes:
        job_id: Import job to drive
        project_id: Project the entities are created in
        entity_type: Entity type of every row
        column_mappings: File column name to entity field name
        user_id: User recorded as creator
        source_file: File name recorded in lineage and the report
        sheet_name: Sheet name recorded in lineage and the report
        rows: RowSource, zero-argument callable or iterable of rows
    """

    job_id: str
    project_id: str
    entity_type: str
    column_mappings: dict[str, str]
    user_id: str
    source_file: str
    sheet_name: str | None = None
    rows: RowSupplier = ()

    def load_rows(self) -> list[Row]:
        """Produce the full row sequence."""
        supplier = self.rows
        if isinstance(supplier, pl.DataFrame):
            return list(supplier.iter_rows(named=True))
        if hasattr(supplier, "rows"):
            return list(supplier.rows())
        if callable(supplier):
            return list(supplier())
        return list(supplier)


def map_row(row: Row, column_mappings: Mapping[str, str]) -> dict[str, Any]:
    """Map file columns to entity fields.

    Unmapped columns are ignored and columns with a None or empty value are
    left out instead of writing an empty field.

    Example:
        >>> map_row({"Tag Name": "FT-101", "Units": "", "Extra": 1},
        ...         {"Tag Name": "name", "Units": "engineeringUnits"})
        {'name': 'FT-101'}
    """
    payload: dict[str, Any] = {}
    for column, field_name in column_mappings.items():
        value = row.get(column)
        if value is None or value == "":
            continue
        payload[field_name] = value
    return payload


def _failing(findings: Iterable[ValidationFinding], severity: Severity) -> list[ValidationFinding]:
    return [f for f in findings if not f.passed and f.severity is severity]


def _describe(findings: Iterable[ValidationFinding]) -> list[str]:
    return [f"{f.rule_name}: {f.message}" for f in findings]


class ImportPipeline:
    """Runs import jobs row by row.

    Attributes:
        engine: Validation engine applied to each mapped row
        store: Entity store receiving created entities and their findings
        jobs: Job service used for status and progress

    Example:
        >>> pipeline = ImportPipeline(engine, store, jobs)
        >>> report = pipeline.run(ImportSpec(
        ...     job_id=job.id, project_id="p1", entity_type="tag",
        ...     column_mappings={"Tag": "name", "Type": "type"},
        ...     user_id="u1", source_file="tags.csv",
        ...     rows=[{"Tag": "DI-301", "Type": "DI"}],
        ... ))
        >>> report.success, jobs.get_job(job.id).status
        (1, <JobStatus.COMPLETED: 'Completed'>)
    """

    def __init__(self, engine: ValidationEngine, store: EntityStore, jobs: JobService):
        self.engine = engine
        self.store = store
        self.jobs = jobs

    def __call__(self, job_id: str, project_id: str, spec: ImportSpec) -> ImportReport | None:
        """Work queue entry point."""
        return self.run(spec)

    def run(self, spec: ImportSpec) -> ImportReport | None:
        """Execute an import job.

        Returns:
            The report when the job completed or was cancelled mid-run, None
            when the job failed or was cancelled before it started
        """
        if self.jobs.get_job(spec.job_id).status is JobStatus.CANCELLED:
            logger.info("Import job %s was cancelled before it started", spec.job_id)
            return None

        logger.info("Starting import job %s for project %s", spec.job_id, spec.project_id)
        try:
            self.jobs.start_job(spec.job_id)
            if not is_entity_type(spec.entity_type):
                raise UnsupportedEntityTypeError(
                    f"Unsupported entity type: {spec.entity_type}",
                    entity_type=spec.entity_type,
                    supported=list(ENTITY_TYPES),
                )

            try:
                rows = spec.load_rows()
            except Exception as e:
                raise ImportPipelineError(
                    f"Failed to read rows: {e}",
                    job_id=spec.job_id,
                    step="load_rows",
                    source_file=spec.source_file,
                ) from e
            logger.info("Parsed %d rows from %s", len(rows), spec.source_file)

            report = self._process_rows(spec, rows)
            return self._finish(spec, report)
        except Exception as e:
            message = getattr(e, "message", None) or str(e)
            logger.exception("Import job %s failed: %s", spec.job_id, message)
            self._fail(spec.job_id, message)
            return None

    def _process_rows(self, spec: ImportSpec, rows: list[Row]) -> ImportReport:
        source_name = PurePath(spec.source_file).name or spec.source_file
        report = ImportReport(
            source_file=source_name,
            sheet_name=spec.sheet_name,
            entity_type=spec.entity_type,
            started_at=utcnow(),
        )
        total = len(rows)

        for index, row in enumerate(rows):
            if self.jobs.get_job(spec.job_id).status is JobStatus.CANCELLED:
                logger.info(
                    "Import job %s cancelled after %d of %d rows", spec.job_id, index, total
                )
                report.cancelled = True
                break

            row_number = index + FIRST_DATA_ROW
            try:
                self._process_row(spec, source_name, row, row_number, report)
            except Exception as e:
                report.record_error(row_number, str(e), row)
                logger.error("Error processing row %d: %s", row_number, e)

            # Visible to pollers before the next row starts
            self.jobs.update_progress(spec.job_id, int((index + 1) * 100 / total + 0.5))

        report.completed_at = utcnow()
        return report

    def _process_row(
        self,
        spec: ImportSpec,
        source_name: str,
        row: Row,
        row_number: int,
        report: ImportReport,
    ) -> None:
        payload = map_row(row, spec.column_mappings)
        payload.update(
            {
                "projectId": spec.project_id,
                "createdBy": spec.user_id,
                "importLineage": {
                    "sourceFile": source_name,
                    "sheetName": spec.sheet_name,
                    "rowNumber": row_number,
                },
            }
        )

        findings = self.engine.validate_entity(
            ValidationContext(
                project_id=spec.project_id,
                entity_type=spec.entity_type,
                entity=payload,
            )
        )

        errors = _failing(findings, Severity.ERROR)
        if errors:
            messages = _describe(errors)
            report.record_error(
                row_number,
                f"Validation failed: {'; '.join(messages)}",
                dict(row),
                [f.to_dict() for f in errors],
            )
            logger.warning(
                "Row %d rejected due to validation errors: %s", row_number, "; ".join(messages)
            )
            return

        with self.store.transaction():
            created = self.store.create(spec.entity_type, payload)
            self.engine.store_findings(spec.project_id, spec.entity_type, created["id"], findings)

        warnings = _failing(findings, Severity.WARNING)
        if warnings:
            messages = _describe(warnings)
            report.record_warning(row_number, messages, dict(row), created["id"])
            logger.debug("Row %d imported with warnings: %s", row_number, "; ".join(messages))

        report.record_success()

    def _finish(self, spec: ImportSpec, report: ImportReport) -> ImportReport:
        if not report.cancelled:
            try:
                self.jobs.complete_job(spec.job_id, report.to_json())
                logger.info(
                    "Import job %s completed: %d success, %d errors",
                    spec.job_id,
                    report.success,
                    report.errors,
                )
                return report
            except InvalidJobTransitionError:
                # Cancelled after the last row was processed
                report.cancelled = True

        self.jobs.attach_result(spec.job_id, report.to_json())
        logger.info("Import job %s stopped on cancellation: %s", spec.job_id, report.summary())
        return report

    def _fail(self, job_id: str, message: str) -> None:
        try:
            self.jobs.fail_job(job_id, message)
        except InvalidJobTransitionError as e:
            logger.warning("Could not mark import job %s as failed: %s", job_id, e)
