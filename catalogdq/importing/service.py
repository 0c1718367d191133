"""Import entry points: job submission, report retrieval and saved profiles.

ImportService is the caller-facing side of bulk import. It never processes
rows itself: ``start_import`` records a Queued Import job and hands an
ImportSpec to the work queue, whose handler is an ImportPipeline.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from catalogdq.core.exceptions import NotFoundError, PreconditionError, UnsupportedEntityTypeError
from catalogdq.core.protocols import EntityStore, WorkQueue
from catalogdq.core.schema import ENTITY_TYPES, IMPORT_PROFILE, is_entity_type
from catalogdq.core.store import utcnow
from catalogdq.importing.pipeline import ImportSpec, RowSupplier
from catalogdq.importing.report import ImportReport
from catalogdq.jobs.models import Job, JobStatus, JobType
from catalogdq.jobs.service import JobService

logger = logging.getLogger(__name__)


@dataclass
class ImportRequest:
    """A request to import one file's rows as entities of one type.

    Attributes:
        source_file: Name of the uploaded file, recorded in lineage
        entity_type: Entity type of every row
        column_mappings: File column name to entity field name; ignored
                         when profile_id is given
        sheet_name: Sheet to import (workbooks only)
        rows: RowSource, callable or iterable producing the parsed rows
        profile_id: Saved import profile supplying the column mappings
    """

    source_file: str
    entity_type: str
    column_mappings: dict[str, str] = field(default_factory=dict)
    sheet_name: str | None = None
    rows: RowSupplier = ()
    profile_id: str | None = None


@dataclass
class ImportProfile:
    """A saved column mapping for repeated imports of the same file layout."""

    id: str
    name: str
    entity_type: str
    column_mappings: dict[str, str]
    created_by: str
    created_at: datetime

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "entityType": self.entity_type,
            "columnMappings": dict(self.column_mappings),
            "createdBy": self.created_by,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "ImportProfile":
        return cls(
            id=record["id"],
            name=record["name"],
            entity_type=record["entityType"],
            column_mappings=dict(record.get("columnMappings") or {}),
            created_by=record.get("createdBy", ""),
            created_at=record["createdAt"],
        )


def _check_entity_type(entity_type: str) -> None:
    if not is_entity_type(entity_type):
        raise UnsupportedEntityTypeError(
            f"Unsupported entity type: {entity_type}",
            entity_type=entity_type,
            supported=list(ENTITY_TYPES),
        )


class ImportService:
    """Submits import jobs and serves their reports and saved profiles.

    Example:
        >>> service = ImportService(jobs, queue, store)
        >>> job = service.start_import("p1", ImportRequest(
        ...     source_file="tags.csv", entity_type="tag",
        ...     column_mappings={"Tag": "name"}, rows=[{"Tag": "DI-301"}],
        ... ), "u1")
        >>> job.status
        <JobStatus.QUEUED: 'Queued'>
    """

    def __init__(self, jobs: JobService, queue: WorkQueue, store: EntityStore) -> None:
        self.jobs = jobs
        self.queue = queue
        self.store = store

    def start_import(self, project_id: str, request: ImportRequest, user_id: str) -> Job:
        """Create a Queued Import job and enqueue it.

        Raises:
            UnsupportedEntityTypeError: If the entity type is not a catalog type
            NotFoundError: If request.profile_id names no saved profile
        """
        _check_entity_type(request.entity_type)
        column_mappings = request.column_mappings
        if request.profile_id is not None:
            column_mappings = self.get_profile(request.profile_id).column_mappings

        job = self.jobs.create_job(project_id, JobType.IMPORT, user_id)
        spec = ImportSpec(
            job_id=job.id,
            project_id=project_id,
            entity_type=request.entity_type,
            column_mappings=dict(column_mappings),
            user_id=user_id,
            source_file=request.source_file,
            sheet_name=request.sheet_name,
            rows=request.rows,
        )
        self.queue.enqueue(job.id, project_id, spec)
        logger.info("Queued import of %s as job %s", request.source_file, job.id)
        return job

    def get_import_report(self, job_id: str) -> ImportReport:
        """Return the report of a finished import job.

        Completed and Failed jobs always have a report (a Failed job that never
        reached the row loop reports zero rows). A Cancelled job has one only
        when it was cancelled while its rows were running.

        Raises:
            NotFoundError: If the job does not exist
            PreconditionError: If the job is not an import job or not finished
        """
        job = self.jobs.get_job(job_id)
        if job.type is not JobType.IMPORT:
            raise PreconditionError(
                "Job is not an import job",
                operation="get_import_report",
                state=job.type.value,
                job_id=job_id,
            )

        finished = job.status in (JobStatus.COMPLETED, JobStatus.FAILED) or (
            job.status is JobStatus.CANCELLED and job.result is not None
        )
        if not finished:
            raise PreconditionError(
                "Import job is not yet complete",
                operation="get_import_report",
                state=job.status.value,
                job_id=job_id,
            )

        report = ImportReport.from_json(job.result)
        report.job_id = job.id
        report.status = job.status.value
        report.started_at = report.started_at or job.started_at
        report.completed_at = report.completed_at or job.completed_at
        return report

    def create_profile(
        self,
        name: str,
        entity_type: str,
        column_mappings: Mapping[str, str],
        user_id: str,
    ) -> ImportProfile:
        """Save a named column mapping for an entity type."""
        _check_entity_type(entity_type)
        if not name or not name.strip():
            raise PreconditionError("Import profile name is required", operation="create_profile")

        record = self.store.create(
            IMPORT_PROFILE,
            {
                "name": name.strip(),
                "entityType": entity_type,
                "columnMappings": dict(column_mappings),
                "createdBy": user_id,
                "createdAt": utcnow(),
            },
        )
        logger.info("Created import profile %s (%s)", record["name"], record["id"])
        return ImportProfile.from_record(record)

    def get_profiles(self, entity_type: str | None = None) -> list[ImportProfile]:
        """Return saved profiles sorted by name, optionally for one entity type."""
        filters = {"entityType": entity_type} if entity_type is not None else None
        profiles = [ImportProfile.from_record(r) for r in self.store.find_all(IMPORT_PROFILE, filters)]
        return sorted(profiles, key=lambda p: p.name)

    def get_profile(self, profile_id: str) -> ImportProfile:
        record = self.store.find(IMPORT_PROFILE, profile_id)
        if record is None:
            raise NotFoundError(
                "Import profile not found", record_type=IMPORT_PROFILE, record_id=profile_id
            )
        return ImportProfile.from_record(record)

    def delete_profile(self, profile_id: str) -> None:
        if not self.store.delete(IMPORT_PROFILE, profile_id):
            raise NotFoundError(
                "Import profile not found", record_type=IMPORT_PROFILE, record_id=profile_id
            )
        logger.info("Deleted import profile %s", profile_id)
