"""ImportReport data structure.

An ImportReport aggregates the outcome of one import job: how many rows were
created, rejected or created with warnings, and per-row details for the
rejected and warned rows. It is stored as the job's result in the camelCase
layout produced by ``to_json``.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse_time(value: Any) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


@dataclass
class ImportReport:
    """Outcome of an import job.

    Attributes:
        success: Rows created, including rows created with warnings
        errors: Rows rejected by validation or failed while processing
        warnings: Created rows that carried Warning findings
        error_details: One entry per rejected row with row, error and data,
                       plus validationResults for validation rejections
        warning_details: One entry per warned row with row, warnings, data
                         and the created entityId
        source_file: Name of the imported file
        sheet_name: Sheet imported from (workbooks only)
        entity_type: Entity type the rows were imported as
        started_at: When row processing started
        completed_at: When row processing ended
        cancelled: True when the job was cancelled before all rows ran
        job_id: Job the report belongs to, set when read back from a job
        status: Job status, set when read back from a job

    Example:
        >>> report = ImportReport(source_file="tags.csv", entity_type="tag")
        >>> report.record_success()
        >>> report.record_error(3, "Validation failed: ...", {"Tag": ""})
        >>> report.total_rows, report.success, report.errors
        (2, 1, 1)
    """

    success: int = 0
    errors: int = 0
    warnings: int = 0
    error_details: list[dict[str, Any]] = field(default_factory=list)
    warning_details: list[dict[str, Any]] = field(default_factory=list)
    source_file: str = "unknown"
    sheet_name: str | None = None
    entity_type: str = "unknown"
    started_at: datetime | None = None
    completed_at: datetime | None = None
    cancelled: bool = False
    job_id: str | None = None
    status: str | None = None

    @property
    def total_rows(self) -> int:
        """Rows processed: every row either succeeds or errors."""
        return self.success + self.errors

    def record_success(self) -> None:
        self.success += 1

    def record_error(
        self,
        row: int,
        error: str,
        data: Any,
        validation_results: list[dict[str, Any]] | None = None,
    ) -> None:
        """Count a rejected row and keep its details."""
        self.errors += 1
        detail: dict[str, Any] = {"row": row, "error": error, "data": data}
        if validation_results is not None:
            detail["validationResults"] = validation_results
        self.error_details.append(detail)

    def record_warning(self, row: int, warnings: list[str], data: Any, entity_id: str) -> None:
        """Count a created row that carried warnings and keep its details."""
        self.warnings += 1
        self.warning_details.append(
            {"row": row, "warnings": warnings, "data": data, "entityId": entity_id}
        )

    def summary(self) -> str:
        """One-line summary for logs and the console."""
        text = (
            f"{self.total_rows} rows: {self.success} imported, "
            f"{self.errors} rejected, {self.warnings} with warnings"
        )
        return f"{text} (cancelled)" if self.cancelled else text

    def to_json(self) -> dict[str, Any]:
        """Export the report as stored in the job result (camelCase keys)."""
        data: dict[str, Any] = {
            "success": self.success,
            "errors": self.errors,
            "warnings": self.warnings,
            "totalRows": self.total_rows,
            "errorDetails": self.error_details,
            "warningDetails": self.warning_details,
            "sourceFile": self.source_file,
            "sheetName": self.sheet_name,
            "entityType": self.entity_type,
            "startedAt": _iso(self.started_at),
            "completedAt": _iso(self.completed_at),
            "cancelled": self.cancelled,
        }
        if self.job_id is not None:
            data["jobId"] = self.job_id
        if self.status is not None:
            data["status"] = self.status
        return data

    @classmethod
    def from_json(cls, data: dict[str, Any] | None) -> "ImportReport":
        """Rebuild a report from a job result. Missing keys take defaults."""
        data = data or {}
        return cls(
            success=data.get("success") or 0,
            errors=data.get("errors") or 0,
            warnings=data.get("warnings") or 0,
            error_details=list(data.get("errorDetails") or []),
            warning_details=list(data.get("warningDetails") or []),
            source_file=data.get("sourceFile") or "unknown",
            sheet_name=data.get("sheetName"),
            entity_type=data.get("entityType") or "unknown",
            started_at=_parse_time(data.get("startedAt")),
            completed_at=_parse_time(data.get("completedAt")),
            cancelled=bool(data.get("cancelled", False)),
            job_id=data.get("jobId"),
            status=data.get("status"),
        )
