"""Job state machine.

A Job is a persisted, polled unit of asynchronous work. Its status moves
through a bounded lifecycle and every change of status goes through
``Job.transition_to`` so that illegal moves (retrying a running job,
completing a cancelled one) are rejected instead of silently applied.

Lifecycle:
    Queued -> Running -> Completed | Failed
    Queued | Running -> Cancelled          (external cancel)
    Failed | Cancelled -> Queued           (retry, resets the job)
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from catalogdq.core.exceptions import InvalidJobTransitionError


class JobType(Enum):
    """Kind of work a job performs."""

    IMPORT = "Import"
    EXPORT = "Export"
    VALIDATION = "Validation"
    TEST_RUN = "TestRun"


class JobStatus(Enum):
    """Job lifecycle states."""

    QUEUED = "Queued"
    RUNNING = "Running"
    COMPLETED = "Completed"
    FAILED = "Failed"
    CANCELLED = "Cancelled"


ALLOWED_TRANSITIONS: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.QUEUED: frozenset({JobStatus.RUNNING, JobStatus.CANCELLED}),
    JobStatus.RUNNING: frozenset({JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED}),
    JobStatus.COMPLETED: frozenset(),
    JobStatus.FAILED: frozenset({JobStatus.QUEUED}),
    JobStatus.CANCELLED: frozenset({JobStatus.QUEUED}),
}

TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Job:
    """Persisted job record.

    Attributes:
        id: Job identifier
        type: Kind of work
        project_id: Owning project
        created_by: User who enqueued the job
        status: Current lifecycle state (change it with transition_to)
        progress: Percentage complete, 0 to 100
        result: Structured payload written on completion (e.g. an ImportReport)
        error: Failure message, set only when the job Failed
        created_at: When the job was enqueued
        started_at: When the job first entered Running
        completed_at: When the job reached a terminal state

    Example:
        >>> job = Job(id="j1", type=JobType.IMPORT, project_id="p1", created_by="u1")
        >>> job.transition_to(JobStatus.RUNNING)
        >>> job.status
        <JobStatus.RUNNING: 'Running'>
        >>> job.can_transition_to(JobStatus.QUEUED)
        False
    """

    id: str
    type: JobType
    project_id: str
    created_by: str
    status: JobStatus = JobStatus.QUEUED
    progress: int = 0
    result: dict[str, Any] | None = None
    error: str | None = None
    created_at: datetime = field(default_factory=_utcnow)
    started_at: datetime | None = None
    completed_at: datetime | None = None

    def can_transition_to(self, status: JobStatus) -> bool:
        """Return True if moving to status is a legal transition."""
        return status in ALLOWED_TRANSITIONS[self.status]

    def transition_to(self, status: JobStatus, error: str | None = None) -> None:
        """Move the job to a new status, stamping the lifecycle timestamps.

        Entering Running sets started_at (first time only). Entering a terminal
        state sets completed_at. Entering Failed records error. Re-entering
        Queued is a retry and resets progress, error, result and timestamps.

        Args:
            status: Target status
            error: Failure message, used only when status is Failed

        Raises:
            InvalidJobTransitionError: If the transition is not allowed
        """
        if not self.can_transition_to(status):
            raise InvalidJobTransitionError(
                f"Cannot move job from {self.status.value} to {status.value}",
                job_id=self.id,
                current=self.status.value,
                target=status.value,
            )

        now = _utcnow()
        if status is JobStatus.QUEUED:
            self.progress = 0
            self.error = None
            self.result = None
            self.started_at = None
            self.completed_at = None
        elif status is JobStatus.RUNNING:
            if self.started_at is None:
                self.started_at = now
        else:
            self.completed_at = now
            if status is JobStatus.FAILED:
                self.error = error
            elif status is JobStatus.COMPLETED:
                self.progress = 100

        self.status = status

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def to_json(self) -> dict[str, Any]:
        """Export the job for programmatic access (camelCase keys)."""
        return {
            "id": self.id,
            "type": self.type.value,
            "projectId": self.project_id,
            "status": self.status.value,
            "progress": self.progress,
            "result": self.result,
            "error": self.error,
            "createdAt": self.created_at.isoformat(),
            "startedAt": self.started_at.isoformat() if self.started_at else None,
            "completedAt": self.completed_at.isoformat() if self.completed_at else None,
            "createdBy": self.created_by,
        }
