"""Job query and control API.

JobService is the only writer of Job state besides the pipeline executing a
job. All mutations go through the repository's atomic ``update`` so that a
progress write from a running pipeline can never overwrite a concurrent
cancellation.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

from catalogdq.core.exceptions import InvalidJobTransitionError, NotFoundError
from catalogdq.core.protocols import JobRepository
from catalogdq.jobs.models import Job, JobStatus, JobType

logger = logging.getLogger(__name__)


class JobService:
    """Creates, queries and controls jobs.

    Example:
        >>> from catalogdq.core.store import InMemoryJobRepository
        >>> jobs = JobService(InMemoryJobRepository())
        >>> job = jobs.create_job("p1", JobType.IMPORT, "u1")
        >>> jobs.cancel_job(job.id).status
        <JobStatus.CANCELLED: 'Cancelled'>
        >>> jobs.retry_job(job.id).status
        <JobStatus.QUEUED: 'Queued'>
    """

    def __init__(self, repository: JobRepository) -> None:
        self.repository = repository

    def create_job(self, project_id: str, job_type: JobType, created_by: str) -> Job:
        """Create a Queued job with progress 0."""
        job = Job(
            id=str(uuid.uuid4()),
            type=job_type,
            project_id=project_id,
            created_by=created_by,
        )
        logger.info("Created %s job %s for project %s", job_type.value, job.id, project_id)
        return self.repository.add(job)

    def get_job(self, job_id: str) -> Job:
        """Return a job by id.

        Raises:
            NotFoundError: If no job has this id
        """
        job = self.repository.get(job_id)
        if job is None:
            raise NotFoundError(f"Job with ID {job_id} not found", record_type="job", record_id=job_id)
        return job

    def get_project_jobs(self, project_id: str) -> list[Job]:
        """Return the project's jobs, newest first."""
        return self.repository.list(project_id)

    def get_all_jobs(self, status: JobStatus | None = None) -> list[Job]:
        """Return all jobs, newest first, optionally filtered by status."""
        jobs = self.repository.list()
        if status is not None:
            jobs = [j for j in jobs if j.status is status]
        return jobs

    def start_job(self, job_id: str) -> Job:
        """Move a Queued job to Running."""
        return self.repository.update(job_id, lambda job: job.transition_to(JobStatus.RUNNING))

    def update_progress(self, job_id: str, progress: int) -> Job:
        """Record progress for a Running job.

        Progress writes are ignored once the job has left Running, so a
        cancelled job keeps its Cancelled status. The returned job reflects the
        stored state, which lets the caller notice a cancellation.
        """
        bounded = max(0, min(100, progress))

        def apply(job: Job) -> None:
            if job.status is JobStatus.RUNNING:
                job.progress = bounded

        return self.repository.update(job_id, apply)

    def complete_job(self, job_id: str, result: dict[str, Any]) -> Job:
        """Move a Running job to Completed and store its result."""

        def apply(job: Job) -> None:
            job.transition_to(JobStatus.COMPLETED)
            job.result = result

        job = self.repository.update(job_id, apply)
        logger.info("Job %s completed", job_id)
        return job

    def fail_job(self, job_id: str, error: str) -> Job:
        """Move a job to Failed with an error message.

        A Queued job is moved through Running first so that started_at is set.
        """

        def apply(job: Job) -> None:
            if job.status is JobStatus.QUEUED:
                job.transition_to(JobStatus.RUNNING)
            job.transition_to(JobStatus.FAILED, error=error)

        job = self.repository.update(job_id, apply)
        logger.error("Job %s failed: %s", job_id, error)
        return job

    def attach_result(self, job_id: str, result: dict[str, Any]) -> Job:
        """Store a result on a job without changing its status."""

        def apply(job: Job) -> None:
            job.result = result

        return self.repository.update(job_id, apply)

    def is_cancelled(self, job_id: str) -> bool:
        return self.get_job(job_id).status is JobStatus.CANCELLED

    def cancel_job(self, job_id: str) -> Job:
        """Cancel a Queued or Running job.

        Cancellation is cooperative: a running import notices it before its
        next row and stops.

        Raises:
            NotFoundError: If no job has this id
            InvalidJobTransitionError: If the job is not Queued or Running
        """
        current = self.get_job(job_id)
        if current.status not in (JobStatus.QUEUED, JobStatus.RUNNING):
            raise InvalidJobTransitionError(
                f"Cannot cancel job with status {current.status.value}. "
                f"Only queued or running jobs can be cancelled.",
                job_id=job_id,
                current=current.status.value,
                target=JobStatus.CANCELLED.value,
            )

        job = self.repository.update(job_id, lambda j: j.transition_to(JobStatus.CANCELLED))
        logger.info("Job %s cancelled", job_id)
        return job

    def retry_job(self, job_id: str) -> Job:
        """Reset a Failed or Cancelled job to Queued for re-submission.

        The job restarts from scratch: progress 0, error, result and
        timestamps cleared.

        Raises:
            NotFoundError: If no job has this id
            InvalidJobTransitionError: If the job is not Failed or Cancelled
        """
        current = self.get_job(job_id)
        if current.status not in (JobStatus.FAILED, JobStatus.CANCELLED):
            raise InvalidJobTransitionError(
                f"Cannot retry job with status {current.status.value}. "
                f"Only failed or cancelled jobs can be retried.",
                job_id=job_id,
                current=current.status.value,
                target=JobStatus.QUEUED.value,
            )

        job = self.repository.update(job_id, lambda j: j.transition_to(JobStatus.QUEUED))
        logger.info("Job %s reset for retry", job_id)
        return job

    def get_project_job_stats(self, project_id: str) -> dict[str, int]:
        """Count the project's jobs by status."""
        jobs = self.get_project_jobs(project_id)
        stats = {"total": len(jobs)}
        for status in JobStatus:
            stats[status.value.lower()] = sum(1 for j in jobs if j.status is status)
        return stats

    def delete_old_jobs(self, days_old: int = 30, now: datetime | None = None) -> int:
        """Delete Completed and Cancelled jobs that finished before the cutoff.

        Args:
            days_old: Retention period in days
            now: Reference time (defaults to the current UTC time)

        Returns:
            Number of deleted jobs
        """
        cutoff = (now or datetime.now(timezone.utc)) - timedelta(days=days_old)
        deleted = 0
        for job in self.repository.list():
            if (
                job.status in (JobStatus.COMPLETED, JobStatus.CANCELLED)
                and job.completed_at is not None
                and job.completed_at < cutoff
            ):
                deleted += int(self.repository.delete(job.id))

        if deleted:
            logger.info("Deleted %d jobs older than %d days", deleted, days_old)
        return deleted
