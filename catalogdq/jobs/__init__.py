"""Job lifecycle tracking for asynchronous work."""

from catalogdq.jobs.models import ALLOWED_TRANSITIONS, Job, JobStatus, JobType
from catalogdq.jobs.service import JobService

__all__ = [
    "Job",
    "JobType",
    "JobStatus",
    "ALLOWED_TRANSITIONS",
    "JobService",
]
