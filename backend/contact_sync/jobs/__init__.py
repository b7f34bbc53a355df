"""Background jobs for contact extraction."""

from contact_sync.jobs.contact_extraction_job import (
    ContactExtractionJob,
    JobResult,
    JobStatus,
    SkipReason,
)
from contact_sync.jobs.queue import ExtractionQueue, JobRecord, JobState

__all__ = [
    "ContactExtractionJob",
    "ExtractionQueue",
    "JobRecord",
    "JobResult",
    "JobState",
    "JobStatus",
    "SkipReason",
]
