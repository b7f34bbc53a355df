"""In-process work queue for contact extraction jobs.

One job per enqueued transcript ID, executed by a pool of asyncio workers.
Delivery is at-least-once with a bounded number of attempts; failed
attempts are re-queued after an exponential backoff without holding a
worker. Missing transcripts and meetings are terminal and are discarded
without retry.
"""

import asyncio
import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from contact_sync.core.config import Settings, get_settings
from contact_sync.core.exceptions import ContactSyncException, NotFoundError
from contact_sync.core.resilience import exponential_backoff
from contact_sync.jobs.contact_extraction_job import ContactExtractionJob, JobResult, JobStatus

logger = logging.getLogger(__name__)


class JobState(str, Enum):
    """Lifecycle of a queued job.

    queued -> running -> completed | skipped
    running -> retrying -> queued (attempts left)
    running -> failed (attempts exhausted) | discarded (terminal error)
    any -> cancelled (queue shutdown)
    """

    QUEUED = "queued"
    RUNNING = "running"
    RETRYING = "retrying"
    COMPLETED = "completed"
    SKIPPED = "skipped"
    FAILED = "failed"
    DISCARDED = "discarded"
    CANCELLED = "cancelled"


FINAL_STATES = frozenset(
    {JobState.COMPLETED, JobState.SKIPPED, JobState.FAILED, JobState.DISCARDED, JobState.CANCELLED}
)


@dataclass
class JobRecord:
    """Bookkeeping for one enqueued extraction."""

    transcript_id: str
    state: JobState = JobState.QUEUED
    attempts: int = 0
    result: JobResult | None = None
    last_error: Exception | None = None
    enqueued_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    finished_at: datetime | None = None

    @property
    def done(self) -> bool:
        """True once the job reached a final state."""
        return self.state in FINAL_STATES

    def to_dict(self) -> dict[str, Any]:
        """Serialize record to dictionary."""
        return {
            "transcript_id": self.transcript_id,
            "state": self.state.value,
            "attempts": self.attempts,
            "result": self.result.to_dict() if self.result else None,
            "last_error": str(self.last_error) if self.last_error else None,
            "enqueued_at": self.enqueued_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }


class ExtractionQueue:
    """Worker pool running ``ContactExtractionJob`` per transcript.

    Only jobs still in flight are tracked; finished records are kept in
    ``history``, which holds the most recent ``EXTRACTION_HISTORY_SIZE``.

    Usage::

        async with ExtractionQueue(job) as queue:
            queue.enqueue_extraction("transcript-1")
            await queue.join()
    """

    def __init__(
        self,
        job: ContactExtractionJob,
        settings: Settings | None = None,
        workers: int | None = None,
        max_attempts: int | None = None,
    ) -> None:
        """Initialize the queue.

        Args:
            job: The job executed for each transcript ID.
            settings: Configuration; defaults to the cached application settings.
            workers: Concurrent workers; defaults to ``EXTRACTION_WORKERS``.
            max_attempts: Attempts per job; defaults to ``EXTRACTION_MAX_ATTEMPTS``.
        """
        self._settings = settings or get_settings()
        self._job = job
        self.workers = max(1, workers or self._settings.EXTRACTION_WORKERS)
        self.max_attempts = max(
            1, max_attempts if max_attempts is not None else self._settings.EXTRACTION_MAX_ATTEMPTS
        )
        self.history: deque[JobRecord] = deque(maxlen=self._settings.EXTRACTION_HISTORY_SIZE)
        self._outstanding: dict[int, JobRecord] = {}

        self._queue: asyncio.Queue[JobRecord] = asyncio.Queue()
        self._worker_tasks: list[asyncio.Task[None]] = []
        self._delayed: set[asyncio.Task[None]] = set()

    @property
    def running(self) -> bool:
        """True while workers are active."""
        return bool(self._worker_tasks)

    @property
    def outstanding(self) -> list[JobRecord]:
        """Records not yet in a final state, in enqueue order."""
        return list(self._outstanding.values())

    async def start(self) -> None:
        """Spawn the worker tasks. Calling twice is a no-op."""
        if self._worker_tasks:
            return
        self._worker_tasks = [
            asyncio.create_task(self._worker(index), name=f"contact-extraction-{index}")
            for index in range(self.workers)
        ]
        logger.info("Extraction queue started with %d workers", self.workers)

    def enqueue_extraction(self, transcript_id: str) -> JobRecord:
        """Schedule contact extraction for a transcript.

        Args:
            transcript_id: Transcript to process.

        Returns:
            The JobRecord tracking this enqueue.
        """
        record = JobRecord(transcript_id=str(transcript_id))
        self._outstanding[id(record)] = record
        self._queue.put_nowait(record)
        logger.debug("Enqueued contact extraction for transcript %s", transcript_id)
        return record

    async def join(self) -> None:
        """Wait until every enqueued job, including pending retries, is final."""
        while True:
            await self._queue.join()
            if not self._delayed:
                return
            await asyncio.gather(*list(self._delayed), return_exceptions=True)

    async def shutdown(self) -> None:
        """Cancel workers and pending retries.

        Jobs interrupted mid-run are marked cancelled; they never wrote
        partial state, so re-enqueueing them later is safe.
        """
        tasks = [*self._worker_tasks, *self._delayed]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._worker_tasks = []
        self._delayed.clear()

        for record in self.outstanding:
            self._finish(record, JobState.CANCELLED)
        logger.info("Extraction queue stopped")

    async def __aenter__(self) -> "ExtractionQueue":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.shutdown()

    async def _worker(self, index: int) -> None:
        while True:
            record = await self._queue.get()
            try:
                await self._process(record)
            except Exception:
                # Keep the worker alive; _process already recorded the failure
                logger.exception(
                    "Worker %d crashed while processing transcript %s",
                    index,
                    record.transcript_id,
                )
            finally:
                self._queue.task_done()

    async def _process(self, record: JobRecord) -> None:
        record.state = JobState.RUNNING
        record.attempts += 1

        try:
            result = await self._job.run(record.transcript_id)
        except NotFoundError as e:
            self._finish(record, JobState.DISCARDED, error=e)
            logger.warning(
                "CONTACT_EXTRACTION: Discarded transcript %s: %s",
                record.transcript_id,
                e.message,
                extra={"transcript_id": record.transcript_id},
            )
            return
        except Exception as e:
            self._handle_failure(record, e)
            return

        state = JobState.COMPLETED if result.status == JobStatus.COMPLETED else JobState.SKIPPED
        record.result = result
        self._finish(record, state)

    def _handle_failure(self, record: JobRecord, error: Exception) -> None:
        record.last_error = error
        details: dict[str, Any] = {"transcript_id": record.transcript_id, "attempt": record.attempts}
        if isinstance(error, ContactSyncException):
            details.update(code=error.code, **error.details)

        if record.attempts >= self.max_attempts:
            self._finish(record, JobState.FAILED, error=error)
            logger.error(
                "CONTACT_EXTRACTION: Failed transcript %s after %d attempts: %s",
                record.transcript_id,
                record.attempts,
                error,
                extra=details,
            )
            return

        delay = exponential_backoff(
            self._settings.EXTRACTION_RETRY_BASE_SECONDS,
            record.attempts,
            self._settings.EXTRACTION_RETRY_MAX_SECONDS,
        )
        record.state = JobState.RETRYING
        logger.warning(
            "CONTACT_EXTRACTION: Attempt %d/%d failed for transcript %s (%s); retrying in %ds",
            record.attempts,
            self.max_attempts,
            record.transcript_id,
            type(error).__name__,
            delay,
            extra=details,
        )
        task = asyncio.create_task(self._requeue_later(record, delay))
        self._delayed.add(task)
        task.add_done_callback(self._delayed.discard)

    async def _requeue_later(self, record: JobRecord, delay: float) -> None:
        await asyncio.sleep(delay)
        record.state = JobState.QUEUED
        self._queue.put_nowait(record)

    def _finish(self, record: JobRecord, state: JobState, error: Exception | None = None) -> None:
        record.state = state
        record.finished_at = datetime.now(UTC)
        if error is not None:
            record.last_error = error
        if record.last_error is not None:
            # Finished records must not pin the frames of the failed run
            record.last_error.__traceback__ = None
        self._outstanding.pop(id(record), None)
        self.history.append(record)
