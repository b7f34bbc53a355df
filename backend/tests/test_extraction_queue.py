"""Tests for the extraction worker pool."""

import asyncio

import pytest

from contact_sync.core.config import Settings
from contact_sync.core.exceptions import ExternalAPIError
from contact_sync.db.repositories import (
    InMemoryExtractedContactRepository,
    InMemoryMeetingRepository,
)
from contact_sync.jobs.contact_extraction_job import ContactExtractionJob, SkipReason
from contact_sync.jobs.queue import ExtractionQueue, JobState
from contact_sync.models.meeting import Meeting
from contact_sync.services.contact_extraction import ContactInfoExtractor
from fakes import FakeCompletionClient

EMAIL_RESPONSE = '{"email": "jane@acme-logistics.com"}'


def build_job(meetings: list[Meeting], llm: FakeCompletionClient) -> ContactExtractionJob:
    return ContactExtractionJob(
        meetings=InMemoryMeetingRepository(meetings),
        extracted_contacts=InMemoryExtractedContactRepository(),
        extractor=ContactInfoExtractor(llm),
    )


class BlockingJob:
    """Job that waits until cancelled."""

    def __init__(self) -> None:
        self.started = asyncio.Event()

    async def run(self, transcript_id: str):
        self.started.set()
        await asyncio.Event().wait()


@pytest.mark.asyncio
async def test_completed_job(settings: Settings, jane_meeting: Meeting) -> None:
    """Test a successful extraction is recorded as completed."""
    job = build_job([jane_meeting], FakeCompletionClient(EMAIL_RESPONSE))

    async with ExtractionQueue(job, settings=settings) as queue:
        record = queue.enqueue_extraction("transcript-1")
        await queue.join()

    assert record.state == JobState.COMPLETED
    assert record.attempts == 1
    assert record.result is not None
    assert record.result.record.contact_info == {"email": "jane@acme-logistics.com"}
    assert record.done


@pytest.mark.asyncio
async def test_skipped_job(settings: Settings, make_meeting) -> None:
    """Test skips are final on the first attempt."""
    job = build_job([make_meeting([("Jane Carter", "")])], FakeCompletionClient(EMAIL_RESPONSE))

    async with ExtractionQueue(job, settings=settings) as queue:
        record = queue.enqueue_extraction("transcript-1")
        await queue.join()

    assert record.state == JobState.SKIPPED
    assert record.result.skip_reason == SkipReason.EMPTY_TRANSCRIPT


@pytest.mark.asyncio
async def test_not_found_is_discarded_without_retry(settings: Settings) -> None:
    """Test missing transcripts are terminal."""
    llm = FakeCompletionClient(EMAIL_RESPONSE)
    job = build_job([], llm)

    async with ExtractionQueue(job, settings=settings) as queue:
        record = queue.enqueue_extraction("missing")
        await queue.join()

    assert record.state == JobState.DISCARDED
    assert record.attempts == 1
    assert record.last_error.code == "NOT_FOUND"
    assert llm.prompts == []


@pytest.mark.asyncio
async def test_transient_failure_is_retried(settings: Settings, jane_meeting: Meeting) -> None:
    """Test a failed attempt is re-queued and then succeeds."""
    llm = FakeCompletionClient(ExternalAPIError("gemini", 503), EMAIL_RESPONSE)
    job = build_job([jane_meeting], llm)

    async with ExtractionQueue(job, settings=settings) as queue:
        record = queue.enqueue_extraction("transcript-1")
        await queue.join()

    assert record.state == JobState.COMPLETED
    assert record.attempts == 2
    assert len(llm.prompts) == 2


@pytest.mark.asyncio
async def test_attempts_are_bounded(settings: Settings, jane_meeting: Meeting) -> None:
    """Test a persistently failing job stops after max_attempts."""
    llm = FakeCompletionClient(ExternalAPIError("gemini", 500))
    job = build_job([jane_meeting], llm)

    async with ExtractionQueue(job, settings=settings, max_attempts=3) as queue:
        record = queue.enqueue_extraction("transcript-1")
        await queue.join()

    assert record.state == JobState.FAILED
    assert record.attempts == 3
    assert isinstance(record.last_error, ExternalAPIError)
    assert len(llm.prompts) == 3
    assert record.to_dict()["state"] == "failed"


@pytest.mark.asyncio
async def test_many_transcripts(settings: Settings, make_meeting) -> None:
    """Test the pool processes several transcripts."""
    meetings = [
        make_meeting(
            [("Jane Carter", f"I'm in city number {i}")],
            meeting_id=f"meeting-{i}",
            transcript_id=f"transcript-{i}",
        )
        for i in range(5)
    ]
    job = build_job(meetings, FakeCompletionClient('{"city": "Denver"}'))

    async with ExtractionQueue(job, settings=settings) as queue:
        records = [queue.enqueue_extraction(f"transcript-{i}") for i in range(5)]
        await queue.join()

    assert [r.state for r in records] == [JobState.COMPLETED] * 5
    assert queue.workers == settings.EXTRACTION_WORKERS


@pytest.mark.asyncio
async def test_shutdown_cancels_running_jobs(settings: Settings) -> None:
    """Test shutdown cancels in-flight work and marks it cancelled."""
    job = BlockingJob()
    queue = ExtractionQueue(job, settings=settings)  # type: ignore[arg-type]
    await queue.start()

    record = queue.enqueue_extraction("transcript-1")
    await asyncio.wait_for(job.started.wait(), timeout=1)
    await queue.shutdown()

    assert record.state == JobState.CANCELLED
    assert not queue.running


@pytest.mark.asyncio
async def test_finished_records_are_bounded(settings: Settings, make_meeting) -> None:
    """Test a long-running pool keeps only recent finished records."""
    settings = settings.model_copy(update={"EXTRACTION_HISTORY_SIZE": 10})
    meetings = [
        make_meeting(
            [("Jane Carter", f"I'm in city number {i}")],
            meeting_id=f"meeting-{i}",
            transcript_id=f"transcript-{i}",
        )
        for i in range(50)
    ]
    job = build_job(meetings, FakeCompletionClient('{"city": "Denver"}'))

    async with ExtractionQueue(job, settings=settings) as queue:
        records = [queue.enqueue_extraction(f"transcript-{i}") for i in range(50)]
        records.append(queue.enqueue_extraction("missing"))
        assert len(queue.outstanding) == 51
        await queue.join()

        assert queue.outstanding == []
        assert len(queue.history) == 10
        assert all(r.done for r in records)


@pytest.mark.asyncio
async def test_finished_errors_drop_traceback(settings: Settings) -> None:
    """Test discarded records keep the error but not its frames."""
    job = build_job([], FakeCompletionClient(EMAIL_RESPONSE))

    async with ExtractionQueue(job, settings=settings) as queue:
        record = queue.enqueue_extraction("missing")
        await queue.join()

    assert record.last_error is not None
    assert record.last_error.__traceback__ is None
    assert queue.history[-1] is record
