"""Tests for the contact extraction job."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from contact_sync.core.exceptions import (
    ConflictError,
    MeetingNotFoundError,
    RateLimitExceededError,
    TranscriptNotFoundError,
)
from contact_sync.db.repositories import (
    InMemoryExtractedContactRepository,
    InMemoryMeetingRepository,
)
from contact_sync.jobs.contact_extraction_job import (
    ContactExtractionJob,
    JobStatus,
    SkipReason,
)
from contact_sync.models.meeting import Meeting, Transcript
from contact_sync.services.contact_extraction import ContactInfoExtractor
from fakes import FakeCompletionClient

JANE_RESPONSE = (
    '```json\n{"first_name": "Jane", "last_name": "Carter", '
    '"email": "jane@acme-logistics.com", "company_name": "Acme Logistics"}\n```'
)


def build_job(meetings: list[Meeting], llm: FakeCompletionClient, store=None):
    store = store or InMemoryExtractedContactRepository()
    job = ContactExtractionJob(
        meetings=InMemoryMeetingRepository(meetings),
        extracted_contacts=store,
        extractor=ContactInfoExtractor(llm),
    )
    return job, store


class TestExtractionRun:
    """Happy path and the duplicate-resolution scenario."""

    @pytest.mark.asyncio
    async def test_participant_value_wins_over_host(self, jane_meeting: Meeting) -> None:
        """Test that the stored email is the participant's, and hosts reach the prompt."""
        llm = FakeCompletionClient(JANE_RESPONSE)
        job, store = build_job([jane_meeting], llm)

        result = await job.run("transcript-1")

        assert result.status == JobStatus.COMPLETED
        assert result.record is not None
        assert result.record.contact_info["email"] == "jane@acme-logistics.com"
        assert len(store.records) == 1

        prompt = llm.prompts[0]
        assert "DUPLICATE RESOLUTION:" in prompt
        assert "(alex host)" in prompt
        assert "Alex Host: You can reach me at alex@ourfirm.com" in prompt
        assert "Jane Carter: Mine is jane@acme-logistics.com" in prompt

    @pytest.mark.asyncio
    async def test_no_hosts_omits_duplicate_resolution(self, make_meeting) -> None:
        """Test meetings without hosts get the plain prompt."""
        meeting = make_meeting([("Jane Carter", "call me Jane")], participants=[("Jane Carter", False)])
        llm = FakeCompletionClient('{"first_name": "Jane"}')
        job, _ = build_job([meeting], llm)

        await job.run("transcript-1")

        assert "DUPLICATE RESOLUTION" not in llm.prompts[0]

    @pytest.mark.asyncio
    async def test_missing_speaker_rendered_as_participant(self, make_meeting) -> None:
        """Test segments without a speaker."""
        meeting = make_meeting([(None, "my number is 415-555-0199")])
        llm = FakeCompletionClient('{"phone_number": "415-555-0199"}')
        job, _ = build_job([meeting], llm)

        await job.run("transcript-1")

        assert "Participant: my number is 415-555-0199" in llm.prompts[0]


class TestIdempotence:
    """At most one record per transcript."""

    @pytest.mark.asyncio
    async def test_second_run_is_skipped(self, jane_meeting: Meeting) -> None:
        """Test running twice creates exactly one record."""
        job, store = build_job([jane_meeting], FakeCompletionClient(JANE_RESPONSE))

        first = await job.run("transcript-1")
        second = await job.run("transcript-1")

        assert first.status == JobStatus.COMPLETED
        assert second.status == JobStatus.SKIPPED
        assert second.skip_reason == SkipReason.ALREADY_EXISTS
        assert len(store.records) == 1

    @pytest.mark.asyncio
    async def test_rerun_skips_before_calling_model(self, jane_meeting: Meeting) -> None:
        """Test a redelivered job never reaches a failing model."""
        llm = FakeCompletionClient(JANE_RESPONSE, RateLimitExceededError("gemini", attempts=4))
        job, store = build_job([jane_meeting], llm)

        await job.run("transcript-1")
        second = await job.run("transcript-1")

        assert second.status == JobStatus.SKIPPED
        assert second.skip_reason == SkipReason.ALREADY_EXISTS
        assert len(llm.prompts) == 1
        assert len(store.records) == 1

    @pytest.mark.asyncio
    async def test_concurrent_runs_create_one_record(self, jane_meeting: Meeting) -> None:
        """Test parallel runs of the same transcript."""
        job, store = build_job([jane_meeting], FakeCompletionClient(JANE_RESPONSE))

        results = await asyncio.gather(job.run("transcript-1"), job.run("transcript-1"))

        assert sorted(r.status.value for r in results) == ["completed", "skipped"]
        assert len(store.records) == 1

    @pytest.mark.asyncio
    async def test_conflict_on_create_is_a_skip(self, jane_meeting: Meeting) -> None:
        """Test losing the unique-index race."""
        store = AsyncMock()
        store.get_by_transcript.return_value = None
        store.create.side_effect = ConflictError("duplicate", resource="extracted_contact_information")
        job, _ = build_job([jane_meeting], FakeCompletionClient(JANE_RESPONSE), store=store)

        result = await job.run("transcript-1")

        assert result.status == JobStatus.SKIPPED
        assert result.skip_reason == SkipReason.ALREADY_EXISTS
        store.create.assert_awaited_once()


class TestSkips:
    """Successful runs that store nothing."""

    @pytest.mark.asyncio
    async def test_empty_transcript(self, make_meeting) -> None:
        """Test a transcript with no words never calls the model."""
        meeting = make_meeting([("Jane Carter", ""), ("Alex Host", "   ")])
        llm = FakeCompletionClient(JANE_RESPONSE)
        job, store = build_job([meeting], llm)

        result = await job.run("transcript-1")

        assert result.status == JobStatus.SKIPPED
        assert result.skip_reason == SkipReason.EMPTY_TRANSCRIPT
        assert llm.prompts == []
        assert store.records == []

    @pytest.mark.asyncio
    async def test_no_contact_fields(self, jane_meeting: Meeting) -> None:
        """Test an empty or all-placeholder extraction stores nothing."""
        llm = FakeCompletionClient('{"email": "john@example.com", "first_name": "John Doe"}')
        job, store = build_job([jane_meeting], llm)

        result = await job.run("transcript-1")

        assert result.skip_reason == SkipReason.NO_CONTACT_FIELDS
        assert store.records == []


class TestFailures:
    """Terminal and retryable errors."""

    @pytest.mark.asyncio
    async def test_transcript_not_found(self) -> None:
        job, _ = build_job([], FakeCompletionClient())

        with pytest.raises(TranscriptNotFoundError):
            await job.run("missing")

    @pytest.mark.asyncio
    async def test_meeting_not_found(self) -> None:
        """Test a transcript whose meeting cannot be loaded."""
        transcript = Transcript(id="transcript-9", meeting_id="gone", segments=[])
        orphan = Meeting(id="meeting-9", transcript=transcript)
        job, _ = build_job([orphan], FakeCompletionClient())

        with pytest.raises(MeetingNotFoundError):
            await job.run("transcript-9")

    @pytest.mark.asyncio
    async def test_extraction_errors_propagate(self, jane_meeting: Meeting) -> None:
        """Test nothing is written when extraction fails."""
        llm = FakeCompletionClient(RateLimitExceededError("gemini", attempts=4))
        job, store = build_job([jane_meeting], llm)

        with pytest.raises(RateLimitExceededError):
            await job.run("transcript-1")

        assert store.records == []
