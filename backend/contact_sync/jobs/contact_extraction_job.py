"""Background job to extract contact information from a meeting transcript.

Runs once per transcript ID, dispatched by ``ExtractionQueue``:
1. Load the transcript and its meeting (with participants)
2. Render the transcript as ``speaker: words`` lines
3. Skip if a record already exists, before any model call
4. Ask the extractor for contact fields, passing host names so the model
   prefers participant-stated values on conflicts
5. Persist one ExtractedContactRecord per transcript

Empty transcripts, empty extractions, and already-persisted transcripts are
skips and report success. Nothing is written until the final create, so an
interrupted run can be retried safely.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from contact_sync.core.exceptions import (
    ConflictError,
    MeetingNotFoundError,
    TranscriptNotFoundError,
)
from contact_sync.db.repositories import ExtractedContactRepository, MeetingRepository
from contact_sync.models.extracted_contact import ExtractedContactRecord
from contact_sync.services.contact_extraction import ContactInfoExtractor

logger = logging.getLogger(__name__)


class JobStatus(str, Enum):
    """Successful job outcomes."""

    COMPLETED = "completed"
    SKIPPED = "skipped"


class SkipReason(str, Enum):
    """Why a job finished without creating a record."""

    EMPTY_TRANSCRIPT = "empty_transcript"
    NO_CONTACT_FIELDS = "no_contact_fields"
    ALREADY_EXISTS = "already_exists"


@dataclass
class JobResult:
    """Outcome of one extraction run."""

    transcript_id: str
    status: JobStatus
    skip_reason: SkipReason | None = None
    record: ExtractedContactRecord | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize result to dictionary."""
        return {
            "transcript_id": self.transcript_id,
            "status": self.status.value,
            "skip_reason": self.skip_reason.value if self.skip_reason else None,
            "record_id": self.record.id if self.record else None,
        }


class ContactExtractionJob:
    """Extract and persist contact information for one transcript."""

    def __init__(
        self,
        meetings: MeetingRepository,
        extracted_contacts: ExtractedContactRepository,
        extractor: ContactInfoExtractor,
    ) -> None:
        self._meetings = meetings
        self._extracted_contacts = extracted_contacts
        self._extractor = extractor

    async def run(self, transcript_id: str) -> JobResult:
        """Run the extraction pipeline for ``transcript_id``.

        Returns:
            A completed or skipped JobResult.

        Raises:
            TranscriptNotFoundError: Transcript is missing (terminal).
            MeetingNotFoundError: Owning meeting is missing (terminal).
            ContactSyncException: Extraction or persistence failure (retryable).
        """
        transcript = await self._meetings.get_transcript(transcript_id)
        if transcript is None:
            raise TranscriptNotFoundError(transcript_id)

        meeting = await self._meetings.get_meeting_with_details(transcript.meeting_id)
        if meeting is None:
            raise MeetingNotFoundError(transcript.meeting_id)

        transcript_text = transcript.to_text()
        if not transcript_text:
            return self._skip(transcript_id, SkipReason.EMPTY_TRANSCRIPT)

        existing = await self._extracted_contacts.get_by_transcript(transcript_id)
        if existing is not None:
            return self._skip(transcript_id, SkipReason.ALREADY_EXISTS)

        host_names = meeting.host_names()
        contact_info = await self._extractor.extract(transcript_text, host_names)
        if not contact_info:
            return self._skip(transcript_id, SkipReason.NO_CONTACT_FIELDS)

        try:
            record = await self._extracted_contacts.create(transcript_id, contact_info)
        except ConflictError:
            # Lost a race with a concurrent run of the same transcript
            return self._skip(transcript_id, SkipReason.ALREADY_EXISTS)

        logger.info(
            "CONTACT_EXTRACTION: Stored %d fields for transcript %s",
            len(contact_info),
            transcript_id,
            extra={"transcript_id": transcript_id, "meeting_id": meeting.id},
        )
        return JobResult(transcript_id=transcript_id, status=JobStatus.COMPLETED, record=record)

    def _skip(self, transcript_id: str, reason: SkipReason) -> JobResult:
        logger.info(
            "CONTACT_EXTRACTION: Skipped transcript %s (%s)",
            transcript_id,
            reason.value,
            extra={"transcript_id": transcript_id, "skip_reason": reason.value},
        )
        return JobResult(transcript_id=transcript_id, status=JobStatus.SKIPPED, skip_reason=reason)
