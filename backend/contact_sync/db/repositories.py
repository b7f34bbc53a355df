"""Data-access interfaces used by the extraction and sync pipeline.

Persistence of meetings, transcripts, credentials, and extraction results
lives outside this package. The pipeline only talks to these protocols;
the in-memory implementations back the tests and the CLI script.
"""

import asyncio
import logging
import uuid
from datetime import UTC, datetime
from typing import Any, Protocol

from contact_sync.core.exceptions import ConflictError
from contact_sync.models.credential import Credential
from contact_sync.models.extracted_contact import ExtractedContactRecord
from contact_sync.models.meeting import Meeting, Transcript

logger = logging.getLogger(__name__)


class MeetingRepository(Protocol):
    """Read access to transcripts and meetings."""

    async def get_transcript(self, transcript_id: str) -> Transcript | None:
        """Return the transcript, or None if it does not exist."""
        ...

    async def get_meeting_with_details(self, meeting_id: str) -> Meeting | None:
        """Return the meeting with transcript and participants, or None."""
        ...


class ExtractedContactRepository(Protocol):
    """Storage for extraction results, unique per transcript."""

    async def get_by_transcript(self, transcript_id: str) -> ExtractedContactRecord | None:
        """Return the record for ``transcript_id`` if one exists."""
        ...

    async def create(
        self, transcript_id: str, contact_info: dict[str, Any]
    ) -> ExtractedContactRecord:
        """Create a record.

        Raises:
            ConflictError: If a record for ``transcript_id`` already exists.
            DatabaseError: On any other storage failure.
        """
        ...


class CredentialRepository(Protocol):
    """Persistence for refreshed OAuth tokens."""

    async def update_tokens(self, credential: Credential) -> Credential:
        """Persist the credential's access token, refresh token and expiry.

        Raises:
            DatabaseError: If the update fails.
        """
        ...


class InMemoryMeetingRepository:
    """Dictionary-backed ``MeetingRepository``."""

    def __init__(self, meetings: list[Meeting] | None = None) -> None:
        self._meetings: dict[str, Meeting] = {}
        self._transcripts: dict[str, Transcript] = {}
        for meeting in meetings or []:
            self.add_meeting(meeting)

    def add_meeting(self, meeting: Meeting) -> None:
        """Register a meeting and its transcript."""
        self._meetings[meeting.id] = meeting
        if meeting.transcript is not None:
            self._transcripts[meeting.transcript.id] = meeting.transcript

    async def get_transcript(self, transcript_id: str) -> Transcript | None:
        return self._transcripts.get(transcript_id)

    async def get_meeting_with_details(self, meeting_id: str) -> Meeting | None:
        return self._meetings.get(meeting_id)


class InMemoryExtractedContactRepository:
    """Dictionary-backed ``ExtractedContactRepository``.

    The transcript-id key plays the role of the unique index: a second
    create for the same transcript raises ``ConflictError``.
    """

    def __init__(self) -> None:
        self._records: dict[str, ExtractedContactRecord] = {}
        self._lock = asyncio.Lock()

    @property
    def records(self) -> list[ExtractedContactRecord]:
        """All stored records, in insertion order."""
        return list(self._records.values())

    async def get_by_transcript(self, transcript_id: str) -> ExtractedContactRecord | None:
        return self._records.get(transcript_id)

    async def create(
        self, transcript_id: str, contact_info: dict[str, Any]
    ) -> ExtractedContactRecord:
        async with self._lock:
            if transcript_id in self._records:
                raise ConflictError(
                    f"Extracted contact information already exists for transcript '{transcript_id}'",
                    resource="extracted_contact_information",
                )
            record = ExtractedContactRecord(
                id=str(uuid.uuid4()),
                transcript_id=transcript_id,
                contact_info=dict(contact_info),
                created_at=datetime.now(UTC),
            )
            self._records[transcript_id] = record

        logger.info(
            "Created extracted contact record",
            extra={"transcript_id": transcript_id, "fields": sorted(contact_info)},
        )
        return record


class InMemoryCredentialRepository:
    """Dictionary-backed ``CredentialRepository``, keyed by credential ID."""

    def __init__(self, credentials: list[Credential] | None = None) -> None:
        self._credentials: dict[str, Credential] = {c.id: c for c in credentials or []}
        self.update_count = 0

    def get(self, credential_id: str) -> Credential | None:
        """Return the stored credential, if any."""
        return self._credentials.get(credential_id)

    async def update_tokens(self, credential: Credential) -> Credential:
        self._credentials[credential.id] = credential
        self.update_count += 1
        return credential
