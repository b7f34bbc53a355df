"""Shared fixtures for the contact sync test suite."""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import pytest
from pydantic import SecretStr

from contact_sync.core.config import Settings
from contact_sync.models.credential import Credential
from contact_sync.models.meeting import Meeting, Participant, Transcript

FIXED_NOW = datetime(2025, 6, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def settings() -> Settings:
    """Settings with test secrets and no .env lookup."""
    return Settings(
        _env_file=None,
        GEMINI_API_KEY=SecretStr("test-gemini-key"),
        HUBSPOT_CLIENT_ID="test-client-id",
        HUBSPOT_CLIENT_SECRET=SecretStr("test-client-secret"),
        HUBSPOT_REDIRECT_URI="http://localhost:4000/auth/hubspot/callback",
        EXTRACTION_RETRY_BASE_SECONDS=0,
        EXTRACTION_WORKERS=2,
    )


@pytest.fixture
def now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def credential() -> Credential:
    """A HubSpot credential valid for another hour."""
    return Credential(
        id="cred-1",
        user_id="user-1",
        access_token="access-old",
        refresh_token="refresh-old",
        expires_at=FIXED_NOW + timedelta(hours=1),
    )


@pytest.fixture
def expired_credential() -> Credential:
    """A HubSpot credential that expired a minute ago."""
    return Credential(
        id="cred-2",
        user_id="user-2",
        access_token="access-expired",
        refresh_token="refresh-old",
        expires_at=FIXED_NOW - timedelta(minutes=1),
    )


def _make_meeting(
    lines: list[tuple[str | None, str]],
    participants: list[tuple[str, bool]] | None = None,
    meeting_id: str = "meeting-1",
    transcript_id: str = "transcript-1",
) -> Meeting:
    segments = [
        {"speaker": speaker, "words": [{"text": word} for word in text.split()]}
        for speaker, text in lines
    ]
    transcript = Transcript.from_content(transcript_id, meeting_id, {"data": segments})
    return Meeting(
        id=meeting_id,
        title="Client Consultation",
        transcript=transcript,
        participants=[
            Participant(name=name, is_host=is_host) for name, is_host in participants or []
        ],
    )


@pytest.fixture
def make_meeting() -> Callable[..., Meeting]:
    """Factory for meetings from ``(speaker, text)`` lines and ``(name, is_host)`` pairs."""
    return _make_meeting


@pytest.fixture
def jane_meeting() -> Meeting:
    """Host and participant state different emails; the participant's must win."""
    return _make_meeting(
        [
            ("Alex Host", "You can reach me at alex@ourfirm.com"),
            ("Jane Carter", "Mine is jane@acme-logistics.com and I work at Acme Logistics"),
        ],
        participants=[("  Alex Host ", True), ("Jane Carter", False)],
    )
