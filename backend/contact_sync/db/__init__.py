"""Repository interfaces and in-memory implementations."""

from contact_sync.db.repositories import (
    CredentialRepository,
    ExtractedContactRepository,
    InMemoryCredentialRepository,
    InMemoryExtractedContactRepository,
    InMemoryMeetingRepository,
    MeetingRepository,
)

__all__ = [
    "CredentialRepository",
    "ExtractedContactRepository",
    "InMemoryCredentialRepository",
    "InMemoryExtractedContactRepository",
    "InMemoryMeetingRepository",
    "MeetingRepository",
]
