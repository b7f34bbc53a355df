"""Pydantic models for meetings, participants, and transcripts."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_SPEAKER = "Participant"


class TranscriptWord(BaseModel):
    """A single recognized word."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    text: str = Field(default="", description="Word text")

    @field_validator("text", mode="before")
    @classmethod
    def null_text_as_empty(cls, v: Any) -> Any:
        """Recorder payloads may carry ``"text": null``."""
        return "" if v is None else v


class TranscriptSegment(BaseModel):
    """One speaker turn with its word list."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    speaker: str | None = Field(default=None, description="Speaker display name")
    words: list[TranscriptWord] = Field(default_factory=list, description="Words in order")

    @field_validator("words", mode="before")
    @classmethod
    def null_words_as_empty(cls, v: Any) -> Any:
        """Treat a null word list, and null entries in it, as empty."""
        if v is None:
            return []
        if isinstance(v, list):
            return [{} if word is None else word for word in v]
        return v

    @property
    def text(self) -> str:
        """Words joined with spaces and trimmed."""
        return " ".join(word.text for word in self.words).strip()

    def to_line(self) -> str:
        """Render as ``"{speaker}: {text}"``, or ``""`` when there is no text."""
        text = self.text
        if not text:
            return ""
        return f"{self.speaker or DEFAULT_SPEAKER}: {text}"


class Transcript(BaseModel):
    """Immutable transcript owned by a meeting."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str = Field(..., description="Transcript ID")
    meeting_id: str = Field(..., description="Owning meeting ID")
    segments: list[TranscriptSegment] = Field(default_factory=list, description="Speaker turns")

    @classmethod
    def from_content(cls, transcript_id: str, meeting_id: str, content: dict[str, Any]) -> "Transcript":
        """Build a transcript from the recorder's stored ``{"data": [...]}`` payload.

        Unknown keys are ignored; a missing ``data`` list yields no segments.
        """
        raw_segments = content.get("data") or []
        return cls(id=transcript_id, meeting_id=meeting_id, segments=raw_segments)

    def to_text(self) -> str:
        """Concatenate non-empty segment lines with newlines."""
        lines = (segment.to_line() for segment in self.segments)
        return "\n".join(line for line in lines if line)


class Participant(BaseModel):
    """Meeting attendee, classified as host or participant."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str = Field(default="", description="Display name")
    is_host: bool = Field(default=False, description="True for the account-owning side")


class Meeting(BaseModel):
    """Meeting with its transcript and participants loaded."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str = Field(..., description="Meeting ID")
    title: str | None = Field(default=None, description="Meeting title")
    transcript: Transcript | None = Field(default=None, description="Recorded transcript")
    participants: list[Participant] = Field(default_factory=list, description="Attendees")

    def host_names(self) -> list[str]:
        """Normalized (trimmed, lowercased) names of host participants."""
        names = []
        for participant in self.participants:
            if not participant.is_host:
                continue
            normalized = normalize_name(participant.name)
            if normalized:
                names.append(normalized)
        return names


def normalize_name(value: str | None) -> str | None:
    """Trim and lowercase a name, returning None for blanks."""
    if value is None:
        return None
    trimmed = str(value).strip()
    return trimmed.lower() if trimmed else None
