"""Contact information extraction from meeting transcripts.

Builds the extraction prompt, sends it through a ``CompletionClient``, and
turns the model's loosely formatted JSON into a clean field map.
"""

import json
import logging
import re
from collections.abc import Sequence
from typing import Any

from contact_sync.core.exceptions import (
    JSONDecodeFailedError,
    UnexpectedFormatError,
    ValidationError,
)
from contact_sync.core.llm import CompletionClient
from contact_sync.models.contact_fields import CONTACT_FIELD_SET

logger = logging.getLogger(__name__)

EXTRACTION_PROMPT = """Extract all contact information mentioned in the following meeting transcript.
Return a JSON object with only the fields that are actually found.

Possible fields to extract:
- first_name, last_name, email, phone_number
- city, state, country, postal_code
- job_title, company_name
- date_of_birth, marital_status, time_zone

{duplicate_resolution}
IMPORTANT INSTRUCTIONS:
- Only extract information that is EXPLICITLY mentioned in the transcript
- Do NOT generate placeholder, example, or dummy data (e.g., "example.com", "John Doe", "555-123-4567")
- Do NOT make up or infer contact information
- If no contact information is found in the transcript, return an empty JSON object: {{}}
- Return ONLY valid JSON, no additional text

Transcript:
{transcript}
"""

DUPLICATE_RESOLUTION_RULE = (
    "DUPLICATE RESOLUTION: If the same contact field (e.g., email, phone) is mentioned "
    "by both the host(s) ({hosts}) and a participant with different values, prefer the "
    "value mentioned by the participant.\n"
)

# Placeholder heuristics, all compared against the trimmed, lowercased value
_PLACEHOLDER_EMAIL_DOMAINS = ("@example.com", "@example.org", "@test.com")
_PLACEHOLDER_PHONE = re.compile(r"^555[-.\s]?\d{3}[-.\s]?\d{4}$")
_PLACEHOLDER_NAMES = frozenset(
    {"john doe", "jane doe", "jane smith", "john smith", "alice smith", "bob smith"}
)
_PLACEHOLDER_COMPANIES = frozenset(
    {"acme corp", "acme corporation", "example company", "test company", "sample company"}
)
_PLACEHOLDER_TOKENS = frozenset(
    {"example", "test", "sample", "placeholder", "dummy", "n/a", "na"}
)


def build_prompt(transcript_text: str, host_names: Sequence[str] = ()) -> str:
    """Build the extraction prompt.

    The duplicate-resolution rule is only included when host names are
    known, so the model can tell host statements from participant ones.
    """
    duplicate_resolution = ""
    if host_names:
        duplicate_resolution = DUPLICATE_RESOLUTION_RULE.format(hosts=", ".join(host_names))
    return EXTRACTION_PROMPT.format(
        duplicate_resolution=duplicate_resolution,
        transcript=transcript_text,
    )


def is_placeholder_value(value: Any) -> bool:
    """Check whether a value looks like fabricated example data."""
    if not isinstance(value, str):
        return False

    normalized = value.strip().lower()

    if any(domain in normalized for domain in _PLACEHOLDER_EMAIL_DOMAINS):
        return True
    if _PLACEHOLDER_PHONE.match(normalized):
        return True
    return (
        normalized in _PLACEHOLDER_NAMES
        or normalized in _PLACEHOLDER_COMPANIES
        or normalized in _PLACEHOLDER_TOKENS
    )


def clean_json_text(text: str) -> str:
    """Strip surrounding whitespace and Markdown code fences."""
    cleaned = text.strip()

    for fence in ("```json", "```"):
        if cleaned.startswith(fence):
            cleaned = cleaned[len(fence):].lstrip()
            break

    for fence in ("```json", "```"):
        if cleaned.endswith(fence):
            cleaned = cleaned[: -len(fence)].rstrip()
            break

    return cleaned.strip()


def decode_contact_info(raw_response: str) -> dict[str, Any]:
    """Parse model output into a filtered contact field map.

    Drops keys outside the field vocabulary, null values, blank strings,
    and placeholder values.

    Raises:
        JSONDecodeFailedError: If the text is not valid JSON.
        UnexpectedFormatError: If the JSON is not an object.
    """
    cleaned_text = clean_json_text(raw_response)

    try:
        decoded = json.loads(cleaned_text)
    except json.JSONDecodeError as e:
        raise JSONDecodeFailedError(str(e), body=raw_response) from e

    if not isinstance(decoded, dict):
        raise UnexpectedFormatError(body=raw_response)

    cleaned: dict[str, Any] = {}
    for key, value in decoded.items():
        key = str(key)
        if key not in CONTACT_FIELD_SET:
            continue
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        if is_placeholder_value(value):
            logger.debug("Dropping placeholder value for field %s", key)
            continue
        cleaned[key] = value

    return cleaned


class ContactInfoExtractor:
    """Extracts contact fields from transcript text with a language model."""

    def __init__(self, completion_client: CompletionClient) -> None:
        """Initialize the extractor.

        Args:
            completion_client: Backend used to run the extraction prompt.
        """
        self._completion_client = completion_client

    async def extract(
        self,
        transcript_text: str,
        host_names: Sequence[str] = (),
    ) -> dict[str, Any]:
        """Extract contact information from a transcript.

        Args:
            transcript_text: ``"speaker: words"`` lines.
            host_names: Normalized host names; enables duplicate resolution.

        Returns:
            Cleaned field map, possibly empty.

        Raises:
            ValidationError: If the inputs are not text.
            ParsingError: If the model output is not a JSON object.
            ContactSyncException: Any error raised by the completion client.
        """
        if not isinstance(transcript_text, str) or isinstance(host_names, str):
            raise ValidationError("Invalid transcript payload", field="transcript_text")

        prompt = build_prompt(transcript_text, list(host_names))
        raw_response = await self._completion_client.complete(prompt)
        contact_info = decode_contact_info(raw_response)

        logger.info(
            "Extracted %d contact fields",
            len(contact_info),
            extra={"fields": sorted(contact_info)},
        )
        return contact_info
