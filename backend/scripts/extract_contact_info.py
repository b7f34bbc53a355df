#!/usr/bin/env python3
"""Manually run contact extraction for one meeting transcript.

Run from backend/:
    python -m scripts.extract_contact_info path/to/meeting.json

The meeting file holds ``id``, ``title``, ``participants`` and a
``transcript`` with ``id`` and either ``segments`` or the recorder's raw
``content`` (``{"data": [...]}``). Requires GEMINI_API_KEY in .env.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

# Add backend to path
backend_dir = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(backend_dir))

# Load env before any imports that need config
from dotenv import load_dotenv

load_dotenv(backend_dir / ".env")

from contact_sync.core.config import get_settings
from contact_sync.core.exceptions import ContactSyncException, RateLimitExceededError
from contact_sync.core.logging_config import configure_logging
from contact_sync.db.repositories import (
    InMemoryExtractedContactRepository,
    InMemoryMeetingRepository,
)
from contact_sync.integrations.gemini import GeminiClient
from contact_sync.jobs.contact_extraction_job import ContactExtractionJob
from contact_sync.models.meeting import Meeting, Transcript
from contact_sync.services.contact_extraction import ContactInfoExtractor

logger = logging.getLogger("extract_contact_info")


def load_meeting(data: dict[str, Any]) -> Meeting:
    """Build a Meeting from a JSON document, accepting raw recorder content."""
    raw_transcript = data.get("transcript")
    if isinstance(raw_transcript, dict) and "content" in raw_transcript:
        data = {
            **data,
            "transcript": Transcript.from_content(
                str(raw_transcript["id"]),
                str(data["id"]),
                raw_transcript.get("content") or {},
            ),
        }
    elif isinstance(raw_transcript, dict):
        data = {**data, "transcript": {"meeting_id": str(data["id"]), **raw_transcript}}
    return Meeting.model_validate(data)


async def run(meeting_path: Path, transcript_id: str | None, follow_up_email: bool) -> int:
    meeting = load_meeting(json.loads(meeting_path.read_text(encoding="utf-8")))
    if meeting.transcript is None:
        print(f"Meeting {meeting.id} has no transcript", file=sys.stderr)
        return 1

    transcript_id = transcript_id or meeting.transcript.id
    print(f"Extracting contact information for transcript ID: {transcript_id}")

    gemini = GeminiClient()
    extracted_contacts = InMemoryExtractedContactRepository()
    job = ContactExtractionJob(
        meetings=InMemoryMeetingRepository([meeting]),
        extracted_contacts=extracted_contacts,
        extractor=ContactInfoExtractor(gemini),
    )

    try:
        result = await job.run(transcript_id)
    except RateLimitExceededError as e:
        print("Contact extraction failed: rate limit exceeded", file=sys.stderr)
        print("The Gemini API rate limit was exceeded. Please try again later.", file=sys.stderr)
        print(f"Error details: {e.message}", file=sys.stderr)
        return 1
    except ContactSyncException as e:
        print(f"Contact extraction failed: {e.code}: {e.message}", file=sys.stderr)
        return 1

    print(json.dumps(result.to_dict(), indent=2))
    if result.record is not None:
        print(json.dumps(result.record.contact_info, indent=2, ensure_ascii=False))

    if follow_up_email:
        try:
            email = await gemini.generate_follow_up_email(meeting.transcript.to_text())
        except ContactSyncException as e:
            print(f"Follow-up email failed: {e.code}: {e.message}", file=sys.stderr)
            return 1
        print("\n--- Follow-up email ---\n")
        print(email)

    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Manually extract contact information from a meeting transcript"
    )
    parser.add_argument("meeting", type=Path, help="Path to a meeting JSON file")
    parser.add_argument(
        "--transcript-id",
        help="Transcript to process (defaults to the meeting's transcript)",
    )
    parser.add_argument(
        "--follow-up-email",
        action="store_true",
        help="Also draft a follow-up email from the transcript",
    )
    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging(settings)
    try:
        settings.validate_startup(require_hubspot=False)
    except ValueError as e:
        parser.error(str(e))

    if not args.meeting.is_file():
        parser.error(f"Meeting file not found: {args.meeting}")

    return asyncio.run(run(args.meeting, args.transcript_id, args.follow_up_email))


if __name__ == "__main__":
    sys.exit(main())
