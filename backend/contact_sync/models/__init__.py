"""Domain models for contact extraction and CRM sync."""

from contact_sync.models.contact_fields import (
    CATEGORY_FIELDS,
    CONTACT_FIELD_SET,
    CONTACT_FIELDS,
    DEFAULT_HUBSPOT_PROPERTIES,
    HUBSPOT_PROPERTY_MAP,
    ContactCategory,
    ContactField,
    hubspot_property_for,
)
from contact_sync.models.credential import (
    Credential,
    CredentialModelError,
    credential_from_token_response,
    expires_at_from,
)
from contact_sync.models.extracted_contact import ExtractedContactRecord
from contact_sync.models.meeting import (
    Meeting,
    Participant,
    Transcript,
    TranscriptSegment,
    TranscriptWord,
    normalize_name,
)

__all__ = [
    "CATEGORY_FIELDS",
    "CONTACT_FIELDS",
    "CONTACT_FIELD_SET",
    "DEFAULT_HUBSPOT_PROPERTIES",
    "HUBSPOT_PROPERTY_MAP",
    "ContactCategory",
    "ContactField",
    "Credential",
    "CredentialModelError",
    "ExtractedContactRecord",
    "Meeting",
    "Participant",
    "Transcript",
    "TranscriptSegment",
    "TranscriptWord",
    "credential_from_token_response",
    "expires_at_from",
    "hubspot_property_for",
    "normalize_name",
]
