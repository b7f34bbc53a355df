"""UI-facing service for pushing reviewed contact fields to HubSpot.

Validates a sync request, builds the HubSpot payload from the reviewed
selection, and turns pipeline errors into messages a user can act on.
"""

import logging
from collections.abc import Mapping
from typing import Any

from contact_sync.core.exceptions import (
    AuthRefreshFailedError,
    ContactSyncException,
    MissingTokenError,
    NoPropertiesToUpdateError,
    RateLimitExceededError,
    RefreshFailureCause,
    ValidationError,
    sanitize_error,
)
from contact_sync.integrations.hubspot.client import HubSpotClient
from contact_sync.models.credential import Credential
from contact_sync.services.contact_selection import (
    SelectionState,
    build_update_payload,
    count_selected_fields,
)

logger = logging.getLogger(__name__)

CONNECT_HUBSPOT_TO_SYNC = "Connect your HubSpot account to sync updates."
CONNECT_HUBSPOT_TO_SEARCH = "Connect your HubSpot account to search contacts."
CONNECT_HUBSPOT_TO_SELECT = "Connect your HubSpot account to select a contact."
SELECT_CONTACT_FIRST = "Select a HubSpot contact before updating."
SELECT_AT_LEAST_ONE_FIELD = "Select at least one field to update."
NO_VALUES_FOR_SELECTION = "No extracted values available for the selected fields."

_REFRESH_MESSAGES: dict[RefreshFailureCause, str] = {
    RefreshFailureCause.MISSING_CLIENT_ID: (
        "HubSpot is not configured: set HUBSPOT_CLIENT_ID and try again."
    ),
    RefreshFailureCause.MISSING_CLIENT_SECRET: (
        "HubSpot is not configured: set HUBSPOT_CLIENT_SECRET and try again."
    ),
}


def user_message(error: Exception) -> str:
    """Map an error from search, select or sync to actionable text."""
    if isinstance(error, MissingTokenError):
        return CONNECT_HUBSPOT_TO_SYNC
    if isinstance(error, AuthRefreshFailedError):
        return _REFRESH_MESSAGES.get(
            error.cause, "Your HubSpot session has expired. Please reconnect HubSpot."
        )
    if isinstance(error, NoPropertiesToUpdateError):
        return NO_VALUES_FOR_SELECTION
    if isinstance(error, RateLimitExceededError):
        return "The service is rate limited right now. Please try again in a few minutes."
    if isinstance(error, ValidationError):
        return error.message
    if isinstance(error, ContactSyncException):
        return sanitize_error(error)
    return "Unable to update HubSpot right now. Please try again."


class ContactSyncService:
    """Search, select and update HubSpot contacts for a review session."""

    def __init__(self, client: HubSpotClient) -> None:
        self._client = client

    async def search(self, credential: Credential | None, query: str | None) -> list[dict[str, Any]]:
        """Search contacts; a blank query returns ``[]``.

        Raises:
            ValidationError: If no HubSpot credential is connected.
        """
        trimmed = (query or "").strip()
        if not trimmed:
            return []
        if credential is None:
            raise ValidationError(CONNECT_HUBSPOT_TO_SEARCH, field="credential")

        try:
            return await self._client.search_contacts(credential, trimmed)
        except ContactSyncException as e:
            logger.error("HubSpot contact search failed: %s", e.code, extra={"user_id": credential.user_id})
            raise

    async def select_contact(self, credential: Credential | None, contact_id: str) -> dict[str, Any]:
        """Load the contact chosen from search results."""
        if credential is None:
            raise ValidationError(CONNECT_HUBSPOT_TO_SELECT, field="credential")

        try:
            return await self._client.get_contact(credential, contact_id)
        except ContactSyncException as e:
            logger.error(
                "Failed to load HubSpot contact %s: %s",
                contact_id,
                e.code,
                extra={"user_id": credential.user_id},
            )
            raise

    async def trigger_sync(
        self,
        credential: Credential | None,
        contact_id: str | None,
        selection: SelectionState | Mapping[str, bool],
        contact_info: Mapping[str, Any] | None,
    ) -> dict[str, Any]:
        """Push the selected extracted values to a HubSpot contact.

        Args:
            credential: The user's HubSpot credential, if connected.
            contact_id: The HubSpot contact chosen in the dialog.
            selection: Reviewed field selection.
            contact_info: Extracted contact fields for the meeting.

        Returns:
            The HubSpot property map that was sent.

        Raises:
            ValidationError: Missing credential, contact or field selection.
            NoPropertiesToUpdateError: The selected fields have no usable values.
        """
        selected_fields = (
            selection.selected_fields if isinstance(selection, SelectionState) else dict(selection)
        )

        if credential is None:
            raise ValidationError(CONNECT_HUBSPOT_TO_SYNC, field="credential")
        if not contact_id:
            raise ValidationError(SELECT_CONTACT_FIRST, field="contact_id")
        if count_selected_fields(selected_fields) == 0:
            raise ValidationError(SELECT_AT_LEAST_ONE_FIELD, field="selected_fields")

        payload = build_update_payload(selected_fields, contact_info)
        if not payload:
            raise NoPropertiesToUpdateError(contact_id)

        try:
            await self._client.update_contact(credential, contact_id, payload)
        except ContactSyncException as e:
            logger.error(
                "HubSpot contact update failed: %s",
                e.code,
                extra={"user_id": credential.user_id, "contact_id": contact_id},
            )
            raise

        logger.info(
            "Synced %d fields to HubSpot contact %s",
            len(payload),
            contact_id,
            extra={"user_id": credential.user_id, "properties": sorted(payload)},
        )
        return payload
