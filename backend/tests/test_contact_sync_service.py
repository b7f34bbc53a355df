"""Tests for the HubSpot sync service."""

from unittest.mock import AsyncMock

import pytest

from contact_sync.core.exceptions import (
    AuthRefreshFailedError,
    DatabaseError,
    ExternalAPIError,
    MissingTokenError,
    NoPropertiesToUpdateError,
    RateLimitExceededError,
    RefreshFailureCause,
    ValidationError,
)
from contact_sync.integrations.hubspot.client import HubSpotClient
from contact_sync.models.credential import Credential
from contact_sync.services.contact_selection import SelectionState
from contact_sync.services.contact_sync import ContactSyncService, user_message

CONTACT_INFO = {"first_name": "Jane", "email": "jane@acme-logistics.com", "city": " "}


@pytest.fixture
def client() -> AsyncMock:
    return AsyncMock(spec=HubSpotClient)


@pytest.fixture
def service(client: AsyncMock) -> ContactSyncService:
    return ContactSyncService(client)


class TestTriggerSync:
    """Validation and payload handling."""

    @pytest.mark.asyncio
    async def test_sends_payload(self, service, client, credential: Credential) -> None:
        selection = SelectionState.from_contact_info(CONTACT_INFO)

        payload = await service.trigger_sync(credential, "501", selection, CONTACT_INFO)

        assert payload == {"firstname": "Jane", "email": "jane@acme-logistics.com"}
        client.update_contact.assert_awaited_once_with(credential, "501", payload)

    @pytest.mark.asyncio
    async def test_accepts_plain_mapping(self, service, client, credential: Credential) -> None:
        payload = await service.trigger_sync(
            credential, "501", {"first_name": True, "email": False}, CONTACT_INFO
        )
        assert payload == {"firstname": "Jane"}

    @pytest.mark.asyncio
    async def test_requires_credential(self, service, client) -> None:
        with pytest.raises(ValidationError, match="Connect your HubSpot account"):
            await service.trigger_sync(None, "501", {"first_name": True}, CONTACT_INFO)
        client.update_contact.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_requires_contact(self, service, credential: Credential) -> None:
        with pytest.raises(ValidationError, match="Select a HubSpot contact"):
            await service.trigger_sync(credential, None, {"first_name": True}, CONTACT_INFO)

    @pytest.mark.asyncio
    async def test_requires_selected_field(self, service, credential: Credential) -> None:
        with pytest.raises(ValidationError, match="Select at least one field"):
            await service.trigger_sync(credential, "501", {"first_name": False}, CONTACT_INFO)

    @pytest.mark.asyncio
    async def test_no_usable_values(self, service, client, credential: Credential) -> None:
        with pytest.raises(NoPropertiesToUpdateError):
            await service.trigger_sync(credential, "501", {"city": True}, CONTACT_INFO)
        client.update_contact.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_client_errors_propagate(self, service, client, credential: Credential) -> None:
        client.update_contact.side_effect = ExternalAPIError("hubspot", 500)

        with pytest.raises(ExternalAPIError):
            await service.trigger_sync(credential, "501", {"first_name": True}, CONTACT_INFO)


class TestSearchAndSelect:
    """Search and select wrappers."""

    @pytest.mark.asyncio
    async def test_blank_search(self, service, client) -> None:
        assert await service.search(None, "  ") == []
        client.search_contacts.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_search_trims_query(self, service, client, credential: Credential) -> None:
        client.search_contacts.return_value = [{"id": "501"}]

        assert await service.search(credential, "  jane ") == [{"id": "501"}]
        client.search_contacts.assert_awaited_once_with(credential, "jane")

    @pytest.mark.asyncio
    async def test_search_requires_credential(self, service) -> None:
        with pytest.raises(ValidationError, match="search contacts"):
            await service.search(None, "jane")

    @pytest.mark.asyncio
    async def test_select_contact(self, service, client, credential: Credential) -> None:
        client.get_contact.return_value = {"id": "501", "properties": {}}

        assert await service.select_contact(credential, "501") == {"id": "501", "properties": {}}

    @pytest.mark.asyncio
    async def test_select_requires_credential(self, service) -> None:
        with pytest.raises(ValidationError, match="select a contact"):
            await service.select_contact(None, "501")


class TestUserMessage:
    """Actionable error text."""

    def test_missing_token(self) -> None:
        assert user_message(MissingTokenError("user-1")) == "Connect your HubSpot account to sync updates."

    def test_missing_client_id(self) -> None:
        error = AuthRefreshFailedError(RefreshFailureCause.MISSING_CLIENT_ID)
        assert "HUBSPOT_CLIENT_ID" in user_message(error)

    def test_rejected_refresh(self) -> None:
        error = AuthRefreshFailedError(RefreshFailureCause.PROVIDER_REJECTED)
        assert "reconnect HubSpot" in user_message(error)

    def test_rate_limited(self) -> None:
        assert "rate limited" in user_message(RateLimitExceededError("gemini", attempts=4))

    def test_validation_message_passed_through(self) -> None:
        assert user_message(ValidationError("Select at least one field to update.")) == (
            "Select at least one field to update."
        )

    def test_no_properties(self) -> None:
        assert user_message(NoPropertiesToUpdateError()) == (
            "No extracted values available for the selected fields."
        )

    def test_other_errors_are_generic(self) -> None:
        assert user_message(DatabaseError("relation does not exist")) == (
            "A database error occurred. Please try again."
        )
        assert user_message(RuntimeError("boom")) == (
            "Unable to update HubSpot right now. Please try again."
        )
