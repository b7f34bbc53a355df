"""HubSpot CRM and OAuth clients."""

from contact_sync.integrations.hubspot.client import HubSpotClient
from contact_sync.integrations.hubspot.oauth import HubSpotTokenRefresher, apply_token_response

__all__ = ["HubSpotClient", "HubSpotTokenRefresher", "apply_token_response"]
