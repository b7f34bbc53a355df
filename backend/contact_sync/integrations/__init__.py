"""Integrations with external services.

This package contains clients for the Gemini and HubSpot APIs.
"""

from contact_sync.integrations.gemini import GeminiClient
from contact_sync.integrations.hubspot import HubSpotClient, HubSpotTokenRefresher

__all__ = [
    "GeminiClient",
    "HubSpotClient",
    "HubSpotTokenRefresher",
]
