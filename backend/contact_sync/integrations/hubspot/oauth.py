"""HubSpot OAuth token endpoint client."""

import logging
from datetime import datetime
from typing import Any

import httpx

from contact_sync.core.config import Settings, get_settings
from contact_sync.core.exceptions import (
    ExternalAPIError,
    MissingClientIdError,
    MissingClientSecretError,
    ParsingError,
    TransportError,
)
from contact_sync.models.credential import Credential, CredentialModelError

logger = logging.getLogger(__name__)

SERVICE_NAME = "hubspot"

TokenResponse = dict[str, Any]


class HubSpotTokenRefresher:
    """Exchanges refresh tokens and authorization codes for access tokens.

    Client credentials travel only in the form-encoded request body, never
    in the URL or in log lines.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the refresher.

        Args:
            settings: Configuration; defaults to the cached application settings.
            http_client: Shared HTTP client. When omitted a short-lived client
                is opened per request.
        """
        self._settings = settings or get_settings()
        self._http_client = http_client
        self.token_url = self._settings.HUBSPOT_TOKEN_URL
        self.timeout = self._settings.HTTP_TIMEOUT_SECONDS

    async def refresh(self, refresh_token: str) -> TokenResponse:
        """Obtain a new access token with ``grant_type=refresh_token``.

        Args:
            refresh_token: The credential's refresh token.

        Returns:
            The provider's token response; always contains ``access_token``.

        Raises:
            MissingClientIdError: If ``HUBSPOT_CLIENT_ID`` is empty.
            MissingClientSecretError: If ``HUBSPOT_CLIENT_SECRET`` is empty.
            ExternalAPIError: If the provider answers with a non-200 status.
            TransportError: On network failure.
            ParsingError: If a 200 response has no access token.
        """
        form = self._client_credentials()
        form.update(grant_type="refresh_token", refresh_token=refresh_token)
        return await self._request_token(form)

    async def exchange_code(self, code: str, redirect_uri: str | None = None) -> TokenResponse:
        """Exchange an OAuth authorization code for tokens.

        Args:
            code: Authorization code from the login callback.
            redirect_uri: Redirect URI used for the authorize step; defaults
                to ``HUBSPOT_REDIRECT_URI``.
        """
        form = self._client_credentials()
        form.update(
            grant_type="authorization_code",
            code=code,
            redirect_uri=redirect_uri or self._settings.HUBSPOT_REDIRECT_URI,
        )
        return await self._request_token(form)

    def _client_credentials(self) -> dict[str, str]:
        client_id = self._settings.HUBSPOT_CLIENT_ID
        if not client_id:
            raise MissingClientIdError()
        client_secret = self._settings.HUBSPOT_CLIENT_SECRET.get_secret_value()
        if not client_secret:
            raise MissingClientSecretError()
        return {"client_id": client_id, "client_secret": client_secret}

    async def _request_token(self, form: dict[str, str]) -> TokenResponse:
        grant_type = form["grant_type"]
        try:
            if self._http_client is not None:
                response = await self._http_client.post(
                    self.token_url, data=form, timeout=self.timeout
                )
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(self.token_url, data=form)
        except httpx.RequestError as e:
            logger.error("HubSpot token endpoint unreachable: %s", type(e).__name__)
            raise TransportError(SERVICE_NAME, e) from e

        try:
            body: Any = response.json()
        except ValueError:
            body = response.text

        if response.status_code != 200:
            # Error bodies carry no tokens; log status and error code only
            error_code = (body.get("status") or body.get("error")) if isinstance(body, dict) else None
            logger.warning(
                "HubSpot token request rejected: grant_type=%s status=%s error=%s",
                grant_type,
                response.status_code,
                error_code,
            )
            raise ExternalAPIError(SERVICE_NAME, response.status_code, body)

        if not isinstance(body, dict) or not body.get("access_token"):
            raise ParsingError("Token response is missing access_token", code="INVALID_TOKEN_RESPONSE")

        logger.info(
            "HubSpot token issued",
            extra={"grant_type": grant_type, "expires_in": body.get("expires_in")},
        )
        return body


def apply_token_response(
    credential: Credential, token: TokenResponse, now: datetime | None = None
) -> Credential:
    """Map a token response onto ``credential`` in place.

    Raises:
        ParsingError: If the response has no access token.
    """
    try:
        return credential.apply_token_response(token, now)
    except CredentialModelError as e:
        raise ParsingError(str(e), code="INVALID_TOKEN_RESPONSE") from e
