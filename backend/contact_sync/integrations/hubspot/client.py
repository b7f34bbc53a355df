"""HubSpot CRM v3 contacts client with transparent OAuth token refresh."""

import asyncio
import logging
import weakref
from collections.abc import Callable, Mapping
from dataclasses import replace
from datetime import UTC, datetime
from typing import Any

import httpx

from contact_sync.core.config import Settings, get_settings
from contact_sync.core.exceptions import (
    AuthRefreshFailedError,
    ExternalAPIError,
    MissingClientIdError,
    MissingClientSecretError,
    MissingTokenError,
    NoPropertiesToUpdateError,
    ParsingError,
    RefreshFailureCause,
    TransportError,
    truncate_body,
)
from contact_sync.db.repositories import CredentialRepository
from contact_sync.integrations.hubspot.oauth import (
    SERVICE_NAME,
    HubSpotTokenRefresher,
    apply_token_response,
)
from contact_sync.models.contact_fields import DEFAULT_HUBSPOT_PROPERTIES, hubspot_property_for
from contact_sync.models.credential import Credential

logger = logging.getLogger(__name__)

CONTACTS_PATH = "/crm/v3/objects/contacts"
SEARCH_PATH = f"{CONTACTS_PATH}/search"


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _decode_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


class HubSpotClient:
    """Client for HubSpot contact search, read and update.

    Every call first makes sure the credential's access token is valid,
    refreshing it when expired. A 401 from HubSpot triggers exactly one
    refresh followed by exactly one retry of the request.
    """

    def __init__(
        self,
        credentials: CredentialRepository,
        refresher: HubSpotTokenRefresher | None = None,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
        now: Callable[[], datetime] = _utcnow,
        serialize_refresh: bool = False,
    ) -> None:
        """Initialize the HubSpot client.

        Args:
            credentials: Repository that persists refreshed tokens.
            refresher: Token endpoint client; built from ``settings`` when omitted.
            settings: Configuration; defaults to the cached application settings.
            http_client: Shared HTTP client. When omitted a short-lived client
                is opened per request.
            now: Clock used for token expiry checks.
            serialize_refresh: Hold a per-credential lock while refreshing so
                concurrent calls reuse one refresh. Needed when refresh tokens
                are single-use.
        """
        self._settings = settings or get_settings()
        self._credentials = credentials
        self._refresher = refresher or HubSpotTokenRefresher(self._settings, http_client)
        self._http_client = http_client
        self._now = now
        self._serialize_refresh = serialize_refresh
        # Locks live only while some task holds or awaits them
        self._refresh_locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )
        self.base_url = self._settings.HUBSPOT_API_BASE_URL
        self.timeout = self._settings.HTTP_TIMEOUT_SECONDS

    # ====================
    # Contact Methods
    # ====================

    async def search_contacts(
        self,
        credential: Credential,
        query: str,
        limit: int | None = None,
        filters: Mapping[str, str] | None = None,
    ) -> list[dict[str, Any]]:
        """Full-text search over contacts.

        Args:
            credential: The user's HubSpot credential.
            query: Search text. Blank queries return ``[]`` without a request.
            limit: Maximum results; defaults to ``HUBSPOT_SEARCH_LIMIT``.
            filters: Optional ``{field: value}`` pairs, each matched with
                ``CONTAINS_TOKEN``. Field names may be internal or HubSpot keys.

        Returns:
            The ``results`` list from HubSpot.
        """
        if not query or not query.strip():
            return []

        payload: dict[str, Any] = {
            "properties": list(DEFAULT_HUBSPOT_PROPERTIES),
            "limit": limit or self._settings.HUBSPOT_SEARCH_LIMIT,
            "query": query,
        }
        if filters:
            payload["filterGroups"] = [
                {
                    "filters": [
                        {
                            "propertyName": hubspot_property_for(field),
                            "operator": "CONTAINS_TOKEN",
                            "value": value,
                        }
                        for field, value in filters.items()
                    ]
                }
            ]

        response = await self._request(credential, "POST", SEARCH_PATH, json=payload)
        body = self._expect_status(response, 200)
        results = body.get("results", []) if isinstance(body, dict) else []
        return list(results)

    async def get_contact(self, credential: Credential, contact_id: str) -> dict[str, Any]:
        """Fetch one contact with the default property list."""
        params = {"properties": ",".join(DEFAULT_HUBSPOT_PROPERTIES)}
        response = await self._request(
            credential, "GET", f"{CONTACTS_PATH}/{contact_id}", params=params
        )
        body = self._expect_status(response, 200)
        if not isinstance(body, dict):
            raise ParsingError("Unexpected HubSpot contact response", body=body)
        return body

    async def update_contact(
        self,
        credential: Credential,
        contact_id: str,
        properties: Mapping[str, Any],
    ) -> None:
        """PATCH contact properties.

        Raises:
            NoPropertiesToUpdateError: If ``properties`` is empty; nothing is sent.
            ExternalAPIError: On any non-2xx response.
        """
        if not properties:
            raise NoPropertiesToUpdateError(contact_id)

        response = await self._request(
            credential,
            "PATCH",
            f"{CONTACTS_PATH}/{contact_id}",
            json={"properties": dict(properties)},
        )
        if not response.is_success:
            raise self._api_error(response)

        logger.info(
            "Updated HubSpot contact",
            extra={"contact_id": contact_id, "properties": sorted(properties)},
        )

    # ====================
    # Token Handling
    # ====================

    async def ensure_valid_token(self, credential: Credential) -> str:
        """Return a usable access token, refreshing it if expired.

        A credential without ``expires_at`` is treated as non-expiring.

        Raises:
            MissingTokenError: If the credential has no access token.
            AuthRefreshFailedError: If an expired token cannot be refreshed.
        """
        if not credential.access_token:
            raise MissingTokenError(credential.user_id)
        if not credential.is_expired(self._now()):
            return credential.access_token

        logger.info("HubSpot access token expired; refreshing", extra={"user_id": credential.user_id})
        return await self._refresh(credential)

    async def _refresh(self, credential: Credential) -> str:
        if not self._serialize_refresh:
            return await self._do_refresh(credential)

        lock = self._refresh_locks.get(credential.id)
        if lock is None:
            lock = asyncio.Lock()
            self._refresh_locks[credential.id] = lock
        stale_token = credential.access_token
        async with lock:
            # Another task refreshed while this one waited
            if credential.access_token != stale_token and not credential.is_expired(self._now()):
                return credential.access_token
            return await self._do_refresh(credential)

    async def _do_refresh(self, credential: Credential) -> str:
        if not credential.refresh_token:
            raise AuthRefreshFailedError(
                RefreshFailureCause.MISSING_REFRESH_TOKEN, user_id=credential.user_id
            )

        try:
            token = await self._refresher.refresh(credential.refresh_token)
            updated = apply_token_response(
                replace(credential, scopes=list(credential.scopes)), token, self._now()
            )
        except MissingClientIdError as e:
            raise self._refresh_failed(RefreshFailureCause.MISSING_CLIENT_ID, credential, e) from e
        except MissingClientSecretError as e:
            raise self._refresh_failed(
                RefreshFailureCause.MISSING_CLIENT_SECRET, credential, e
            ) from e
        except ExternalAPIError as e:
            raise self._refresh_failed(RefreshFailureCause.PROVIDER_REJECTED, credential, e) from e
        except TransportError as e:
            raise self._refresh_failed(RefreshFailureCause.TRANSPORT, credential, e) from e
        except ParsingError as e:
            raise self._refresh_failed(RefreshFailureCause.INVALID_RESPONSE, credential, e) from e

        saved = await self._credentials.update_tokens(updated)

        credential.access_token = saved.access_token
        credential.refresh_token = saved.refresh_token
        credential.expires_at = saved.expires_at
        logger.info(
            "HubSpot token refreshed",
            extra={"user_id": credential.user_id, "credential_id": credential.id},
        )
        return credential.access_token

    @staticmethod
    def _refresh_failed(
        cause: RefreshFailureCause, credential: Credential, error: Exception
    ) -> AuthRefreshFailedError:
        logger.warning(
            "HubSpot token refresh failed: %s",
            cause.value,
            extra={"user_id": credential.user_id, "cause": cause.value},
        )
        return AuthRefreshFailedError(cause, user_id=credential.user_id, error=error)

    # ====================
    # HTTP Plumbing
    # ====================

    async def _request(
        self,
        credential: Credential,
        method: str,
        path: str,
        json: dict[str, Any] | None = None,
        params: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Send an authenticated request, refreshing and retrying once on 401.

        Raises:
            TransportError: If the first attempt cannot reach HubSpot.
            ExternalAPIError: The original 401 when the retry also fails.
        """
        token = await self.ensure_valid_token(credential)
        response = await self._send(method, path, token, json, params)
        if response.status_code != 401:
            return response

        unauthorized = self._api_error(response)
        logger.info(
            "HubSpot returned 401; refreshing token and retrying once",
            extra={"user_id": credential.user_id, "path": path},
        )
        token = await self._refresh(credential)

        try:
            retried = await self._send(method, path, token, json, params)
        except TransportError:
            raise unauthorized from None
        if retried.status_code == 401:
            raise unauthorized
        return retried

    async def _send(
        self,
        method: str,
        path: str,
        token: str,
        json: dict[str, Any] | None,
        params: dict[str, str] | None,
    ) -> httpx.Response:
        url = f"{self.base_url}{path}"
        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }
        try:
            if self._http_client is not None:
                return await self._http_client.request(
                    method, url, headers=headers, json=json, params=params, timeout=self.timeout
                )
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                return await client.request(method, url, headers=headers, json=json, params=params)
        except httpx.RequestError as e:
            logger.error("HubSpot connection error: %s %s %s", method, path, type(e).__name__)
            raise TransportError(SERVICE_NAME, e) from e

    def _expect_status(self, response: httpx.Response, status: int) -> Any:
        if response.status_code != status:
            raise self._api_error(response)
        return _decode_body(response)

    @staticmethod
    def _api_error(response: httpx.Response) -> ExternalAPIError:
        body = _decode_body(response)
        logger.error(
            "HubSpot API error: status=%s body=%s",
            response.status_code,
            truncate_body(str(body)),
        )
        return ExternalAPIError(SERVICE_NAME, response.status_code, body)
