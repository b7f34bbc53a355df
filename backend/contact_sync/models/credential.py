"""Domain models for CRM OAuth credentials."""

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any


class CredentialModelError(Exception):
    """Error raised when a token response cannot be applied to a credential."""

    pass


@dataclass
class Credential:
    """A user's HubSpot OAuth credential.

    ``expires_at=None`` means the token is treated as non-expiring.
    Only a successful token refresh mutates it.
    """

    id: str
    user_id: str
    access_token: str
    refresh_token: str | None = None
    expires_at: datetime | None = None
    provider: str = "hubspot"
    provider_uid: str | None = None
    scopes: list[str] = field(default_factory=list)

    def is_expired(self, now: datetime | None = None) -> bool:
        """True when ``expires_at`` is set and not strictly in the future."""
        if self.expires_at is None:
            return False
        now = now or datetime.now(UTC)
        return not self.expires_at > now

    def apply_token_response(
        self, token_data: dict[str, Any], now: datetime | None = None
    ) -> "Credential":
        """Copy a refreshed token onto this credential in place.

        HubSpot may omit ``refresh_token`` on refresh; the existing one is
        kept in that case. ``expires_in`` (seconds) becomes ``expires_at``.

        Args:
            token_data: Raw token endpoint response.
            now: Reference time for ``expires_in``.

        Returns:
            The same credential, updated.

        Raises:
            CredentialModelError: If the response has no access token.
        """
        access_token = token_data.get("access_token")
        if not isinstance(access_token, str) or not access_token:
            raise CredentialModelError("token response is missing access_token")

        self.access_token = access_token

        refresh_token = token_data.get("refresh_token")
        if isinstance(refresh_token, str) and refresh_token:
            self.refresh_token = refresh_token

        self.expires_at = expires_at_from(token_data.get("expires_in"), now)
        return self

    def __repr__(self) -> str:
        # Tokens are secrets; keep them out of reprs and therefore out of logs
        return (
            f"Credential(id={self.id!r}, user_id={self.user_id!r}, "
            f"provider={self.provider!r}, expires_at={self.expires_at!r})"
        )


def expires_at_from(expires_in: Any, now: datetime | None = None) -> datetime | None:
    """Convert an ``expires_in`` seconds value into an absolute UTC time."""
    if expires_in is None:
        return None
    try:
        seconds = int(expires_in)
    except (TypeError, ValueError):
        return None
    now = now or datetime.now(UTC)
    return now + timedelta(seconds=seconds)


def credential_from_token_response(
    credential_id: str,
    user_id: str,
    token_data: dict[str, Any],
    now: datetime | None = None,
) -> Credential:
    """Build a new credential from an authorization-code token response."""
    hub_id = token_data.get("hub_id") or token_data.get("hubId")
    scopes = token_data.get("scopes") or token_data.get("scope") or []
    if isinstance(scopes, str):
        scopes = scopes.split()

    credential = Credential(
        id=credential_id,
        user_id=user_id,
        access_token="",
        provider_uid=str(hub_id) if hub_id is not None else None,
        scopes=list(scopes),
    )
    return credential.apply_token_response(token_data, now)
