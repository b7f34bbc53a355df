"""Custom exceptions for the contact sync backend."""

import logging
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)

# Longest response body kept on an exception or written to a log line
MAX_BODY_CHARS = 500

# Exception type → safe user-facing message mapping
_SAFE_MESSAGES: dict[str, str] = {
    "MissingClientIdError": "HubSpot is not configured (missing client ID). Please contact support.",
    "MissingClientSecretError": "HubSpot is not configured (missing client secret). Please contact support.",
    "AuthRefreshFailedError": "Your HubSpot session has expired. Please reconnect HubSpot.",
    "MissingTokenError": "Connect your HubSpot account to continue.",
    "RateLimitExceededError": "The AI service is rate limited. Please try again later.",
    "NoPropertiesToUpdateError": "No extracted values available for the selected fields.",
    "NotFoundError": "The requested resource was not found.",
    "ValidationError": "The provided input is invalid. Please check and try again.",
    "ConflictError": "A conflict occurred. Please refresh and try again.",
    "DatabaseError": "A database error occurred. Please try again.",
    "ConfigurationError": "The service is not configured correctly.",
    "ParsingError": "The AI service returned an unexpected response.",
    "TransportError": "An external service could not be reached. Please try again.",
    "ExternalAPIError": "An external service is temporarily unavailable.",
}

_DEFAULT_MESSAGE = "An error occurred. Please try again."


def sanitize_error(e: Exception) -> str:
    """Map an exception to a safe, user-facing error message.

    Walks the exception's MRO so that subclasses without their own entry
    fall back to their parent's message.

    Args:
        e: The exception to sanitize.

    Returns:
        A safe, generic error message string.
    """
    for cls in type(e).__mro__:
        safe_msg = _SAFE_MESSAGES.get(cls.__name__)
        if safe_msg:
            return safe_msg

    return _DEFAULT_MESSAGE


def truncate_body(body: Any, limit: int = MAX_BODY_CHARS) -> Any:
    """Shorten long string bodies so they are safe to attach to logs."""
    if isinstance(body, str) and len(body) > limit:
        return body[:limit] + "..."
    return body


class ContactSyncException(Exception):
    """Base exception for all contact sync errors."""

    def __init__(
        self,
        message: str,
        code: str,
        status_code: int = 400,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize contact sync exception.

        Args:
            message: Human-readable error message.
            code: Machine-readable error code.
            status_code: HTTP-equivalent status code.
            details: Additional error details.
        """
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}


class NotFoundError(ContactSyncException):
    """Resource not found error (404).

    Terminal for background jobs: retrying cannot make the resource appear.
    """

    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        """Initialize not found error.

        Args:
            resource: Name of the resource that was not found.
            resource_id: Optional ID of the resource.
        """
        message = f"{resource} not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' not found"
        super().__init__(
            message=message,
            code="NOT_FOUND",
            status_code=404,
            details={"resource": resource, "resource_id": resource_id},
        )


class TranscriptNotFoundError(NotFoundError):
    """Meeting transcript not found error (404)."""

    def __init__(self, transcript_id: str) -> None:
        super().__init__(resource="Meeting transcript", resource_id=transcript_id)


class MeetingNotFoundError(NotFoundError):
    """Meeting not found error (404)."""

    def __init__(self, meeting_id: str) -> None:
        super().__init__(resource="Meeting", resource_id=meeting_id)


class ValidationError(ContactSyncException):
    """Input validation error (400)."""

    def __init__(
        self, message: str, field: str | None = None, details: dict[str, Any] | None = None
    ) -> None:
        """Initialize validation error.

        Args:
            message: Error message.
            field: Name of the invalid field.
            details: Additional validation details.
        """
        error_details = details or {}
        if field:
            error_details["field"] = field
        super().__init__(
            message=message,
            code="VALIDATION_ERROR",
            status_code=400,
            details=error_details,
        )


class NoPropertiesToUpdateError(ValidationError):
    """Raised when a CRM update is requested with an empty property map."""

    def __init__(self, contact_id: str | None = None) -> None:
        details = {"contact_id": contact_id} if contact_id else None
        super().__init__("No properties to update", field="properties", details=details)
        self.code = "NO_PROPERTIES_TO_UPDATE"


class ConflictError(ContactSyncException):
    """Resource conflict error (409).

    Raised by stores when a uniqueness constraint rejects a create.
    """

    def __init__(self, message: str, resource: str | None = None) -> None:
        """Initialize conflict error.

        Args:
            message: Error message.
            resource: Name of the conflicting resource.
        """
        details = {}
        if resource:
            details["resource"] = resource
        super().__init__(
            message=message,
            code="CONFLICT",
            status_code=409,
            details=details,
        )


class DatabaseError(ContactSyncException):
    """Database operation error (500)."""

    def __init__(self, message: str = "A database error occurred") -> None:
        super().__init__(
            message=message,
            code="DATABASE_ERROR",
            status_code=500,
        )


class ConfigurationError(ContactSyncException):
    """Missing or invalid configuration (500)."""

    def __init__(self, setting: str, message: str | None = None) -> None:
        """Initialize configuration error.

        Args:
            setting: Name of the missing or invalid setting.
            message: Optional error message.
        """
        super().__init__(
            message=message or f"{setting} is not configured",
            code="CONFIGURATION_ERROR",
            status_code=500,
            details={"setting": setting},
        )


class MissingClientIdError(ConfigurationError):
    """HubSpot OAuth client ID is not configured."""

    def __init__(self) -> None:
        super().__init__(
            "HUBSPOT_CLIENT_ID",
            "HubSpot OAuth configuration missing (client_id). Set HUBSPOT_CLIENT_ID.",
        )
        self.code = "MISSING_CLIENT_ID"


class MissingClientSecretError(ConfigurationError):
    """HubSpot OAuth client secret is not configured."""

    def __init__(self) -> None:
        super().__init__(
            "HUBSPOT_CLIENT_SECRET",
            "HubSpot OAuth configuration missing (client_secret). Set HUBSPOT_CLIENT_SECRET.",
        )
        self.code = "MISSING_CLIENT_SECRET"


class ExternalAPIError(ContactSyncException):
    """Non-2xx response from an external API (502).

    Keeps the upstream status and (truncated) body for diagnosis.
    """

    def __init__(self, service: str, status: int, body: Any = None) -> None:
        """Initialize external API error.

        Args:
            service: Name of the external service (e.g. 'gemini', 'hubspot').
            status: HTTP status returned by the service.
            body: Response body, parsed JSON or text.
        """
        super().__init__(
            message=f"{service} API returned status {status}",
            code="EXTERNAL_API_ERROR",
            status_code=502,
            details={"service": service, "status": status},
        )
        self.service = service
        self.status = status
        self.body = truncate_body(body)


class RateLimitExceededError(ContactSyncException):
    """Rate limit still in effect after exhausting backoff attempts (429)."""

    def __init__(self, service: str, attempts: int, last_body: Any = None) -> None:
        """Initialize rate limit exceeded error.

        Args:
            service: Name of the rate-limited service.
            attempts: Total requests made before giving up.
            last_body: Body of the final 429 response.
        """
        super().__init__(
            message=f"{service} rate limit exceeded after {attempts} attempts",
            code="RATE_LIMIT_EXCEEDED",
            status_code=429,
            details={"service": service, "attempts": attempts},
        )
        self.service = service
        self.attempts = attempts
        self.last_body = truncate_body(last_body)


class RefreshFailureCause(str, Enum):
    """Why an OAuth token refresh could not complete."""

    MISSING_CLIENT_ID = "missing_client_id"
    MISSING_CLIENT_SECRET = "missing_client_secret"
    MISSING_REFRESH_TOKEN = "missing_refresh_token"
    PROVIDER_REJECTED = "provider_rejected"
    TRANSPORT = "transport"
    INVALID_RESPONSE = "invalid_response"


class AuthRefreshFailedError(ContactSyncException):
    """OAuth token refresh failed (401).

    The cause lets callers show a precise remediation message: a missing
    client ID or secret is an operator problem, a rejected refresh means the
    user must reconnect.
    """

    def __init__(
        self,
        cause: RefreshFailureCause,
        user_id: str | None = None,
        error: Exception | None = None,
    ) -> None:
        """Initialize refresh failure.

        Args:
            cause: Categorized reason for the failure.
            user_id: Owner of the credential being refreshed.
            error: Underlying exception, if any.
        """
        details: dict[str, Any] = {"cause": cause.value}
        if user_id:
            details["user_id"] = user_id
        super().__init__(
            message=f"Token refresh failed: {cause.value}",
            code="AUTH_REFRESH_FAILED",
            status_code=401,
            details=details,
        )
        self.cause = cause
        self.error = error


class MissingTokenError(ContactSyncException):
    """Credential has no access token (401)."""

    def __init__(self, user_id: str | None = None) -> None:
        super().__init__(
            message="Credential is missing an access token",
            code="MISSING_TOKEN",
            status_code=401,
            details={"user_id": user_id} if user_id else {},
        )


class ParsingError(ContactSyncException):
    """External response could not be interpreted (502)."""

    def __init__(
        self,
        message: str = "Unexpected response shape",
        code: str = "PARSING_ERROR",
        body: Any = None,
    ) -> None:
        super().__init__(message=message, code=code, status_code=502)
        self.body = truncate_body(body)


class UnexpectedFormatError(ParsingError):
    """Model output parsed as JSON but is not an object."""

    def __init__(self, body: Any = None) -> None:
        super().__init__(
            message="Expected a JSON object of contact fields",
            code="UNEXPECTED_FORMAT",
            body=body,
        )


class JSONDecodeFailedError(ParsingError):
    """Model output is not valid JSON."""

    def __init__(self, reason: str, body: Any = None) -> None:
        super().__init__(
            message=f"Failed to decode JSON: {reason}",
            code="JSON_DECODE_FAILED",
            body=body,
        )
        self.reason = reason


class TransportError(ContactSyncException):
    """Network-level failure talking to an external service (503)."""

    def __init__(self, service: str, cause: Exception) -> None:
        """Initialize transport error.

        Args:
            service: Name of the unreachable service.
            cause: The underlying transport exception.
        """
        super().__init__(
            message=f"Failed to reach {service}: {cause}",
            code="TRANSPORT_ERROR",
            status_code=503,
            details={"service": service},
        )
        self.service = service
        self.cause = cause
