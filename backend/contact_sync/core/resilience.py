"""Backoff helpers for calls against rate-limited external services.

Provides:
- exponential_backoff: capped ``base * 2^(attempt-1)`` delay schedule
- parse_retry_delay: read Google RPC ``RetryInfo`` hints from 429 bodies
- backoff_schedule: the full sequence of delays for a retry budget

Retry loops in this package are explicit bounded ``for`` loops that call
these helpers, so the schedule can be tested on its own.
"""

import logging
import math
import re
from typing import Any

logger = logging.getLogger(__name__)

RETRY_INFO_TYPE = "type.googleapis.com/google.rpc.RetryInfo"

_DELAY_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*s?\s*$")


def exponential_backoff(base_delay: float, attempt: int, max_delay: float) -> int:
    """Compute the delay before retry number ``attempt`` (1-based).

    Args:
        base_delay: Delay for the first retry, in seconds.
        attempt: Retry number, starting at 1.
        max_delay: Cap on the computed delay.

    Returns:
        Whole seconds to wait, ``min(ceil(base * 2^(attempt-1)), max_delay)``.
    """
    if attempt < 1:
        raise ValueError(f"attempt must be >= 1, got {attempt}")
    delay = math.ceil(base_delay * (2 ** (attempt - 1)))
    return int(min(delay, max_delay))


def backoff_schedule(base_delay: float, retries: int, max_delay: float) -> list[int]:
    """Return the delays used across ``retries`` consecutive retries."""
    return [exponential_backoff(base_delay, attempt, max_delay) for attempt in range(1, retries + 1)]


def parse_retry_delay(error_body: Any, default: int = 60) -> int:
    """Extract the provider retry hint from a 429 response body.

    The Gemini API reports it as ``error.details[].retryDelay`` on the
    ``RetryInfo`` detail, e.g. ``"59s"`` or ``"59.1s"``. Fractional values
    are rounded up.

    Args:
        error_body: Parsed JSON body (anything else yields the default).
        default: Seconds to use when no usable hint is present.

    Returns:
        Retry delay in whole seconds.
    """
    if not isinstance(error_body, dict):
        return default

    error = error_body.get("error")
    details = error.get("details") if isinstance(error, dict) else None
    if not isinstance(details, list):
        return default

    for detail in details:
        if not isinstance(detail, dict) or detail.get("@type") != RETRY_INFO_TYPE:
            continue
        raw = detail.get("retryDelay")
        if not isinstance(raw, str):
            return default
        match = _DELAY_RE.match(raw)
        if not match:
            logger.debug("Unparseable retryDelay %r, using default %ds", raw, default)
            return default
        return math.ceil(float(match.group(1)))

    return default
