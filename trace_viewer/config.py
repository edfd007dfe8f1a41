"""Configuration for the trace viewer.

Values come from environment variables, optionally loaded from a `.env` file:

    - TRACE_VIEWER_ENDPOINT: Base URL of the trace server (default: http://localhost:4111).
    - TRACE_VIEWER_PER_PAGE: Number of spans requested per page (default: 50).
    - TRACE_VIEWER_CACHE_SIZE: Maximum number of traces kept in memory (default: 100).
    - TRACE_VIEWER_DEV: Set to "true" to enable performance logging (default: false).
"""

import os

import httpx
from dotenv import load_dotenv, find_dotenv

from .errors import ErrorCode, TraceApiError

load_dotenv(find_dotenv(usecwd=True), override=False)

DEFAULT_ENDPOINT = "http://localhost:4111"
ENDPOINT_ENV = "TRACE_VIEWER_ENDPOINT"

# Default timeouts for API requests (seconds)
DEFAULT_TIMEOUT = 30.0
HEALTH_TIMEOUT = 5.0

# Connection-level retries handled by the httpx transport
REQUEST_RETRIES = 3

TRACES_PER_PAGE = int(os.getenv("TRACE_VIEWER_PER_PAGE", "50"))
CACHE_CAPACITY = int(os.getenv("TRACE_VIEWER_CACHE_SIZE", "100"))
DEV_MODE = os.getenv("TRACE_VIEWER_DEV", "false").lower() == "true"

# View state persistence timings (seconds)
SAVE_DEBOUNCE_SECONDS = 0.5
SAVE_INTERVAL_SECONDS = 5.0


def validate_endpoint(endpoint: str) -> str:
    """Validate and normalize a trace server URL.

    Parameters
    ----------
    endpoint : str
        URL as entered by the user or read from the environment.

    Returns
    -------
    str
        Normalized URL without a trailing slash.

    Raises
    ------
    TraceApiError
        With code INVALID_CONFIG if the URL is empty, has no http(s) scheme,
        or cannot be parsed.
    """
    trimmed = (endpoint or "").strip()

    if not trimmed:
        raise TraceApiError(
            "Trace server endpoint cannot be empty",
            ErrorCode.INVALID_CONFIG,
        )

    if not trimmed.startswith(("http://", "https://")):
        raise TraceApiError(
            f"Invalid trace server endpoint: {trimmed}. URL must start with http:// or https://",
            ErrorCode.INVALID_CONFIG,
        )

    try:
        url = httpx.URL(trimmed)
    except httpx.InvalidURL as e:
        raise TraceApiError(
            f"Malformed trace server endpoint: {trimmed}. Please check the URL format.",
            ErrorCode.INVALID_CONFIG,
            details=str(e),
        ) from e

    if not url.host:
        raise TraceApiError(
            f"Malformed trace server endpoint: {trimmed}. Please check the URL format.",
            ErrorCode.INVALID_CONFIG,
        )

    normalized = str(url)
    if normalized.endswith("/"):
        normalized = normalized[:-1]
    return normalized


def get_endpoint() -> str:
    """Get the configured trace server endpoint, validated."""
    return validate_endpoint(os.getenv(ENDPOINT_ENV, DEFAULT_ENDPOINT))
