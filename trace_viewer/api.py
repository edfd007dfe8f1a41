"""Async client for the trace server's observability API.

All transport and HTTP failures are translated into TraceApiError, so callers
only ever need to handle one error type.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from . import config
from .errors import ErrorCode, TraceApiError
from .grouping import build_trace, build_traces_page
from .models import Trace, TracesPage

logger = logging.getLogger(__name__)

TRACES_PATH = "/api/observability/traces"


class TraceApiClient:
    """Fetches span pages and single traces from a trace server.

    Parameters
    ----------
    endpoint : str
        Base URL of the trace server, already validated (see config.validate_endpoint).
    timeout : float
        Request timeout in seconds.
    retries : int
        Connection retries performed by the httpx transport.
    """

    def __init__(
        self,
        endpoint: str,
        timeout: float = config.DEFAULT_TIMEOUT,
        retries: int = config.REQUEST_RETRIES,
    ):
        self.endpoint = endpoint.rstrip("/")
        self.timeout = timeout
        self.retries = retries

    def _client(self, timeout: Optional[float] = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=timeout or self.timeout,
            transport=httpx.AsyncHTTPTransport(retries=self.retries),
        )

    async def _get_json(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        try:
            async with self._client(timeout) as client:
                resp = await client.get(f"{self.endpoint}{path}", params=params)
                resp.raise_for_status()
                return resp.json()
        except Exception as e:
            raise self._transform_error(e) from e

    async def fetch_traces(self, page: int = 0, per_page: int = 50) -> TracesPage:
        """Fetch one page of spans, grouped into traces.

        Parameters
        ----------
        page : int
            Zero-based page number.
        per_page : int
            Number of spans per page.

        Returns
        -------
        TracesPage
            Traces in first-seen order plus pagination metadata.

        Raises
        ------
        TraceApiError
            On network, timeout, HTTP or data validation errors.
        """
        data = await self._get_json(
            TRACES_PATH,
            params={"page": page, "perPage": per_page},
        )
        traces_page = build_traces_page(data, page=page, per_page=per_page)
        logger.debug(
            f"Fetched page {page}: {len(traces_page.traces)} traces "
            f"(has_more={traces_page.pagination.has_more})"
        )
        return traces_page

    async def fetch_trace_by_id(self, trace_id: str) -> Trace:
        """Fetch a single trace with all of its spans.

        Raises
        ------
        TraceApiError
            If the trace cannot be fetched or its data is invalid.
        """
        data = await self._get_json(f"{TRACES_PATH}/{trace_id}")
        return build_trace(trace_id, data)

    async def test_connection(self) -> bool:
        """Check the server answers the list endpoint.

        Raises
        ------
        TraceApiError
            On any connection failure.
        """
        await self._get_json(
            TRACES_PATH,
            params={"page": 0, "perPage": 1},
            timeout=config.HEALTH_TIMEOUT,
        )
        return True

    async def check_health(self) -> bool:
        """Check if the trace server is reachable."""
        try:
            return await self.test_connection()
        except TraceApiError as e:
            logger.info(f"Trace server at {self.endpoint} is unavailable: {e.message}")
            return False

    def _transform_error(self, error: Exception) -> TraceApiError:
        """Translate httpx and decoding failures into TraceApiError."""
        if isinstance(error, TraceApiError):
            return error

        if isinstance(error, httpx.TimeoutException):
            return TraceApiError("Request timed out", ErrorCode.TIMEOUT)

        if isinstance(error, httpx.TransportError):
            return TraceApiError(
                f"Cannot connect to trace server at {self.endpoint}",
                ErrorCode.NETWORK,
                details=str(error),
            )

        if isinstance(error, httpx.HTTPStatusError):
            response = error.response
            body: Any = None
            try:
                body = response.json()
            except ValueError:
                body = response.text
            message = "API request failed"
            if isinstance(body, dict) and body.get("message"):
                message = str(body["message"])
            return TraceApiError(
                message,
                ErrorCode.API_ERROR,
                status_code=response.status_code,
                details=body,
            )

        if isinstance(error, ValueError):
            # resp.json() on a non-JSON body
            return TraceApiError(
                "Invalid response from trace server - expected JSON",
                ErrorCode.INVALID_DATA,
                details=str(error),
            )

        return TraceApiError(str(error) or "Unknown error", ErrorCode.API_ERROR)
