"""Paginated trace list backed by the fetch layer and the trace cache.

The repository is the one place that knows which traces have been listed, which
page comes next, and which cached traces are complete. Pages from the list
endpoint often carry only the root span of a trace; opening or exporting a
trace refetches it in full and replaces the partial copy.
"""

import json
import logging
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Set, Union

from . import config
from .api import TraceApiClient
from .cache import TraceCache
from .errors import TraceApiError
from .models import PaginationInfo, Trace, parse_timestamp

logger = logging.getLogger(__name__)


class CancellationToken:
    """Cooperative cancellation flag checked around suspension points."""

    def __init__(self):
        self._cancelled = False

    @property
    def is_cancellation_requested(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


class TraceRepository:
    """Trace list state: pages fetched so far plus the LRU trace cache.

    Parameters
    ----------
    api_client : TraceApiClient
        Client for the configured trace server.
    per_page : int
        Number of spans requested per page.
    cache : Optional[TraceCache]
        Trace cache; a new one sized from config is created if omitted.
    """

    def __init__(
        self,
        api_client: TraceApiClient,
        per_page: int = config.TRACES_PER_PAGE,
        cache: Optional[TraceCache] = None,
    ):
        self.api_client = api_client
        self.per_page = per_page
        self.cache = cache if cache is not None else TraceCache(config.CACHE_CAPACITY)
        self.traces: List[Trace] = []
        self.pagination: Optional[PaginationInfo] = None
        self.current_page = 0
        self.is_loading = False
        self.is_loading_more = False
        self._refetched: Set[str] = set()

    @property
    def has_more(self) -> bool:
        return bool(self.pagination and self.pagination.has_more)

    async def refresh(self) -> List[Trace]:
        """Reload the trace list from the first page.

        Raises
        ------
        TraceApiError
            If the fetch fails; the list is left empty.
        """
        self.is_loading = True
        self.current_page = 0
        self.traces = []
        self.pagination = None
        try:
            result = await self.api_client.fetch_traces(page=0, per_page=self.per_page)
            self.traces = list(result.traces)
            self.pagination = result.pagination
            self._cache_all(result.traces)
            logger.info(f"Loaded {len(self.traces)} traces from {self.api_client.endpoint}")
            return self.traces
        finally:
            self.is_loading = False

    async def load_more(self) -> List[Trace]:
        """Append the next page of traces.

        Does nothing when there are no more pages or a load is in flight.
        On failure the page counter is reverted and the error re-raised.

        Returns
        -------
        List[Trace]
            The traces added by this call.
        """
        if not self.has_more or self.is_loading_more:
            return []

        self.is_loading_more = True
        self.current_page += 1
        try:
            result = await self.api_client.fetch_traces(page=self.current_page, per_page=self.per_page)
        except TraceApiError:
            self.current_page -= 1
            raise
        finally:
            self.is_loading_more = False

        self.traces = self.traces + list(result.traces)
        self.pagination = result.pagination
        self._cache_all(result.traces)
        logger.info(f"Loaded page {self.current_page}: {len(result.traces)} more traces")
        return list(result.traces)

    def set_api_client(self, api_client: TraceApiClient, clear_cache: bool = True) -> None:
        """Switch to another server, e.g. after an endpoint change."""
        self.api_client = api_client
        if clear_cache:
            self.cache.clear()
            self._refetched.clear()
            logger.warning(f"Trace cache cleared after switching to {api_client.endpoint}")

    def get_trace_from_cache(self, trace_id: str) -> Optional[Trace]:
        return self.cache.get(trace_id)

    def needs_full_fetch(self, trace: Optional[Trace]) -> bool:
        """Whether a cached trace may be missing spans."""
        if trace is None:
            return True
        return trace.trace_id not in self._refetched and not trace.looks_complete()

    async def fetch_full_trace(self, trace_id: str) -> Trace:
        """Fetch a trace with all its spans and cache it.

        Raises
        ------
        TraceApiError
            If the trace cannot be fetched.
        """
        trace = await self.api_client.fetch_trace_by_id(trace_id)
        self.cache.set(trace_id, trace)
        self._refetched.add(trace_id)
        self.traces = [trace if t.trace_id == trace_id else t for t in self.traces]
        return trace

    async def get_full_trace(self, trace_id: str) -> Optional[Trace]:
        """Cached trace if complete, otherwise a fresh full fetch."""
        cached = self.cache.get(trace_id)
        if not self.needs_full_fetch(cached):
            return cached
        return await self.fetch_full_trace(trace_id)

    def sorted_traces(self) -> List[Trace]:
        """Listed traces, newest first; traces without a valid timestamp last."""

        def key(trace: Trace) -> float:
            value = parse_timestamp(trace.timestamp)
            if isinstance(value, datetime):
                if value.tzinfo is None:
                    value = value.replace(tzinfo=timezone.utc)
                return -value.timestamp()
            return float("inf")

        return sorted(self.traces, key=key)

    async def export_trace(
        self,
        trace_id: str,
        token: Optional[CancellationToken] = None,
        directory: Optional[Union[str, Path]] = None,
    ) -> Optional[Path]:
        """Write the full trace as pretty-printed JSON to a temp file.

        Parameters
        ----------
        trace_id : str
            Trace to export.
        token : Optional[CancellationToken]
            Checked before and after each await; nothing is written once it is cancelled.
        directory : Optional[Union[str, Path]]
            Target directory (default: the system temp dir).

        Returns
        -------
        Optional[Path]
            Path of `trace-<first 8 chars of id>.json`, or None if cancelled
            or the trace is unavailable.
        """
        token = token or CancellationToken()
        if token.is_cancellation_requested:
            return None

        trace = self.cache.get(trace_id)
        if self.needs_full_fetch(trace):
            try:
                trace = await self.fetch_full_trace(trace_id)
            except TraceApiError as e:
                logger.warning(f"Failed to export trace {trace_id}: {e.message}")
                return None

        if token.is_cancellation_requested or trace is None:
            return None

        content = json.dumps(
            trace.model_dump(mode="json", by_alias=True, exclude_none=True),
            indent=2,
            ensure_ascii=False,
        )
        target = Path(directory or tempfile.gettempdir()) / f"trace-{trace_id[:8]}.json"
        target.write_text(content, encoding="utf-8")
        logger.info(f"Exported trace {trace_id} to {target}")
        return target

    def _cache_all(self, traces: List[Trace]) -> None:
        for trace in traces:
            # keep a complete copy over a partial one from a later page
            if trace.trace_id in self._refetched and self.cache.has(trace.trace_id):
                continue
            self.cache.set(trace.trace_id, trace)
