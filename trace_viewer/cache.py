"""In-memory LRU (least recently used) cache of traces.

Keeps the most complete Trace seen for each id so that expanding a trace or
dragging it out does not refetch it. Capacity is bounded; when full, the entry
that has gone longest without being read or written is evicted.
"""

import logging
from collections import OrderedDict
from typing import Optional

from .models import Trace

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 100


class TraceCache:
    """Bounded trace store with strict LRU eviction.

    - `get` on a hit promotes the entry to most recently used.
    - `has` (and `in`) is a pure membership check and does NOT promote.
    - `set` promotes an existing key without growing, or evicts exactly one
      least recently used entry when inserting a new key at capacity.

    Parameters
    ----------
    max_size : int
        Maximum number of traces to cache (default: 100).
    """

    def __init__(self, max_size: int = DEFAULT_CAPACITY):
        if max_size < 1:
            raise ValueError(f"TraceCache max_size must be at least 1, got {max_size}")
        self.max_size = max_size
        self._entries: "OrderedDict[str, Trace]" = OrderedDict()

    def get(self, trace_id: str) -> Optional[Trace]:
        """Retrieve a trace by id, marking it most recently used.

        Returns
        -------
        Optional[Trace]
            The cached trace, or None if not cached.
        """
        trace = self._entries.get(trace_id)
        if trace is not None:
            self._entries.move_to_end(trace_id)
        return trace

    def set(self, trace_id: str, trace: Trace) -> None:
        """Store a trace, evicting the least recently used entry if full."""
        if trace_id in self._entries:
            self._entries[trace_id] = trace
            self._entries.move_to_end(trace_id)
            return

        if len(self._entries) >= self.max_size:
            evicted_id, _ = self._entries.popitem(last=False)
            logger.debug(f"Evicted trace {evicted_id} from cache")

        self._entries[trace_id] = trace

    def has(self, trace_id: str) -> bool:
        """Check if a trace is cached, without touching recency order."""
        return trace_id in self._entries

    def clear(self) -> None:
        self._entries.clear()

    @property
    def size(self) -> int:
        """Current number of cached entries."""
        return len(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, trace_id: object) -> bool:
        return trace_id in self._entries
