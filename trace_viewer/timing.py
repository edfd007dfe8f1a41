"""Performance logging for development mode.

Timings are only measured and logged when TRACE_VIEWER_DEV=true, so the
production path pays nothing beyond a flag check.
"""

import logging
import time
from typing import Callable, TypeVar

from . import config

logger = logging.getLogger(__name__)

T = TypeVar("T")


def log_performance(label: str, fn: Callable[[], T]) -> T:
    """Run fn and log how long it took (development mode only).

    Parameters
    ----------
    label : str
        Description of what is being measured.
    fn : Callable[[], T]
        Zero-argument callable to execute.

    Returns
    -------
    T
        Whatever fn returns.
    """
    if not config.DEV_MODE:
        return fn()

    start = time.perf_counter()
    result = fn()
    elapsed_ms = (time.perf_counter() - start) * 1000
    logger.debug(f"[Perf] {label}: {elapsed_ms:.2f}ms")
    return result


def measure_flatten(total_nodes: int, visible_nodes: int, flatten_ms: float) -> None:
    """Log tree flatten metrics (development mode only)."""
    if not config.DEV_MODE:
        return
    logger.debug(
        f"[Perf] Flattened tree: {visible_nodes}/{total_nodes} visible nodes in {flatten_ms:.2f}ms"
    )
