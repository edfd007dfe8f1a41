"""View-side policy for saving view state to the host.

The view may be torn down at any moment (reload, tab closed), so it pushes its
state upward whenever it might be lost:

    - immediately when it becomes hidden,
    - immediately before unload,
    - on a periodic timer (every 5s), debounced by 500ms,
    - on significant UI changes (expand, select, scroll), debounced by 500ms.

Debounced triggers within one window collapse into a single send carrying the
state snapshot taken when the window elapses.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, Optional

from . import config
from .messages import SaveStateMessage, dump_message
from .models import WebviewState

logger = logging.getLogger(__name__)


class StateSynchronizer:
    """Sends `saveState` messages according to the save policy.

    Parameters
    ----------
    get_state : Callable[[], WebviewState]
        Returns the view's current state; called at send time.
    send : Callable[[Dict[str, Any]], Any]
        Posts a wire message to the host.
    debounce_delay : float
        Quiet period in seconds before a debounced save is sent.
    save_interval : float
        Period in seconds of the background save timer.
    """

    def __init__(
        self,
        get_state: Callable[[], WebviewState],
        send: Callable[[Dict[str, Any]], Any],
        debounce_delay: float = config.SAVE_DEBOUNCE_SECONDS,
        save_interval: float = config.SAVE_INTERVAL_SECONDS,
    ):
        self._get_state = get_state
        self._send = send
        self.debounce_delay = debounce_delay
        self.save_interval = save_interval
        self._pending: Optional[asyncio.TimerHandle] = None
        self._periodic_task: Optional[asyncio.Task] = None
        self._stopped = False

    @property
    def has_pending_save(self) -> bool:
        return self._pending is not None

    def start(self) -> None:
        """Start the periodic save timer. Must be called from a running event loop."""
        if self._stopped or self._periodic_task is not None:
            return
        self._periodic_task = asyncio.get_running_loop().create_task(self._periodic_save())

    async def _periodic_save(self) -> None:
        while not self._stopped:
            await asyncio.sleep(self.save_interval)
            self.save_debounced()

    def save_now(self) -> None:
        """Send the current state immediately, cancelling any pending debounced save."""
        self._cancel_pending()
        if self._stopped:
            return
        message = SaveStateMessage(payload=self._get_state())
        self._send(dump_message(message))

    def save_debounced(self) -> None:
        """Schedule a save after the debounce delay, restarting the window."""
        if self._stopped:
            return
        self._cancel_pending()
        loop = asyncio.get_running_loop()
        self._pending = loop.call_later(self.debounce_delay, self._flush)

    def trigger_state_save(self) -> None:
        """Signal a significant UI change (debounced)."""
        self.save_debounced()

    def on_visibility_change(self, hidden: bool) -> None:
        if hidden:
            self.save_now()

    def on_before_unload(self) -> None:
        self.save_now()

    def stop(self) -> None:
        """Cancel all timers; nothing is sent afterwards."""
        self._stopped = True
        self._cancel_pending()
        if self._periodic_task is not None:
            self._periodic_task.cancel()
            self._periodic_task = None

    def _flush(self) -> None:
        self._pending = None
        self.save_now()

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
