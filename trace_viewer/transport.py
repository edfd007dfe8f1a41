"""In-memory message channel between the host and a view.

Messages are JSON-encoded when posted and decoded when received, so the two
sides never share objects, only data. Delivery is FIFO and at most once; a
message posted after `close()` is dropped.
"""

import asyncio
import json
import logging
from typing import Any, AsyncIterator, Dict, Optional

logger = logging.getLogger(__name__)

_CLOSED = None


class MessageChannel:
    """One-directional, ordered, asynchronous message queue.

    Parameters
    ----------
    name : str
        Label used in log messages (e.g. "host->view").
    """

    def __init__(self, name: str = "channel"):
        self.name = name
        self._queue: "asyncio.Queue[Optional[str]]" = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def post(self, message: Dict[str, Any]) -> bool:
        """Queue a message for delivery.

        Returns
        -------
        bool
            False if the channel is closed and the message was dropped.
        """
        if self._closed:
            logger.debug(f"Dropped {message.get('type')!r} message on closed {self.name} channel")
            return False
        self._queue.put_nowait(json.dumps(message, default=str))
        return True

    async def receive(self) -> Optional[Dict[str, Any]]:
        """Wait for the next message; None once the channel is closed and drained."""
        encoded = await self._queue.get()
        if encoded is _CLOSED:
            # keep the marker for any other pending receiver
            self._queue.put_nowait(_CLOSED)
            return None
        return json.loads(encoded)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSED)

    async def __aiter__(self) -> AsyncIterator[Dict[str, Any]]:
        while True:
            message = await self.receive()
            if message is None:
                return
            yield message
