"""Wires a host panel and a trace view together for one open trace."""

import asyncio
import logging
from typing import Callable, Optional

from . import config
from .panel import PanelRegistry, TraceViewerPanel
from .repository import TraceRepository
from .transport import MessageChannel
from .view import TraceView

logger = logging.getLogger(__name__)


class TraceSession:
    """An open trace: its panel, its current view and the channels between them.

    The panel survives view reloads; each reload gets a fresh TraceView which
    asks the panel for the last saved state when it reports ready. Opening a
    session for a trace that already has a panel takes that panel over; the
    older session then no longer receives host messages and leaves the panel
    open when closed.

    Parameters
    ----------
    trace_id : str
        Trace to open.
    registry : PanelRegistry
        Registry that owns the panel.
    repository : TraceRepository
        Source of full traces.
    on_warning : Optional[Callable[[str], None]]
        Receives warnings raised by the view.
    """

    def __init__(
        self,
        trace_id: str,
        registry: PanelRegistry,
        repository: TraceRepository,
        on_warning: Optional[Callable[[str], None]] = None,
        debounce_delay: float = config.SAVE_DEBOUNCE_SECONDS,
        save_interval: float = config.SAVE_INTERVAL_SECONDS,
    ):
        self.trace_id = trace_id
        self.registry = registry
        self.repository = repository
        self.debounce_delay = debounce_delay
        self.save_interval = save_interval
        self.to_view = MessageChannel(f"host->view:{trace_id}")
        self.to_host = MessageChannel(f"view->host:{trace_id}")
        self.panel: TraceViewerPanel = registry.create_or_get(
            trace_id, self._post_to_view, on_warning=on_warning
        )
        self.view: Optional[TraceView] = None
        self._host_task: Optional[asyncio.Task] = None
        self._view_task: Optional[asyncio.Task] = None

    def _post_to_view(self, message) -> None:
        self.to_view.post(message)

    def _ensure_serving(self) -> None:
        if self._host_task is None:
            self._host_task = asyncio.create_task(self.panel.serve(self.to_host))

    async def open(self, selected_span_id: Optional[str] = None) -> TraceViewerPanel:
        """Start serving view messages and load the trace into the panel."""
        self._ensure_serving()

        async def loader():
            return await self.repository.get_full_trace(self.trace_id)

        await self.panel.load(loader, selected_span_id)
        return self.panel

    def attach_view(self) -> TraceView:
        """Create a view wired to the channels and announce it as ready."""
        self._ensure_serving()
        view = TraceView(
            self.to_host.post,
            debounce_delay=self.debounce_delay,
            save_interval=self.save_interval,
        )
        self.view = view
        self._view_task = asyncio.create_task(view.serve(self.to_view))
        view.ready()
        return view

    async def reload_view(self) -> TraceView:
        """Tear down the current view (saving its state) and attach a new one.

        The new view gets the trace again through the panel's last load
        procedure, and its saved state through the `ready` handshake.
        """
        await self._detach_view()
        view = self.attach_view()
        await self.panel.retry()
        return view

    async def _detach_view(self) -> None:
        if self.view is not None:
            self.view.close()
            self.view = None
        if self._view_task is not None:
            # the old view stops consuming; a fresh view channel keeps messages separate
            self._view_task.cancel()
            await asyncio.gather(self._view_task, return_exceptions=True)
            self._view_task = None
        self.to_view.close()
        self.to_view = MessageChannel(f"host->view:{self.trace_id}")

    async def close(self) -> None:
        """Close the view and stop all tasks; the panel is disposed unless a newer session owns it."""
        await self._detach_view()
        self.to_view.close()
        self.to_host.close()
        if self._host_task is not None:
            await asyncio.gather(self._host_task, return_exceptions=True)
            self._host_task = None
        if self.panel.is_attached_to(self._post_to_view):
            self.panel.dispose()
        else:
            logger.debug(f"Panel for trace {self.trace_id} left open for its newer session")
        logger.info(f"Closed trace session {self.trace_id}")
