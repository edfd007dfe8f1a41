"""Host-side controller for trace views.

One TraceViewerPanel exists per open trace. It outlives the view it talks to:
the view can be reloaded while the panel keeps the last state the view saved,
and hands it back when the new view reports `ready`.

Panel lifecycle::

    UNINITIALIZED -> LOADING -> READY <-> ERROR
           (any state) -> DISPOSED (terminal, nothing is sent afterwards)
"""

import logging
import secrets
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

from .messages import (
    ErrorMessage,
    LoadingMessage,
    LoadTraceMessage,
    LoadTracePayload,
    ReadyMessage,
    RestoreStateMessage,
    RetryMessage,
    SaveStateMessage,
    ShowWarningMessage,
    TextPayload,
    dump_message,
    parse_view_message,
)
from .models import Trace, WebviewState, default_webview_state
from .transport import MessageChannel

logger = logging.getLogger(__name__)

PostMessage = Callable[[Dict[str, Any]], Any]
TraceLoader = Callable[[], Awaitable[Optional[Trace]]]

DEFAULT_LOADING_MESSAGE = "Loading trace..."


class PanelStatus(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"
    DISPOSED = "disposed"


class TraceViewerPanel:
    """Host controller for one trace view.

    Parameters
    ----------
    trace_id : str
        The trace shown by this panel.
    post_message : PostMessage
        Delivers a wire message to the view (e.g. `MessageChannel.post`).
    registry : Optional[PanelRegistry]
        Registry to leave when disposed.
    on_warning : Optional[Callable[[str], None]]
        Called with the text of `showWarning` messages. Logs a warning by default.
    """

    VIEW_TYPE = "traceViewer"

    def __init__(
        self,
        trace_id: str,
        post_message: PostMessage,
        registry: Optional["PanelRegistry"] = None,
        on_warning: Optional[Callable[[str], None]] = None,
    ):
        self.trace_id = trace_id
        self.status = PanelStatus.UNINITIALIZED
        self.html = ""
        self._post_message = post_message
        self._registry = registry
        self._on_warning = on_warning
        self._state: WebviewState = default_webview_state()
        self._load_procedure: Optional[Callable[[], Awaitable[None]]] = None
        self._inbox: Optional[MessageChannel] = None

    @property
    def is_disposed(self) -> bool:
        return self.status == PanelStatus.DISPOSED

    @property
    def state(self) -> WebviewState:
        """Copy of the last state saved by the view."""
        return self._state.model_copy(deep=True)

    def initialize(self) -> None:
        """Render the placeholder page and tell the view a load is in progress."""
        self.html = self._render_html()
        self.send_loading(DEFAULT_LOADING_MESSAGE)

    def attach(self, post_message: PostMessage) -> None:
        """Send all further host messages through post_message.

        Used when the panel is reopened by a new owner; the previous owner
        receives nothing afterwards.
        """
        self._post_message = post_message
        logger.debug(f"Panel for trace {self.trace_id} attached to a new view")

    def is_attached_to(self, post_message: PostMessage) -> bool:
        return self._post_message == post_message

    # -------------------------------------------------------------------------
    # Host -> view
    # -------------------------------------------------------------------------

    def _post(self, message) -> bool:
        if self.is_disposed:
            return False
        self._post_message(dump_message(message))
        return True

    def send_trace(self, trace: Trace, selected_span_id: Optional[str] = None) -> bool:
        """Send trace data to the view.

        Parameters
        ----------
        trace : Trace
            The trace to display.
        selected_span_id : Optional[str]
            Span to auto-select and scroll to.
        """
        sent = self._post(
            LoadTraceMessage(
                payload=LoadTracePayload(trace=trace, selected_span_id=selected_span_id)
            )
        )
        if sent:
            self.status = PanelStatus.READY
        return sent

    def send_loading(self, message: str = DEFAULT_LOADING_MESSAGE) -> bool:
        sent = self._post(LoadingMessage(payload=TextPayload(message=message)))
        if sent:
            self.status = PanelStatus.LOADING
        return sent

    def send_error(self, message: str) -> bool:
        sent = self._post(ErrorMessage(payload=TextPayload(message=message)))
        if sent:
            self.status = PanelStatus.ERROR
        return sent

    def _restore_state(self) -> bool:
        return self._post(RestoreStateMessage(payload=self._state))

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    async def load(
        self,
        loader: TraceLoader,
        selected_span_id: Optional[str] = None,
    ) -> None:
        """Run a trace-load procedure and remember it for `retry`.

        Sends `loading`, awaits the loader, then sends either `loadTrace` or
        `error`. A loader returning None is reported as "Trace not found".
        """

        async def procedure() -> None:
            if not self.send_loading(DEFAULT_LOADING_MESSAGE):
                return
            try:
                trace = await loader()
                if trace is None:
                    raise LookupError("Trace not found")
            except Exception as e:
                message = getattr(e, "message", None) or str(e) or "Failed to load trace"
                logger.error(f"Error loading trace {self.trace_id}: {message}")
                self.send_error(message)
                return
            self.send_trace(trace, selected_span_id)

        self._load_procedure = procedure
        await procedure()

    async def retry(self) -> None:
        """Re-run the last load procedure, if any."""
        if self._load_procedure is None:
            logger.debug(f"Retry requested for {self.trace_id} but nothing was loaded yet")
            return
        await self._load_procedure()

    # -------------------------------------------------------------------------
    # View -> host
    # -------------------------------------------------------------------------

    async def handle_message(self, raw: Any) -> None:
        """Dispatch one message received from the view."""
        if self.is_disposed:
            return

        message = parse_view_message(raw)
        if message is None:
            return

        if isinstance(message, ReadyMessage):
            # the only point where state is pushed down to the view
            self._restore_state()
        elif isinstance(message, RetryMessage):
            await self.retry()
        elif isinstance(message, ShowWarningMessage):
            self._show_warning(message.payload.message)
        elif isinstance(message, SaveStateMessage):
            self._state = message.payload

    def _show_warning(self, text: str) -> None:
        if self._on_warning is not None:
            self._on_warning(text)
        else:
            logger.warning(f"[{self.trace_id}] {text}")

    async def serve(self, inbox: MessageChannel) -> None:
        """Consume view messages until the channel closes or the panel is disposed.

        Stops early once another inbox is being served for this panel.
        """
        self._inbox = inbox
        async for raw in inbox:
            if self.is_disposed or self._inbox is not inbox:
                break
            await self.handle_message(raw)

    # -------------------------------------------------------------------------
    # Teardown
    # -------------------------------------------------------------------------

    def dispose(self) -> None:
        if self.is_disposed:
            return
        self.status = PanelStatus.DISPOSED
        self._load_procedure = None
        if self._registry is not None:
            self._registry._remove(self)
        logger.info(f"Disposed panel for trace {self.trace_id}")

    def _render_html(self) -> str:
        """Placeholder page shown until the view script takes over."""
        nonce = secrets.token_urlsafe(24)
        return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <meta http-equiv="Content-Security-Policy" content="default-src 'none'; script-src 'nonce-{nonce}';">
  <title>Trace: {self.trace_id}</title>
</head>
<body>
  <div id="app">
    <div class="loading"><p>{DEFAULT_LOADING_MESSAGE}</p></div>
  </div>
  <script nonce="{nonce}" src="main.js"></script>
</body>
</html>"""


class PanelRegistry:
    """Open panels, at most one per trace id.

    Owned by whatever manages panel lifetime and passed explicitly to code that
    needs it.
    """

    def __init__(self):
        self._panels: Dict[str, TraceViewerPanel] = {}

    def create_or_get(
        self,
        trace_id: str,
        post_message: PostMessage,
        on_warning: Optional[Callable[[str], None]] = None,
    ) -> TraceViewerPanel:
        """Return the open panel for trace_id, creating and initializing one if needed.

        A reused panel is attached to post_message.
        """
        existing = self._panels.get(trace_id)
        if existing is not None and not existing.is_disposed:
            existing.attach(post_message)
            return existing

        panel = TraceViewerPanel(trace_id, post_message, registry=self, on_warning=on_warning)
        self._panels[trace_id] = panel
        panel.initialize()
        logger.info(f"Opened panel for trace {trace_id}")
        return panel

    def get(self, trace_id: str) -> Optional[TraceViewerPanel]:
        panel = self._panels.get(trace_id)
        if panel is None or panel.is_disposed:
            return None
        return panel

    def dispose_all(self) -> None:
        panels: List[TraceViewerPanel] = list(self._panels.values())
        for panel in panels:
            panel.dispose()
        self._panels.clear()

    @property
    def count(self) -> int:
        return len(self._panels)

    def __len__(self) -> int:
        return len(self._panels)

    def _remove(self, panel: TraceViewerPanel) -> None:
        if self._panels.get(panel.trace_id) is panel:
            del self._panels[panel.trace_id]
