"""Message types for host <-> view communication.

Each direction is a tagged union discriminated by the `type` field:

    host -> view: loadTrace, loading, error, restoreState
    view -> host: ready, retry, showWarning, saveState

Parsing never raises: unknown tags and malformed payloads yield None, which
receivers treat as a no-op.
"""

import logging
from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel

from .models import Trace, WebviewState

logger = logging.getLogger(__name__)


class _Message(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TextPayload(_Message):
    message: str


class LoadTracePayload(_Message):
    trace: Trace
    selected_span_id: Optional[str] = None


# -----------------------------------------------------------------------------
# Host -> view
# -----------------------------------------------------------------------------

class LoadTraceMessage(_Message):
    type: Literal["loadTrace"] = "loadTrace"
    payload: LoadTracePayload


class LoadingMessage(_Message):
    type: Literal["loading"] = "loading"
    payload: TextPayload


class ErrorMessage(_Message):
    type: Literal["error"] = "error"
    payload: TextPayload


class RestoreStateMessage(_Message):
    type: Literal["restoreState"] = "restoreState"
    payload: WebviewState


HostMessage = Annotated[
    Union[LoadTraceMessage, LoadingMessage, ErrorMessage, RestoreStateMessage],
    Field(discriminator="type"),
]


# -----------------------------------------------------------------------------
# View -> host
# -----------------------------------------------------------------------------

class ReadyMessage(_Message):
    type: Literal["ready"] = "ready"


class RetryMessage(_Message):
    type: Literal["retry"] = "retry"


class ShowWarningMessage(_Message):
    type: Literal["showWarning"] = "showWarning"
    payload: TextPayload


class SaveStateMessage(_Message):
    type: Literal["saveState"] = "saveState"
    payload: WebviewState


ViewMessage = Annotated[
    Union[ReadyMessage, RetryMessage, ShowWarningMessage, SaveStateMessage],
    Field(discriminator="type"),
]


HOST_MESSAGE_TYPES = frozenset({"loadTrace", "loading", "error", "restoreState"})
VIEW_MESSAGE_TYPES = frozenset({"ready", "retry", "showWarning", "saveState"})

_host_adapter: TypeAdapter = TypeAdapter(HostMessage)
_view_adapter: TypeAdapter = TypeAdapter(ViewMessage)


def _parse(raw: Any, adapter: TypeAdapter, known_types: frozenset, direction: str):
    if not isinstance(raw, dict):
        logger.debug(f"Ignoring non-object {direction} message: {type(raw).__name__}")
        return None

    message_type = raw.get("type")
    if message_type not in known_types:
        logger.debug(f"Ignoring unknown {direction} message type: {message_type!r}")
        return None

    try:
        return adapter.validate_python(raw)
    except ValidationError as e:
        logger.warning(f"Ignoring malformed {direction} message {message_type!r}: {e.error_count()} error(s)")
        return None


def parse_host_message(raw: Any) -> Optional[Union[LoadTraceMessage, LoadingMessage, ErrorMessage, RestoreStateMessage]]:
    """Parse a message sent by the host to a view, or None if unusable."""
    return _parse(raw, _host_adapter, HOST_MESSAGE_TYPES, "host")


def parse_view_message(raw: Any) -> Optional[Union[ReadyMessage, RetryMessage, ShowWarningMessage, SaveStateMessage]]:
    """Parse a message sent by a view to the host, or None if unusable."""
    return _parse(raw, _view_adapter, VIEW_MESSAGE_TYPES, "view")


def dump_message(message: BaseModel) -> Dict[str, Any]:
    """Serialize a message to its camelCase wire dict."""
    return message.model_dump(mode="json", by_alias=True)
