"""Display formatting for traces and spans.

Pure functions used by the Reflex state to pre-compute strings, since
components cannot run Python on rx.Var objects.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .models import parse_timestamp

# Visual styling for span types.
#
# Each span type maps to a dict containing:
#     - color: Border and accent color (hex)
#     - icon: Lucide icon name for the span type
#     - bg: Background color (hex)
SPAN_STYLES: Dict[str, Dict[str, str]] = {
    "agent_run": {"color": "#8B5CF6", "icon": "bot", "bg": "#F5F3FF"},
    "llm_call": {"color": "#3B82F6", "icon": "message-square", "bg": "#EFF6FF"},
    "model_generation": {"color": "#3B82F6", "icon": "message-square", "bg": "#EFF6FF"},
    "tool_streaming": {"color": "#10B981", "icon": "wrench", "bg": "#ECFDF5"},
    "tool_call": {"color": "#10B981", "icon": "wrench", "bg": "#ECFDF5"},
    "processor_run": {"color": "#F59E0B", "icon": "cpu", "bg": "#FFFBEB"},
    "workflow_run": {"color": "#06B6D4", "icon": "workflow", "bg": "#ECFEFF"},
    "custom": {"color": "#6B7280", "icon": "circle", "bg": "#F9FAFB"},
}

DEFAULT_SPAN_STYLE = SPAN_STYLES["custom"]

# Default placeholder for missing values
PLACEHOLDER = "—"


def get_span_style(span_type: Optional[str]) -> Dict[str, str]:
    return SPAN_STYLES.get(span_type or "", DEFAULT_SPAN_STYLE)


def get_span_type_icon(span_type: Optional[str]) -> str:
    """Lucide icon name for a span type."""
    return get_span_style(span_type)["icon"]


def _to_datetime(value: Any) -> Optional[datetime]:
    parsed = parse_timestamp(value)
    if not isinstance(parsed, datetime):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def duration_ms(started_at: Any, ended_at: Any) -> Optional[float]:
    """Elapsed milliseconds between two timestamps, or None if either is invalid."""
    start = _to_datetime(started_at)
    end = _to_datetime(ended_at)
    if start is None or end is None:
        return None
    return (end - start).total_seconds() * 1000


def format_duration(started_at: Any, ended_at: Any) -> str:
    """Format a span duration for display.

    Returns
    -------
    str
        "running" when the span has not ended, "450ms" under a second,
        "2.35s" under a minute, "1m 5s" otherwise, or a placeholder if the
        timestamps are unusable.
    """
    if ended_at is None and _to_datetime(started_at) is not None:
        return "running"

    ms = duration_ms(started_at, ended_at)
    if ms is None or ms < 0:
        return PLACEHOLDER
    if ms < 1000:
        return f"{int(ms)}ms"
    seconds = ms / 1000
    if seconds < 60:
        return f"{seconds:.2f}s"
    minutes = int(seconds // 60)
    return f"{minutes}m {int(seconds % 60)}s"


def truncate_string(text: str, max_length: int = 40) -> str:
    """Truncate text to max_length characters, ending with an ellipsis if cut."""
    if len(text) <= max_length:
        return text
    return text[: max_length - 1] + "…"


def format_absolute_time(value: Any) -> str:
    """Format as e.g. "Feb 9, 2:30 PM"; unparseable input is returned as a string."""
    dt = _to_datetime(value)
    if dt is None:
        return str(value) if value else PLACEHOLDER
    hour = dt.hour % 12 or 12
    return f"{dt.strftime('%b')} {dt.day}, {hour}:{dt.minute:02d} {'AM' if dt.hour < 12 else 'PM'}"


def format_relative_time(value: Any, now: Optional[datetime] = None) -> str:
    """Format as "just now", "5 minutes ago", "2 hours ago", or absolute after a day."""
    dt = _to_datetime(value)
    if dt is None:
        return str(value) if value else PLACEHOLDER

    now = now or datetime.now(timezone.utc)
    minutes = int((now - dt).total_seconds() // 60)
    hours = minutes // 60

    if minutes < 1:
        return "just now"
    if minutes < 60:
        return f"{minutes} minute{'s' if minutes > 1 else ''} ago"
    if hours < 24:
        return f"{hours} hour{'s' if hours > 1 else ''} ago"
    return format_absolute_time(dt)


def format_trace_timestamp(value: Any, now: Optional[datetime] = None) -> str:
    """Relative time for traces from today, absolute time otherwise."""
    dt = _to_datetime(value)
    if dt is None:
        return str(value) if value else PLACEHOLDER

    now = now or datetime.now(timezone.utc)
    if dt.date() == now.astimezone(dt.tzinfo).date():
        return format_relative_time(dt, now)
    return format_absolute_time(dt)


def format_iso_timestamp(value: Any) -> str:
    """Full ISO 8601 timestamp for tooltips."""
    dt = _to_datetime(value)
    if dt is None:
        return str(value) if value else PLACEHOLDER
    return dt.isoformat()
