"""Span tree: the visible rows of the open trace.

Rows come pre-flattened from ViewerState.visible_rows, so only spans whose
ancestors are all expanded are rendered. Indentation, styling, highlight
segments and hidden-match counts are computed in state since rx.Var objects
do not support Python operations at render time.
"""

from typing import Any, Dict

import reflex as rx

from ..state import SPAN_LIST_ID, ViewerState


def span_type_icon(span_type: rx.Var[str]) -> rx.Component:
    """Render the icon for a span type using rx.match.

    rx.icon() needs a static name at compile time, so the mapping is spelled
    out here rather than read from the row's style_icon.
    """
    return rx.match(
        span_type,
        ("agent_run", rx.icon("bot", size=14)),
        ("llm_call", rx.icon("message-square", size=14)),
        ("model_generation", rx.icon("message-square", size=14)),
        ("tool_streaming", rx.icon("wrench", size=14)),
        ("tool_call", rx.icon("wrench", size=14)),
        ("processor_run", rx.icon("cpu", size=14)),
        ("workflow_run", rx.icon("workflow", size=14)),
        rx.icon("circle", size=14),
    )


def highlighted_name(row: rx.Var[Dict[str, Any]]) -> rx.Component:
    """Span name with search matches marked."""
    return rx.hstack(
        rx.foreach(
            row["name_segments"],
            lambda segment: rx.cond(
                segment["match"],
                rx.text(segment["text"], as_="span", background="#FDE68A", weight="medium"),
                rx.text(segment["text"], as_="span", weight="medium"),
            ),
        ),
        spacing="0",
        color=rx.cond(row["has_error"], "red", "inherit"),
    )


def chevron(row: rx.Var[Dict[str, Any]]) -> rx.Component:
    return rx.cond(
        row["has_children"],
        rx.box(
            rx.cond(
                row["is_expanded"],
                rx.icon("chevron-down", size=14),
                rx.icon("chevron-right", size=14),
            ),
            on_click=ViewerState.toggle_span(row["span_id"]).stop_propagation,
            cursor="pointer",
            width="1rem",
        ),
        rx.box(width="1rem"),
    )


def span_row(row: rx.Var[Dict[str, Any]]) -> rx.Component:
    """Single visible span row.

    Parameters
    ----------
    row : rx.Var[Dict[str, Any]]
        Row dict from ViewerState.visible_rows.
    """
    return rx.hstack(
        chevron(row),
        rx.badge(
            rx.hstack(
                span_type_icon(row["span_type"]),
                rx.text(row["span_type"]),
                spacing="1",
                align="center",
            ),
            color_scheme="gray",
            variant="soft",
        ),
        highlighted_name(row),
        rx.cond(
            row["has_hidden_matches"],
            rx.badge(
                row["hidden_matches"].to_string() + " hidden",
                color_scheme="amber",
                variant="soft",
            ),
            rx.fragment(),
        ),
        rx.spacer(),
        rx.text(
            row["duration_formatted"],
            font_family="monospace",
            font_size="0.85rem",
            color="gray",
        ),
        width="100%",
        padding="0.4rem 0.75rem",
        margin_left=row["margin_left_style"],
        background=rx.cond(row["is_selected"], "#E0F2FE", row["style_bg"]),
        border_left=row["border_left_style"],
        outline=rx.cond(row["is_current_match"], "2px solid #F59E0B", "none"),
        border_radius="4px",
        cursor="pointer",
        _hover={"opacity": "0.9"},
        align="center",
        on_click=ViewerState.select_span(row["span_id"]),
    )


def span_tree() -> rx.Component:
    """Span tree with expand/collapse controls."""
    return rx.box(
        rx.hstack(
            rx.heading("Spans", size="4"),
            rx.badge(ViewerState.trace_span_count, variant="soft"),
            rx.spacer(),
            rx.hstack(
                rx.button(
                    rx.icon("chevrons-down", size=16),
                    rx.text("Expand All"),
                    variant="ghost",
                    size="1",
                    on_click=ViewerState.expand_all_spans,
                ),
                rx.button(
                    rx.icon("chevrons-up", size=16),
                    rx.text("Collapse All"),
                    variant="ghost",
                    size="1",
                    on_click=ViewerState.collapse_all_spans,
                ),
                spacing="2",
            ),
            width="100%",
            margin_bottom="0.75rem",
            align="center",
        ),
        rx.cond(
            ViewerState.has_selected_spans,
            rx.vstack(
                rx.foreach(ViewerState.visible_rows, span_row),
                spacing="1",
                width="100%",
                max_height="70vh",
                overflow_y="auto",
                id=SPAN_LIST_ID,
                on_scroll=ViewerState.capture_scroll_position.debounce(250),
            ),
            rx.center(
                rx.vstack(
                    rx.icon("inbox", size=48, color="gray"),
                    rx.text("No spans found", color="gray"),
                    spacing="2",
                    align="center",
                ),
                padding="2rem",
            ),
        ),
    )
