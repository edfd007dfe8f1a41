"""Trace detail page component."""

import reflex as rx

from ..state import ViewerState
from .json_viewer import json_viewer_var
from .search_bar import search_bar
from .span_tree import span_tree


def trace_header() -> rx.Component:
    """Render the trace header with its name and id."""
    return rx.box(
        rx.vstack(
            rx.heading(ViewerState.trace_title, size="6"),
            rx.hstack(
                rx.text("ID:", color="gray"),
                rx.code(ViewerState.selected_trace_id, font_size="0.85rem"),
                rx.button(
                    rx.icon("copy", size=14),
                    variant="ghost",
                    size="1",
                    on_click=rx.set_clipboard(ViewerState.selected_trace_id),
                ),
                spacing="2",
            ),
            spacing="2",
            align="start",
        ),
        padding="1.5rem",
        background="white",
        border_radius="12px",
        box_shadow="0 2px 8px rgba(0,0,0,0.08)",
        margin_bottom="1rem",
    )


def detail_row(label: str, value: rx.Var) -> rx.Component:
    return rx.hstack(
        rx.text(label, weight="medium", width="90px", color="gray"),
        rx.text(value, font_family="monospace", font_size="0.85rem"),
        spacing="2",
    )


def span_detail() -> rx.Component:
    """Details of the selected span."""
    span = ViewerState.selected_span
    return rx.cond(
        ViewerState.has_selected_span,
        rx.vstack(
            rx.heading(span["name"], size="4"),
            detail_row("Type", span["span_type"]),
            detail_row("Span ID", span["span_id"]),
            detail_row("Status", span["status"]),
            detail_row("Started", span["started_at_formatted"]),
            detail_row("Ended", span["ended_at_formatted"]),
            detail_row("Duration", span["duration_formatted"]),
            rx.cond(
                span["has_error"],
                json_viewer_var(span["error"], "Error", open_by_default=True),
                rx.fragment(),
            ),
            rx.cond(
                span["has_input"],
                json_viewer_var(span["input"], "Input", open_by_default=True),
                rx.fragment(),
            ),
            rx.cond(
                span["has_output"],
                json_viewer_var(span["output"], "Output", open_by_default=True),
                rx.fragment(),
            ),
            rx.cond(
                span["has_attributes"],
                json_viewer_var(span["attributes"], "Attributes"),
                rx.fragment(),
            ),
            rx.cond(
                span["has_metadata"],
                json_viewer_var(span["metadata"], "Metadata"),
                rx.fragment(),
            ),
            spacing="2",
            align="stretch",
            width="100%",
        ),
        rx.center(
            rx.text("Select a span to see its details", color="gray"),
            padding="2rem",
        ),
    )


def trace_detail() -> rx.Component:
    """Render the main trace detail component."""
    return rx.box(
        rx.cond(
            ViewerState.loading,
            rx.center(rx.spinner(size="3"), padding="4rem"),
            rx.cond(
                ViewerState.has_selected_spans,
                rx.vstack(
                    trace_header(),
                    rx.hstack(
                        rx.box(
                            search_bar(),
                            span_tree(),
                            padding="1rem",
                            background="white",
                            border_radius="12px",
                            flex="3",
                            min_width="0",
                        ),
                        rx.box(
                            span_detail(),
                            padding="1rem",
                            background="white",
                            border_radius="12px",
                            flex="2",
                            min_width="0",
                        ),
                        spacing="3",
                        align="start",
                        width="100%",
                    ),
                    spacing="0",
                    align="stretch",
                    width="100%",
                ),
                rx.center(
                    rx.vstack(
                        rx.icon("file-x", size=48, color="gray"),
                        rx.text("Trace not found", color="gray"),
                        rx.cond(
                            ViewerState.error_message != "",
                            rx.text(ViewerState.error_message, color="red", font_size="0.85rem"),
                            rx.fragment(),
                        ),
                        rx.hstack(
                            rx.button(
                                "Retry",
                                variant="soft",
                                on_click=ViewerState.load_current_trace,
                            ),
                            rx.button(
                                "Go back",
                                variant="soft",
                                color_scheme="gray",
                                on_click=rx.redirect("/"),
                            ),
                            spacing="2",
                        ),
                        spacing="3",
                        align="center",
                    ),
                    padding="4rem",
                ),
            ),
        ),
        padding="1rem",
    )
