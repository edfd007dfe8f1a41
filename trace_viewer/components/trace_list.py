"""Trace list table component"""

from typing import Any, Dict

import reflex as rx

from ..state import ViewerState


def status_icon(status: rx.Var[str]) -> rx.Component:
    return rx.match(
        status,
        ("success", rx.icon("check", size=14, color="green")),
        ("error", rx.icon("circle-alert", size=14, color="red")),
        ("running", rx.icon("loader", size=14, color="gray")),
        ("pending", rx.icon("loader", size=14, color="gray")),
        rx.icon("activity", size=14, color="gray"),
    )


def trace_row(trace: rx.Var[Dict[str, Any]]) -> rx.Component:
    """Single trace row in the list

    Parameters
    ----------
    trace : rx.Var[Dict[str, Any]]
        Summary dict from ViewerState.traces.
    """
    return rx.table.row(
        rx.table.cell(
            rx.hstack(
                status_icon(trace["status"]),
                rx.link(
                    trace["name"],
                    href=trace["detail_url"],
                    font_weight="500",
                    _hover={"text_decoration": "underline"},
                ),
                spacing="2",
                align="center",
            )
        ),
        rx.table.cell(
            rx.code(trace["short_id"], font_size="0.8rem"),
        ),
        rx.table.cell(
            trace["span_count_display"],
            text_align="center",
        ),
        rx.table.cell(
            rx.tooltip(
                rx.text(trace["timestamp_display"], color="gray"),
                content=trace["timestamp_iso"],
            ),
        ),
        _hover={"background": "#f8f9fa"},
        cursor="pointer",
    )


def trace_list() -> rx.Component:
    """Main trace list component.

    Either a spinner while loading, the table with a "Load more" button while
    the server has more pages, or an empty-state message.
    """
    return rx.box(
        rx.hstack(
            rx.heading("Recent Traces", size="5"),
            rx.text(ViewerState.trace_count_text, color="gray", font_size="0.85rem"),
            rx.spacer(),
            rx.button(
                rx.icon("refresh-cw", size=16),
                "Refresh",
                on_click=ViewerState.refresh,
                loading=ViewerState.loading,
            ),
            padding="1rem",
            align="center",
        ),
        rx.cond(
            ViewerState.error_message != "",
            rx.callout(
                ViewerState.error_message,
                icon="triangle-alert",
                color_scheme="red",
                margin="0 1rem 1rem 1rem",
            ),
            rx.fragment(),
        ),
        rx.cond(
            ViewerState.loading,
            rx.center(rx.spinner(size="3"), padding="2rem"),
            rx.cond(
                ViewerState.has_traces,
                rx.box(
                    rx.table.root(
                        rx.table.header(
                            rx.table.row(
                                rx.table.column_header_cell("Name"),
                                rx.table.column_header_cell("Trace"),
                                rx.table.column_header_cell("Spans"),
                                rx.table.column_header_cell("When"),
                            ),
                        ),
                        rx.table.body(
                            rx.foreach(ViewerState.traces, trace_row),
                        ),
                    ),
                    rx.cond(
                        ViewerState.has_more,
                        rx.center(
                            rx.button(
                                "Load more",
                                variant="soft",
                                on_click=ViewerState.load_more,
                                loading=ViewerState.loading_more,
                            ),
                            padding="1rem",
                        ),
                        rx.fragment(),
                    ),
                ),
                rx.center(
                    rx.vstack(
                        rx.icon("inbox", size=48, color="gray"),
                        rx.text("No traces yet", color="gray"),
                        rx.text(
                            "Run an agent against the trace server to see traces here",
                            font_size="0.85rem",
                            color="gray",
                        ),
                        spacing="2",
                        align="center",
                    ),
                    padding="3rem",
                ),
            ),
        ),
        background="white",
        border_radius="12px",
        box_shadow="0 2px 8px rgba(0, 0, 0, 0.1)",
        margin="1rem",
    )
