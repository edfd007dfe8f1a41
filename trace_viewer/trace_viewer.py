"""Main trace viewer application."""

import logging

import reflex as rx

from . import config
from .state import ViewerState
from .components import trace_detail, trace_list

logging.basicConfig(
    level=logging.DEBUG if config.DEV_MODE else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


def navbar(show_back: bool = False) -> rx.Component:
    """Navigation bar.

    Parameters
    ----------
    show_back : bool
        Whether to show the back link instead of title.
    """
    return rx.hstack(
        rx.cond(
            show_back,
            rx.link(
                rx.hstack(
                    rx.icon("arrow_left", size=16),
                    rx.text("Back"),
                    spacing="1",
                    align="center",
                ),
                href="/",
                on_click=ViewerState.clear_selection,
            ),
            rx.hstack(
                rx.icon("list-tree", size=20),
                rx.text("Trace Viewer", font_weight="bold"),
                spacing="2",
                align="center",
            ),
        ),
        rx.spacer(),
        # trace server connection badge
        rx.badge(
            ViewerState.health_status_text,
            color_scheme=ViewerState.health_status_color,
        ),
        padding="1rem",
        border_bottom="1px solid #eee",
        width="100%",
        align="center",
    )


def index() -> rx.Component:
    """Home page: trace list."""
    return rx.box(
        navbar(),
        trace_list.trace_list(),
        on_mount=ViewerState.refresh,
        min_height="100vh",
        background="#f5f5f5",
    )


def trace_page() -> rx.Component:
    """Trace detail page."""
    return rx.box(
        navbar(show_back=True),
        trace_detail.trace_detail(),
        min_height="100vh",
        background="#f5f5f5",
    )


app = rx.App(
    theme=rx.theme(
        accent_color="teal",
        radius="medium",
    ),
)

app.add_page(index, route="/", title="Trace Viewer")
app.add_page(
    trace_page,
    route="/trace/[trace_id]",
    title="Trace",
    on_load=ViewerState.load_current_trace,
)
