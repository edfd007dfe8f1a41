"""Search input with match navigation."""

import reflex as rx

from ..state import ViewerState


def search_bar() -> rx.Component:
    """Search field, "N of M" counter and previous/next/clear buttons."""
    return rx.hstack(
        rx.input(
            rx.input.slot(rx.icon("search", size=14)),
            placeholder="Search spans (name, type, input, output, attributes)",
            value=ViewerState.search_query,
            on_change=ViewerState.set_search_query.debounce(300),
            size="2",
            width="100%",
        ),
        rx.text(
            ViewerState.search_position_text,
            font_size="0.85rem",
            color="gray",
            white_space="nowrap",
        ),
        rx.icon_button(
            rx.icon("chevron-up", size=14),
            variant="ghost",
            size="1",
            disabled=~ViewerState.has_search_results,
            on_click=ViewerState.prev_match,
        ),
        rx.icon_button(
            rx.icon("chevron-down", size=14),
            variant="ghost",
            size="1",
            disabled=~ViewerState.has_search_results,
            on_click=ViewerState.next_match,
        ),
        rx.icon_button(
            rx.icon("x", size=14),
            variant="ghost",
            size="1",
            on_click=ViewerState.clear_search,
        ),
        spacing="2",
        align="center",
        width="100%",
        margin_bottom="0.75rem",
    )
