"""Collapsible JSON viewer for span payloads."""

from typing import Any

import reflex as rx


def json_viewer_var(
    data: rx.Var[Any],
    title: str = "Data",
    max_height: str = "300px",
    open_by_default: bool = False,
) -> rx.Component:
    """Render a collapsible JSON viewer for an rx.Var.

    Data is serialized on the frontend at runtime, so this works inside
    rx.foreach loops and with computed vars.

    Parameters
    ----------
    data : rx.Var[Any]
        Span input, output, attributes, ... from state.
    title : str, optional
        Section title.
    max_height : str, optional
        The maximum height before scroll.
    open_by_default : bool, optional
        Whether the section starts expanded.
    """
    value = "json-data"
    return rx.accordion.root(
        rx.accordion.item(
            value=value,
            header=rx.text(title, weight="medium"),
            content=rx.box(
                rx.code_block(
                    code=data.to_string(),
                    language="json",
                    show_line_numbers=True,
                    wrap_long_lines=True,
                ),
                max_height=max_height,
                overflow_y="auto",
            ),
        ),
        type="multiple",
        default_value=[value] if open_by_default else [],
        variant="ghost",
        width="100%",
    )
