"""End-to-end tests for a panel and a view talking over message channels."""

import asyncio

import httpx
import pytest

from trace_viewer.api import TraceApiClient
from trace_viewer.cache import TraceCache
from trace_viewer.panel import PanelRegistry, PanelStatus
from trace_viewer.repository import TraceRepository
from trace_viewer.session import TraceSession

from conftest import ENDPOINT, TRACES_URL


async def settle(delay=0.05):
    """Let channel consumers and debounced saves run."""
    await asyncio.sleep(delay)


@pytest.fixture
def repository(nested_trace):
    repository = TraceRepository(TraceApiClient(ENDPOINT, retries=0), cache=TraceCache(10))
    repository.cache.set(nested_trace.trace_id, nested_trace)
    return repository


@pytest.fixture
def registry():
    return PanelRegistry()


def open_session(registry, repository):
    return TraceSession(
        "trace-1",
        registry,
        repository,
        debounce_delay=0.01,
        save_interval=60,
    )


class TestTraceSession:
    """Tests for TraceSession."""

    @pytest.mark.asyncio
    async def test_open_delivers_trace_to_view(self, registry, repository):
        session = open_session(registry, repository)

        view = session.attach_view()
        await settle()
        await session.open(selected_span_id="a1")
        await settle()

        assert session.panel.status == PanelStatus.READY
        assert view.trace.trace_id == "trace-1"
        assert view.selected_span_id == "a1"
        assert [row.span_id for row in view.get_visible_rows()] == ["root", "a", "a1", "b"]
        await session.close()

    @pytest.mark.asyncio
    async def test_view_changes_reach_panel(self, registry, repository):
        session = open_session(registry, repository)
        view = session.attach_view()
        await settle()
        await session.open()
        await settle()

        view.toggle_expand("root")
        view.select_span("b")
        await settle()

        assert session.panel.state.expanded_spans == ["root"]
        assert session.panel.state.selected_span_id == "b"
        await session.close()

    @pytest.mark.asyncio
    async def test_reload_preserves_state(self, registry, repository):
        session = open_session(registry, repository)
        first = session.attach_view()
        await settle()
        await session.open()
        await settle()
        first.toggle_expand("root")
        first.set_scroll_position(120)

        second = await session.reload_view()
        await settle()

        assert second is not first
        assert second.trace is not None
        assert list(second.expanded_spans) == ["root"]
        assert second.scroll_position == 120
        assert [row.span_id for row in second.get_visible_rows()] == ["root", "a", "b"]
        await session.close()

    @pytest.mark.asyncio
    async def test_close_disposes_panel(self, registry, repository):
        session = open_session(registry, repository)
        session.attach_view()
        await session.open()

        await session.close()

        assert session.panel.is_disposed
        assert registry.get("trace-1") is None
        assert session.view is None

    @pytest.mark.asyncio
    async def test_second_session_takes_over_open_panel(self, registry, repository):
        first = open_session(registry, repository)
        first.attach_view()
        await settle()
        await first.open()
        await settle()

        second = open_session(registry, repository)
        view = second.attach_view()
        await settle()
        await second.open(selected_span_id="b")
        await settle()

        assert second.panel is first.panel
        assert view.trace is not None
        assert view.selected_span_id == "b"
        assert [row.span_id for row in view.get_visible_rows()] == ["root", "a", "b"]

        await first.close()
        assert not second.panel.is_disposed
        assert registry.get("trace-1") is second.panel

        await second.close()
        assert second.panel.is_disposed
        assert registry.count == 0

    @pytest.mark.asyncio
    async def test_missing_trace_shows_error(self, respx_mock, registry, repository):
        respx_mock.get(f"{TRACES_URL}/missing").mock(
            return_value=httpx.Response(404, json={"message": "Trace not found"})
        )
        session = TraceSession("missing", registry, repository, debounce_delay=0.01, save_interval=60)
        view = session.attach_view()
        await settle()

        await session.open()
        await settle()

        assert session.panel.status == PanelStatus.ERROR
        assert view.error_message == "Trace not found"
        await session.close()
