"""Tests for the view state save policy."""

import asyncio

import pytest

from trace_viewer.models import WebviewState
from trace_viewer.state_sync import StateSynchronizer


class Recorder:
    """Collects sent messages and serves a mutable state."""

    def __init__(self):
        self.sent = []
        self.state = WebviewState()

    def send(self, message):
        self.sent.append(message)

    def get_state(self):
        return self.state


@pytest.fixture
def recorder():
    return Recorder()


def synchronizer(recorder, debounce=0.05, interval=10.0):
    return StateSynchronizer(
        recorder.get_state,
        recorder.send,
        debounce_delay=debounce,
        save_interval=interval,
    )


class TestDebouncedSave:
    """Tests for debounced saves."""

    @pytest.mark.asyncio
    async def test_burst_collapses_into_one_save(self, recorder):
        sync = synchronizer(recorder)

        for _ in range(3):
            sync.trigger_state_save()
            await asyncio.sleep(0.01)

        assert recorder.sent == []
        await asyncio.sleep(0.1)

        assert len(recorder.sent) == 1
        assert recorder.sent[0]["type"] == "saveState"
        sync.stop()

    @pytest.mark.asyncio
    async def test_sends_state_at_flush_time(self, recorder):
        sync = synchronizer(recorder)

        sync.trigger_state_save()
        recorder.state = WebviewState(expanded_spans=["late"], scroll_position=42)
        await asyncio.sleep(0.1)

        assert recorder.sent[0]["payload"] == {
            "expandedSpans": ["late"],
            "scrollPosition": 42,
            "selectedSpanId": None,
        }
        sync.stop()

    @pytest.mark.asyncio
    async def test_pending_flag(self, recorder):
        sync = synchronizer(recorder)

        sync.save_debounced()
        assert sync.has_pending_save

        await asyncio.sleep(0.1)
        assert not sync.has_pending_save
        sync.stop()


class TestImmediateSave:
    """Tests for saves that bypass the debounce."""

    @pytest.mark.asyncio
    async def test_hidden_saves_immediately(self, recorder):
        sync = synchronizer(recorder)

        sync.on_visibility_change(hidden=True)

        assert len(recorder.sent) == 1
        sync.stop()

    @pytest.mark.asyncio
    async def test_visible_does_not_save(self, recorder):
        sync = synchronizer(recorder)

        sync.on_visibility_change(hidden=False)

        assert recorder.sent == []
        sync.stop()

    @pytest.mark.asyncio
    async def test_save_now_cancels_pending_save(self, recorder):
        sync = synchronizer(recorder)

        sync.trigger_state_save()
        sync.on_before_unload()
        await asyncio.sleep(0.1)

        assert len(recorder.sent) == 1
        sync.stop()


class TestLifecycle:
    """Tests for the periodic timer and stop."""

    @pytest.mark.asyncio
    async def test_periodic_save(self, recorder):
        sync = synchronizer(recorder, debounce=0.01, interval=0.03)

        sync.start()
        await asyncio.sleep(0.15)
        sync.stop()

        assert len(recorder.sent) >= 2

    @pytest.mark.asyncio
    async def test_nothing_sent_after_stop(self, recorder):
        sync = synchronizer(recorder, debounce=0.01, interval=0.02)
        sync.start()
        sync.trigger_state_save()

        sync.stop()
        sync.save_now()
        sync.trigger_state_save()
        await asyncio.sleep(0.1)

        assert recorder.sent == []
