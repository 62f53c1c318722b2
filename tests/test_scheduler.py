"""Tests for the auto-refresh timer wrapper."""

import pytest

from dokploy_tui.scheduler import RefreshScheduler


class FakeTimer:
    def __init__(self, interval, callback):
        self.interval = interval
        self.callback = callback
        self.stopped = False

    def stop(self):
        self.stopped = True


class FakeLoop:
    def __init__(self):
        self.timers = []

    def set_interval(self, interval, callback, name=None):
        timer = FakeTimer(interval, callback)
        self.timers.append(timer)
        return timer

    @property
    def live(self):
        return [t for t in self.timers if not t.stopped]


class TestRefreshScheduler:
    def test_tick_uses_latest_callback(self):
        loop = FakeLoop()
        calls = []
        scheduler = RefreshScheduler(loop.set_interval, lambda: calls.append("old"))
        scheduler.start()

        scheduler.callback = lambda: calls.append("new")
        loop.live[0].callback()
        assert calls == ["new"]

    def test_disabled_never_arms(self):
        loop = FakeLoop()
        scheduler = RefreshScheduler(loop.set_interval, enabled=False)
        scheduler.start()
        assert loop.timers == []
        assert not scheduler.running

    def test_toggle(self):
        loop = FakeLoop()
        scheduler = RefreshScheduler(loop.set_interval, interval=5)
        scheduler.start()

        assert scheduler.toggle() is False
        assert loop.live == []

        assert scheduler.toggle() is True
        assert len(loop.live) == 1
        assert loop.live[0].interval == 5

    def test_interval_change_rearms(self):
        loop = FakeLoop()
        scheduler = RefreshScheduler(loop.set_interval, interval=5)
        scheduler.start()
        scheduler.set_interval_seconds(30)

        assert [t.interval for t in loop.live] == [30]
        assert scheduler.interval == 30

    def test_interval_must_be_positive(self):
        scheduler = RefreshScheduler(FakeLoop().set_interval)
        with pytest.raises(ValueError):
            scheduler.set_interval_seconds(0)
