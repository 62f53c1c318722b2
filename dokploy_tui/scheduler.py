"""Periodic refresh timer.

The timer is bound to ``_tick`` once; ``_tick`` reads ``self.callback`` at
fire time.  Swapping the callback between ticks therefore never leaves the
timer calling a closure over an old project or environment.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Protocol

_log = logging.getLogger("dokploy-tui")

DEFAULT_INTERVAL = 5.0


class TimerHandle(Protocol):
    def stop(self) -> Any: ...


SetInterval = Callable[..., TimerHandle]


class RefreshScheduler:
    def __init__(
        self,
        set_interval: SetInterval,
        callback: Callable[[], Any] | None = None,
        *,
        interval: float = DEFAULT_INTERVAL,
        enabled: bool = True,
        name: str = "auto-refresh",
    ) -> None:
        self._set_interval = set_interval
        self._name = name
        self.callback = callback
        self._interval = interval
        self._enabled = enabled
        self._timer: TimerHandle | None = None

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def running(self) -> bool:
        return self._timer is not None

    def _tick(self) -> None:
        callback = self.callback
        if callback is not None:
            callback()

    def start(self) -> None:
        self.stop()
        if self._enabled:
            _log.debug("%s timer armed every %.1fs", self._name, self._interval)
            self._timer = self._set_interval(self._interval, self._tick, name=self._name)

    def stop(self) -> None:
        if self._timer is not None:
            self._timer.stop()
            self._timer = None

    def set_enabled(self, enabled: bool) -> None:
        if enabled == self._enabled:
            return
        self._enabled = enabled
        if enabled:
            self.start()
        else:
            self.stop()

    def toggle(self) -> bool:
        self.set_enabled(not self._enabled)
        return self._enabled

    def set_interval_seconds(self, seconds: float) -> None:
        if seconds <= 0:
            raise ValueError("refresh interval must be positive")
        if seconds == self._interval:
            return
        self._interval = seconds
        if self._enabled:
            self.start()
