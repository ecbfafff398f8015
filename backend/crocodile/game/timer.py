from __future__ import annotations

from typing import Any, Callable

from .models import TimerState
from .scheduler import ScheduledCall, Scheduler


class Timer:
    """Single-shot countdown.

    While running it exposes a ``TimerState`` snapshot so any reader can work
    out the time left as ``duration - (now - start_time)``.
    """

    def __init__(self, scheduler: Scheduler) -> None:
        self._scheduler = scheduler
        self._state: TimerState | None = None
        self._call: ScheduledCall | None = None

    @property
    def state(self) -> TimerState | None:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is not None

    def start(self, duration_ms: int, on_expire: Callable[[], Any]) -> None:
        if self.is_running:
            self.stop()

        self._state = TimerState(start_time=self._scheduler.now_ms(), duration=int(duration_ms))
        call: ScheduledCall | None = None

        def expire() -> None:
            if self._call is not call:
                return
            self._state = None
            self._call = None
            on_expire()

        call = self._scheduler.call_later(duration_ms / 1000, expire)
        self._call = call

    def stop(self) -> None:
        if self._call is not None:
            self._call.cancel()
        self._call = None
        self._state = None
