from __future__ import annotations

from typing import Any, Callable


class ScheduledCall:
    """Handle for a deferred callback; ``cancel`` guarantees it never fires."""

    def __init__(self) -> None:
        self.cancelled = False
        self.done = False

    @property
    def pending(self) -> bool:
        return not (self.cancelled or self.done)

    def cancel(self) -> None:
        self.cancelled = True


class Scheduler:
    """Clock and callback scheduling used by timers and rooms.

    Implementations decide where callbacks run; callers only rely on
    ``call_later`` firing at most once and ``run_async`` delivering the
    result of ``func`` to ``on_done`` after ``func`` returns.
    """

    def time(self) -> float:
        raise NotImplementedError

    def call_later(self, delay: float, callback: Callable[[], Any]) -> ScheduledCall:
        raise NotImplementedError

    def run_async(self, func: Callable[[], Any], on_done: Callable[[Any], Any]) -> None:
        raise NotImplementedError

    def now_ms(self) -> int:
        return int(self.time() * 1000)
