from __future__ import annotations

import logging
import time
from threading import RLock
from typing import Any, Callable

from flask_socketio import SocketIO

from ..game.scheduler import ScheduledCall, Scheduler


logger = logging.getLogger(__name__)


class SocketIOScheduler(Scheduler):
    """Runs room callbacks as Socket.IO background tasks.

    Every callback is invoked while holding ``lock`` so that timer expiries
    and answer deliveries never interleave with socket handlers working on
    the same room.
    """

    # Cancelled timers stop sleeping within one slice.
    SLEEP_SLICE_SEC = 1.0

    def __init__(self, socketio: SocketIO, lock: RLock | None = None) -> None:
        self._socketio = socketio
        self.lock = lock or RLock()

    def time(self) -> float:
        return time.time()

    def call_later(self, delay: float, callback: Callable[[], Any]) -> ScheduledCall:
        call = ScheduledCall()

        def _runner() -> None:
            remaining = delay
            while remaining > 0 and call.pending:
                step = min(self.SLEEP_SLICE_SEC, remaining)
                self._socketio.sleep(step)
                remaining -= step
            with self.lock:
                # Cancellation is checked under the lock: stop() may have won the race.
                if not call.pending:
                    return
                call.done = True
                callback()

        self._socketio.start_background_task(_runner)
        return call

    def run_async(self, func: Callable[[], Any], on_done: Callable[[Any], Any]) -> None:
        def _runner() -> None:
            try:
                result = func()
            except Exception:
                logger.exception("Background call %r failed", func)
                result = None
            with self.lock:
                on_done(result)

        self._socketio.start_background_task(_runner)
