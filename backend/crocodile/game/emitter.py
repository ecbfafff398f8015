from __future__ import annotations

import itertools
import logging
from typing import Any, Callable, Generic, TypeVar


logger = logging.getLogger(__name__)

E = TypeVar("E", bound=str)

Handler = Callable[[Any], Any]


class Emitter(Generic[E]):
    """Publish/subscribe hub keyed by event name.

    ``emit`` calls handlers synchronously and ignores what they return, so an
    asynchronous handler is started but never awaited. A handler that raises
    is logged and does not prevent the remaining handlers from running.
    """

    def __init__(self) -> None:
        self._handlers: dict[E, dict[int, Handler]] = {}
        self._tokens = itertools.count()

    def subscribe(self, event: E, handler: Handler) -> Callable[[], None]:
        token = next(self._tokens)
        self._handlers.setdefault(event, {})[token] = handler

        def unsubscribe() -> None:
            handlers = self._handlers.get(event)
            if handlers is None:
                return
            handlers.pop(token, None)
            if not handlers:
                del self._handlers[event]

        return unsubscribe

    def emit(self, event: E, payload: Any) -> None:
        # Snapshot: handlers may unsubscribe while we iterate.
        for handler in list(self._handlers.get(event, {}).values()):
            try:
                handler(payload)
            except Exception:
                logger.exception("Handler for %r failed", event)

    def unsubscribe_all(self) -> None:
        self._handlers.clear()

    def subscriber_count(self, event: E) -> int:
        return len(self._handlers.get(event, {}))
