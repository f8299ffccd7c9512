# app/client/events.py
"""In-process "refresh notifications" broadcast."""
import logging
from typing import Callable, Dict

logger = logging.getLogger(__name__)

Listener = Callable[[], None]


class RefreshChannel:
    """
    Payload-free publish/subscribe channel.

    Mutation handlers call `publish()` to ask for a notification refresh
    without holding a reference to whoever performs it. Listeners run
    synchronously inside `publish()` and must not block; the aggregator's
    listener only schedules a task.
    """

    def __init__(self):
        self._listeners: Dict[int, Listener] = {}
        self._next_token = 0

    def __len__(self) -> int:
        return len(self._listeners)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        token = self._next_token
        self._next_token += 1
        self._listeners[token] = listener

        def unsubscribe() -> None:
            self._listeners.pop(token, None)

        return unsubscribe

    def publish(self) -> None:
        for listener in list(self._listeners.values()):
            try:
                listener()
            except Exception:
                logger.error("Refresh listener %r failed", listener, exc_info=True)
