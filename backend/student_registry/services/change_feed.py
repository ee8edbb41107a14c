"""
In-process change feed for student records.

Listeners subscribe per owner (user id) and receive the full ordered student
list after every committed write to that owner's records. Delivery is
synchronous, in the thread that performed the write.
"""

import itertools
import threading
from typing import Callable, Dict, List, Optional

from student_registry.core.logging import get_logger

logger = get_logger()

Listener = Callable[[list], None]


class Subscription:
    """Handle returned by ChangeFeed.subscribe; call it (or unsubscribe()) to stop."""

    def __init__(self, feed: "ChangeFeed", owner_id: str, token: int):
        self._feed = feed
        self.owner_id = owner_id
        self.token = token
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self._feed._remove(self.owner_id, self.token)
            self.active = False

    __call__ = unsubscribe


class ChangeFeed:
    """Registry of change listeners, keyed by owner id."""

    def __init__(self):
        self._listeners: Dict[str, Dict[int, Listener]] = {}
        self._tokens = itertools.count(1)
        self._lock = threading.Lock()

    def subscribe(self, owner_id: str, listener: Listener) -> Subscription:
        with self._lock:
            token = next(self._tokens)
            self._listeners.setdefault(owner_id, {})[token] = listener
        logger.debug("Change listener %s registered for owner %s", token, owner_id)
        return Subscription(self, owner_id, token)

    def _remove(self, owner_id: str, token: int) -> None:
        with self._lock:
            listeners = self._listeners.get(owner_id)
            if listeners is None:
                return
            listeners.pop(token, None)
            if not listeners:
                del self._listeners[owner_id]
        logger.debug("Change listener %s removed for owner %s", token, owner_id)

    def has_listeners(self, owner_id: str) -> bool:
        with self._lock:
            return bool(self._listeners.get(owner_id))

    def listener_count(self, owner_id: str) -> int:
        with self._lock:
            return len(self._listeners.get(owner_id, {}))

    def publish(self, owner_id: str, snapshot: list) -> None:
        """Deliver snapshot to every listener of owner_id."""
        with self._lock:
            listeners: List[Listener] = list(self._listeners.get(owner_id, {}).values())
        for listener in listeners:
            try:
                listener(snapshot)
            except Exception:
                # The write is already committed; keep notifying the rest
                logger.exception("Change listener failed for owner %s", owner_id)


# Global change feed instance
_change_feed: Optional[ChangeFeed] = None


def get_change_feed() -> ChangeFeed:
    """Get the global change feed instance."""
    global _change_feed
    if _change_feed is None:
        _change_feed = ChangeFeed()
    return _change_feed
