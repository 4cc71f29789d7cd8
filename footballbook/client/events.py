"""
In-process pub/sub for session changes.

Session managers publish on every mutation; guards and watchers subscribe
and re-read the persisted session instead of trusting their own flags.
Several "tabs" sharing one bus and one storage see each other's logins
and logouts.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Callable, List

from ..utils.logger import get_logger

logger = get_logger(__name__)

SESSION_SET = "set"
SESSION_CLEARED = "cleared"
SESSION_LOGOUT = "logout"


@dataclass(frozen=True)
class SessionEvent:
    namespace: str
    kind: str


Listener = Callable[[SessionEvent], None]
Unsubscribe = Callable[[], None]


class EventBus:
    def __init__(self) -> None:
        self._listeners: List[Listener] = []
        self._lock = threading.Lock()

    def subscribe(self, listener: Listener) -> Unsubscribe:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def publish(self, event: SessionEvent) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event)
            except Exception:
                # Remaining listeners still receive the event.
                logger.exception("Session listener failed", namespace=event.namespace, kind=event.kind)

    def listener_count(self) -> int:
        with self._lock:
            return len(self._listeners)

