"""Toast notifications."""

from __future__ import annotations

import itertools
import threading
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

from ..utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_DURATION_MS = 5000
NOTIFICATION_TYPES = ("success", "error", "info", "warning")

_ids = itertools.count(1)


@dataclass(frozen=True)
class Notification:
    id: str
    type: str
    title: str
    message: Optional[str] = None
    duration: int = DEFAULT_DURATION_MS


class Notifier:
    """Keeps the list of visible toasts; listeners are told about each new one."""

    def __init__(self) -> None:
        self._items: List[Notification] = []
        self._listeners: List[Callable[[Notification], None]] = []
        self._lock = threading.Lock()

    @property
    def notifications(self) -> List[Notification]:
        with self._lock:
            return list(self._items)

    def on_notify(self, listener: Callable[[Notification], None]) -> None:
        self._listeners.append(listener)

    def add(self, type: str, title: str, message: Optional[str] = None, duration: Optional[int] = None) -> str:
        if type not in NOTIFICATION_TYPES:
            raise ValueError(f"Unknown notification type: {type}")
        note = Notification(
            id=f"notification-{next(_ids)}-{int(time.time() * 1000)}",
            type=type,
            title=title,
            message=message,
            duration=DEFAULT_DURATION_MS if duration is None else duration,
        )
        with self._lock:
            self._items.append(note)
        logger.debug("Notification raised", type=type, title=title)
        for listener in list(self._listeners):
            listener(note)
        return note.id

    def remove(self, notification_id: str) -> None:
        with self._lock:
            self._items = [n for n in self._items if n.id != notification_id]

    def clear_all(self) -> None:
        with self._lock:
            self._items = []

    def success(self, title: str, message: Optional[str] = None, duration: Optional[int] = None) -> str:
        return self.add("success", title, message, duration)

    def error(self, title: str, message: Optional[str] = None, duration: Optional[int] = None) -> str:
        return self.add("error", title, message, duration)

    def info(self, title: str, message: Optional[str] = None, duration: Optional[int] = None) -> str:
        return self.add("info", title, message, duration)

    def warning(self, title: str, message: Optional[str] = None, duration: Optional[int] = None) -> str:
        return self.add("warning", title, message, duration)
