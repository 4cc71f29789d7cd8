"""Headless navigator: the client's notion of "current page"."""

from __future__ import annotations

import threading
from typing import List, Protocol
from urllib.parse import urlsplit


class Navigator(Protocol):
    def navigate(self, url: str) -> None: ...


class HistoryNavigator:
    """Records navigations; `current_path` is the path of the last one."""

    def __init__(self, start: str = "/"):
        self.history: List[str] = [start]
        self._lock = threading.Lock()

    def navigate(self, url: str) -> None:
        with self._lock:
            self.history.append(url)

    @property
    def current_url(self) -> str:
        with self._lock:
            return self.history[-1]

    @property
    def current_path(self) -> str:
        return urlsplit(self.current_url).path
