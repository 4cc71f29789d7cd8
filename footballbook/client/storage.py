"""
Client-local key/value storage (the browser localStorage equivalent).

Multi-key writes go through set_items/remove_items so a reader never sees
a token without its user view or the other way round.
"""

from __future__ import annotations

import json
import shutil
import tempfile
import threading
from pathlib import Path
from typing import Dict, Iterable, Mapping, Optional, Protocol

from ..utils.logger import get_logger

logger = get_logger(__name__)


class KeyValueStorage(Protocol):
    def get_item(self, key: str) -> Optional[str]: ...

    def set_items(self, items: Mapping[str, str]) -> None: ...

    def remove_items(self, keys: Iterable[str]) -> None: ...


class MemoryStorage:
    """Process-local storage, shared by every SessionManager given the same instance."""

    def __init__(self) -> None:
        self._data: Dict[str, str] = {}
        self._lock = threading.Lock()

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set_items(self, items: Mapping[str, str]) -> None:
        with self._lock:
            self._data.update(items)

    def remove_items(self, keys: Iterable[str]) -> None:
        with self._lock:
            for key in keys:
                self._data.pop(key, None)

    def keys(self) -> Iterable[str]:
        with self._lock:
            return list(self._data)


class JsonFileStorage:
    """Storage persisted to a JSON file; every write replaces the file atomically."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Ignoring unreadable session file", path=str(self.path), error=str(e))
            return {}
        if not isinstance(raw, dict):
            return {}
        return {str(k): v for k, v in raw.items() if isinstance(v, str)}

    def _atomic_write(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            mode="w", dir=str(self.path.parent), delete=False, encoding="utf-8"
        ) as tf:
            json.dump(data, tf, indent=2, ensure_ascii=False)
            temp_path = Path(tf.name)
        try:
            shutil.move(str(temp_path), str(self.path))
        except OSError:
            if temp_path.exists():
                temp_path.unlink()
            raise

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            return self._load().get(key)

    def set_items(self, items: Mapping[str, str]) -> None:
        with self._lock:
            data = self._load()
            data.update(items)
            self._atomic_write(data)

    def remove_items(self, keys: Iterable[str]) -> None:
        with self._lock:
            data = self._load()
            changed = False
            for key in keys:
                if key in data:
                    del data[key]
                    changed = True
            if changed:
                self._atomic_write(data)
