"""
Credential store.

A keyed record store with two required operations, find-by-identifier and
insert. Insert is check-and-insert under a lock, so two concurrent
registrations for the same identifier produce exactly one record; the
loser gets DuplicateIdentifierError. With require_empty=True the insert
only succeeds into an empty collection (StoreNotEmptyError otherwise),
decided under the same lock.

Implementations:
- JsonCredentialStore: data/<collection>.json, atomic replace on write,
  serialised by a thread lock and a file lock.
- InMemoryCredentialStore: for tests and ephemeral runs.
"""

from __future__ import annotations

import json
import shutil
import tempfile
import threading
from pathlib import Path
from typing import Dict, Generic, List, Optional, Protocol, Type, TypeVar

from pydantic import ValidationError

from ..auth.models import CredentialRecord
from ..core.locks import acquire_lock, lock_key_store
from ..utils.exceptions import DuplicateIdentifierError, StoreError, StoreNotEmptyError
from ..utils.logger import get_logger

logger = get_logger(__name__)

R = TypeVar("R", bound=CredentialRecord)


class CredentialStore(Protocol[R]):
    """What the auth service needs from persistence."""

    def find_by_identifier(self, identifier: str) -> Optional[R]: ...

    def find_by_id(self, record_id: str) -> Optional[R]: ...

    def insert(self, record: R, require_empty: bool = False) -> R: ...

    def count(self) -> int: ...


def _key(identifier: str) -> str:
    return identifier.strip().lower()


class InMemoryCredentialStore(Generic[R]):
    """Dict-backed store."""

    def __init__(self, record_type: Type[R]):
        self.record_type = record_type
        self._records: Dict[str, R] = {}
        self._lock = threading.Lock()

    def find_by_identifier(self, identifier: str) -> Optional[R]:
        with self._lock:
            return self._records.get(_key(identifier))

    def find_by_id(self, record_id: str) -> Optional[R]:
        with self._lock:
            return next((r for r in self._records.values() if r.id == record_id), None)

    def insert(self, record: R, require_empty: bool = False) -> R:
        with self._lock:
            if require_empty and self._records:
                raise StoreNotEmptyError(self.record_type.__name__)
            key = _key(record.identifier)
            if key in self._records:
                raise DuplicateIdentifierError(record.identifier)
            self._records[key] = record
        return record

    def count(self) -> int:
        with self._lock:
            return len(self._records)

    def list_records(self) -> List[R]:
        with self._lock:
            return list(self._records.values())


class JsonCredentialStore(Generic[R]):
    """One JSON file per collection: {"records": [...]}."""

    def __init__(self, path: Path, record_type: Type[R], locks_dir: Optional[Path] = None):
        self.path = Path(path)
        self.record_type = record_type
        self.collection = self.path.stem
        self.locks_dir = locks_dir or (self.path.parent / "locks")
        self._lock = threading.Lock()

    def _load(self) -> List[R]:
        if not self.path.exists():
            return []
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
            return [self.record_type(**item) for item in raw.get("records", [])]
        except (json.JSONDecodeError, OSError, AttributeError, TypeError, ValidationError) as e:
            raise StoreError(f"Failed to load {self.collection} from {self.path}: {e}")

    def _atomic_write(self, records: List[R]) -> None:
        """Write JSON file atomically"""
        payload = {"records": [r.model_dump(mode="json") for r in records]}
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            mode="w", dir=str(self.path.parent), delete=False, encoding="utf-8"
        ) as tf:
            json.dump(payload, tf, indent=2, ensure_ascii=False)
            temp_path = Path(tf.name)
        try:
            shutil.move(str(temp_path), str(self.path))
        except OSError as e:
            if temp_path.exists():
                temp_path.unlink()
            raise StoreError(f"Failed to save {self.collection} to {self.path}: {e}")

    def find_by_identifier(self, identifier: str) -> Optional[R]:
        key = _key(identifier)
        return next((r for r in self._load() if _key(r.identifier) == key), None)

    def find_by_id(self, record_id: str) -> Optional[R]:
        return next((r for r in self._load() if r.id == record_id), None)

    def insert(self, record: R, require_empty: bool = False) -> R:
        key = _key(record.identifier)
        try:
            with self._lock, acquire_lock(lock_key_store(self.collection), self.locks_dir):
                records = self._load()
                if require_empty and records:
                    raise StoreNotEmptyError(self.collection)
                if any(_key(r.identifier) == key for r in records):
                    raise DuplicateIdentifierError(record.identifier)
                records.append(record)
                self._atomic_write(records)
        except TimeoutError as e:
            raise StoreError(str(e))
        logger.info("Record inserted", collection=self.collection, record_id=record.id)
        return record

    def count(self) -> int:
        return len(self._load())

    def list_records(self) -> List[R]:
        return self._load()
