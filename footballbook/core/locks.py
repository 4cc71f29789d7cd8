"""
Named file locks.

Keys look like lock:store:users. A lock is an O_EXCL-created file under
the locks directory, so it also serialises writers in other processes
sharing the same data directory.
"""

from __future__ import annotations

import os
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

LOCK_TIMEOUT_SECONDS = 30
LOCK_POLL_INTERVAL = 0.05


def _lock_path(locks_dir: Path, key: str) -> Path:
    safe = "".join(c if c.isalnum() or c in "-_" else "_" for c in key)
    locks_dir.mkdir(parents=True, exist_ok=True)
    return locks_dir / f"{safe}.lock"


@contextmanager
def acquire_lock(
    key: str,
    locks_dir: Path,
    timeout_seconds: float = LOCK_TIMEOUT_SECONDS,
) -> Generator[None, None, None]:
    """
    Acquire a named lock, blocking until acquired or timeout.

    Raises TimeoutError if the lock could not be taken in time.
    """
    path = _lock_path(locks_dir, key)
    start = time.monotonic()
    while True:
        try:
            fd = os.open(str(path), os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError:
            if (time.monotonic() - start) >= timeout_seconds:
                raise TimeoutError(f"Could not acquire lock {key} within {timeout_seconds}s")
            time.sleep(LOCK_POLL_INTERVAL)
            continue
        try:
            os.write(fd, str(os.getpid()).encode())
        finally:
            os.close(fd)
        break

    try:
        yield
    finally:
        try:
            path.unlink()
        except FileNotFoundError:
            pass


def lock_key_store(collection: str) -> str:
    return f"lock:store:{collection}"
