"""Concurrency control utilities.

Provides a readers/writer lock for structures that are read on every
operation but mutated rarely, such as the adapter registry.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

logger = logging.getLogger(__name__)


class LockTimeoutError(Exception):
    """Raised when a lock cannot be acquired within the timeout period."""

    pass


class ReadWriteLock:
    """Single-writer / multi-reader lock.

    Any number of readers may hold the lock at once. A writer waits until
    all readers leave and blocks new readers while it waits, so a stream of
    lookups cannot starve registration.

    Example:
        lock = ReadWriteLock()
        with lock.read():
            value = mapping.get(key)
        with lock.write():
            mapping[key] = value
    """

    def __init__(self, name: str = "rwlock"):
        self.name = name
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

    def acquire_read(self, timeout: Optional[float] = None) -> None:
        with self._cond:
            ok = self._cond.wait_for(
                lambda: not self._writer and self._waiting_writers == 0,
                timeout=timeout,
            )
            if not ok:
                raise LockTimeoutError(f"Could not acquire read lock {self.name} within {timeout}s")
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self, timeout: Optional[float] = None) -> None:
        with self._cond:
            self._waiting_writers += 1
            try:
                ok = self._cond.wait_for(
                    lambda: not self._writer and self._readers == 0,
                    timeout=timeout,
                )
                if not ok:
                    raise LockTimeoutError(
                        f"Could not acquire write lock {self.name} within {timeout}s"
                    )
                self._writer = True
            finally:
                self._waiting_writers -= 1
                if not self._writer:
                    # Waiting readers were blocked on us
                    self._cond.notify_all()

    def release_write(self) -> None:
        with self._cond:
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def read(self, timeout: Optional[float] = None) -> Iterator[None]:
        """Hold the lock shared for the duration of the block."""
        self.acquire_read(timeout)
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write(self, timeout: Optional[float] = None) -> Iterator[None]:
        """Hold the lock exclusively for the duration of the block."""
        self.acquire_write(timeout)
        try:
            yield
        finally:
            self.release_write()

    @property
    def readers(self) -> int:
        return self._readers

    @property
    def write_locked(self) -> bool:
        return self._writer
