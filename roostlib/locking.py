"""
Reader/writer lock for the vault engine.

Any number of readers may hold the lock together; a writer holds it alone.
Waiting writers block new readers so a steady stream of reads cannot starve
a mutation. The lock is not reentrant.
"""

import threading
from contextlib import contextmanager


class ReadWriteLock:
    """Blocking shared/exclusive lock built on a single Condition."""

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

    def acquire_read(self) -> None:
        with self._cond:
            while self._writer or self._waiting_writers:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            if self._readers <= 0:
                raise RuntimeError("release_read() called without a read lock")
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        with self._cond:
            self._waiting_writers += 1
            acquired = False
            try:
                while self._writer or self._readers:
                    self._cond.wait()
                self._writer = True
                acquired = True
            finally:
                self._waiting_writers -= 1
                if not acquired:
                    # Readers parked behind us may proceed again
                    self._cond.notify_all()

    def release_write(self) -> None:
        with self._cond:
            if not self._writer:
                raise RuntimeError("release_write() called without the write lock")
            self._writer = False
            self._cond.notify_all()

    @property
    def active_readers(self) -> int:
        """Number of readers currently holding the lock."""
        with self._cond:
            return self._readers

    @property
    def writer_active(self) -> bool:
        with self._cond:
            return self._writer

    @contextmanager
    def read_locked(self):
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write_locked(self):
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()


__all__ = ["ReadWriteLock"]
