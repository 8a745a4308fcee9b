"""
memdb/rwlock.py -- Shared/exclusive lock for MemoryDB.

The stdlib has no reader-writer lock, so this one is built on a single
threading.Condition. Any number of readers may hold the lock together; a
writer holds it alone.

Writer preference: once a writer is waiting, new readers block until it has
finished. Without this a steady stream of GET requests could keep a create
waiting forever.

Usage:
    lock = ReadWriteLock()

    with lock.read():
        user = users[user_id]

    with lock.write():
        users[next_id] = user
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager


class ReadWriteLock:
    """Reader-writer lock with writer preference. Not reentrant."""

    def __init__(self) -> None:
        self._readers: int = 0
        self._writers_waiting: int = 0
        self._writer_active: bool = False
        self._cond = threading.Condition(threading.Lock())

    @contextmanager
    def read(self) -> Iterator[None]:
        """Hold the lock in shared mode for the body of the with-block."""
        with self._cond:
            while self._writer_active or self._writers_waiting > 0:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        """Hold the lock in exclusive mode for the body of the with-block."""
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer_active or self._readers > 0:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer_active = True
        try:
            yield
        finally:
            with self._cond:
                self._writer_active = False
                self._cond.notify_all()
