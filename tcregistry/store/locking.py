"""Readers-writer lock guarding the record store."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Generator


class ReadWriteLock:
    """
    Shared/exclusive lock.

    Any number of readers may hold the lock together; a writer holds it
    alone. The writing thread may re-enter the lock for reading or writing,
    so a mutation can call read operations and other mutations of the same
    store. A thread holding only a read lock cannot upgrade to a write lock.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer: int | None = None
        self._write_depth = 0
        self._local = threading.local()

    def _held(self) -> list[str]:
        held = getattr(self._local, "held", None)
        if held is None:
            held = self._local.held = []
        return held

    def acquire_read(self) -> None:
        me = threading.get_ident()
        held = self._held()
        with self._cond:
            if self._writer == me:
                self._write_depth += 1
                held.append("w")
                return
            while self._writer is not None:
                self._cond.wait()
            self._readers += 1
            held.append("r")

    def release_read(self) -> None:
        held = self._held()
        kind = held.pop()
        if kind == "w":
            self._release_write_locked()
            return
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        me = threading.get_ident()
        held = self._held()
        with self._cond:
            if self._writer == me:
                self._write_depth += 1
                held.append("w")
                return
            if "r" in held:
                raise RuntimeError("Cannot upgrade a read lock to a write lock")
            while self._writer is not None or self._readers > 0:
                self._cond.wait()
            self._writer = me
            self._write_depth = 1
            held.append("w")

    def release_write(self) -> None:
        self._held().pop()
        self._release_write_locked()

    def _release_write_locked(self) -> None:
        with self._cond:
            self._write_depth -= 1
            if self._write_depth == 0:
                self._writer = None
                self._cond.notify_all()

    @contextmanager
    def read(self) -> Generator[None, None, None]:
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write(self) -> Generator[None, None, None]:
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()
