"""Per-worker mutual exclusion around the clock state check-and-create.

Operations for different workers never contend; the lock is keyed by
worker id.
"""
from __future__ import annotations

import threading
import weakref
from contextlib import contextmanager
from typing import ContextManager, Protocol

import mysql.connector

from ..core.constants import DEFAULT_LOCK_TIMEOUT_SECONDS
from ..core.exceptions import StoreFailure
from ..database.connection import DatabaseConnection


class WorkerLock(Protocol):
    def hold(self, worker_id: int) -> ContextManager[None]:
        raise NotImplementedError


class ProcessWorkerLock(WorkerLock):
    """In-process locks; enough for a single server process.

    Entries live only while some thread holds or waits on them, so the
    registry stays as small as the set of workers currently clocking.
    """

    def __init__(self):
        self._registry_lock = threading.Lock()
        self._locks: "weakref.WeakValueDictionary[int, threading.Lock]" = weakref.WeakValueDictionary()

    def live_count(self) -> int:
        with self._registry_lock:
            return len(self._locks)

    def _lock_for(self, worker_id: int) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(worker_id)
            if lock is None:
                lock = self._locks[worker_id] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, worker_id: int):
        lock = self._lock_for(int(worker_id))
        with lock:
            yield


class MySQLWorkerLock(WorkerLock):
    """Named MySQL locks, shared by every process talking to the same server."""

    def __init__(self, conn_factory: DatabaseConnection, *, timeout_seconds: int = DEFAULT_LOCK_TIMEOUT_SECONDS):
        self._conn_factory = conn_factory
        self._timeout = int(timeout_seconds)

    @staticmethod
    def lock_name(worker_id: int) -> str:
        return f"siteclock.worker.{int(worker_id)}"

    @contextmanager
    def hold(self, worker_id: int):
        name = self.lock_name(worker_id)
        try:
            conn = self._conn_factory.connect()
        except mysql.connector.Error as exc:
            raise StoreFailure(f"Database unavailable: {exc}") from exc

        try:
            cur = conn.cursor()
            try:
                self._acquire(cur, name)
                try:
                    yield
                finally:
                    self._release(cur, name)
            finally:
                cur.close()
        finally:
            conn.close()

    def _acquire(self, cur, name: str) -> None:
        try:
            cur.execute("SELECT GET_LOCK(%s, %s)", (name, self._timeout))
            row = cur.fetchone()
        except mysql.connector.Error as exc:
            raise StoreFailure(f"Could not acquire {name}: {exc}") from exc
        # 0 on timeout, NULL on error
        if not row or row[0] != 1:
            raise StoreFailure(f"Timed out waiting for {name}")

    @staticmethod
    def _release(cur, name: str) -> None:
        try:
            cur.execute("SELECT RELEASE_LOCK(%s)", (name,))
            cur.fetchone()
        except mysql.connector.Error:
            # closing the connection releases the lock as well
            pass
