from __future__ import annotations
import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Protocol

from sqlalchemy import func, select
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


class LockProvider(Protocol):
    def try_acquire(self, key: str) -> bool: ...

    def release(self, key: str) -> None: ...


class InProcessLockProvider:
    """Non-blocking per-key mutex; good for one worker process and for tests."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def _lock_for(self, key: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    def try_acquire(self, key: str) -> bool:
        return self._lock_for(key).acquire(blocking=False)

    def release(self, key: str) -> None:
        lock = self._lock_for(key)
        if lock.locked():
            lock.release()


class AdvisoryLockProvider:
    """
    PostgreSQL session-level advisory locks.

    Each held key pins its own connection: the lock lives as long as that
    connection, independent of the ORM session committing or rolling back.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self._held: dict[str, Connection] = {}

    def try_acquire(self, key: str) -> bool:
        conn = self.engine.connect()
        try:
            acquired = bool(conn.execute(select(func.pg_try_advisory_lock(func.hashtext(key)))).scalar())
        except Exception:
            conn.close()
            raise
        if not acquired:
            conn.close()
            return False
        self._held[key] = conn
        return True

    def release(self, key: str) -> None:
        conn = self._held.pop(key, None)
        if conn is None:
            return
        try:
            conn.execute(select(func.pg_advisory_unlock(func.hashtext(key))))
        except Exception as exc:
            # closing the connection drops the lock anyway
            logger.warning("advisory_lock_release_failed", extra={"lock_key": key, "error": str(exc)})
        finally:
            conn.close()


_in_process = InProcessLockProvider()


def get_lock_provider(db: Session) -> LockProvider:
    bind = db.get_bind()
    if bind.dialect.name == "postgresql":
        engine = bind if isinstance(bind, Engine) else bind.engine
        return AdvisoryLockProvider(engine)
    return _in_process


@contextmanager
def try_lock(locks: LockProvider, key: str) -> Iterator[bool]:
    acquired = locks.try_acquire(key)
    try:
        yield acquired
    finally:
        if acquired:
            locks.release(key)
