"""
Keyed session store with per-key expiry.

The role-play engine only needs get/set with a TTL. Two implementations are
provided: an in-process dict (tests, single-worker dev) and a SQLAlchemy
table shared by all workers. Neither offers compare-and-set; concurrent
writers to one key are last-write-wins.
"""
import logging
import time
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional, Tuple

from fastapi.concurrency import run_in_threadpool
from sqlalchemy import text
from sqlalchemy.orm import Session, sessionmaker

from app.db.models.session_blob import SessionBlob

logger = logging.getLogger(__name__)


class SessionStore(ABC):
    """Abstract keyed store with per-key expiry."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the stored value, or None if absent or expired."""
        pass

    @abstractmethod
    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        """Store value under key, (re)starting its expiry clock."""
        pass

    async def ping(self) -> bool:
        """Report whether the backend is reachable."""
        return True


class InMemorySessionStore(SessionStore):
    """Dict-backed store using a monotonic clock for expiry."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._data: Dict[str, Tuple[str, float]] = {}

    async def get(self, key: str) -> Optional[str]:
        entry = self._data.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._data[key]
            return None
        return value

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self._data[key] = (value, self._clock() + ttl_seconds)

    def __len__(self) -> int:
        return len(self._data)


class SqlSessionStore(SessionStore):
    """
    Store backed by the session_blobs table.

    SQLAlchemy sessions are synchronous, so each operation runs in the
    threadpool to keep the event loop free.
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def _get_sync(self, key: str) -> Optional[str]:
        db: Session = self._session_factory()
        try:
            blob = db.get(SessionBlob, key)
            if blob is None:
                return None
            if blob.expires_at <= datetime.utcnow():
                db.delete(blob)
                db.commit()
                logger.debug(f"Expired session blob removed: key={key}")
                return None
            return blob.value_json
        finally:
            db.close()

    def _set_sync(self, key: str, value: str, ttl_seconds: int) -> None:
        db: Session = self._session_factory()
        try:
            db.merge(SessionBlob(
                key=key,
                value_json=value,
                expires_at=datetime.utcnow() + timedelta(seconds=ttl_seconds),
            ))
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def _ping_sync(self) -> bool:
        db: Session = self._session_factory()
        try:
            db.execute(text("SELECT 1"))
            return True
        finally:
            db.close()

    async def get(self, key: str) -> Optional[str]:
        return await run_in_threadpool(self._get_sync, key)

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        await run_in_threadpool(self._set_sync, key, value, ttl_seconds)

    async def ping(self) -> bool:
        try:
            return await run_in_threadpool(self._ping_sync)
        except Exception as e:
            logger.error(f"Session store ping failed: {e}")
            return False
