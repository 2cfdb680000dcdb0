"""TTL counters for bid attempts, shared by every process using the database."""

import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Optional

from .market_store import connect, ensure_schema


class AttemptStore(ABC):
    """Externally owned TTL counter store, shared by every service instance."""

    @abstractmethod
    def hit(self, key: str, ttl_seconds: int) -> int:
        """Record one attempt for key; return live attempts for key including this one."""
        pass


class SqliteAttemptStore(AttemptStore):
    """Sliding-window attempt counter backed by the bid_attempts table."""

    def __init__(
        self,
        db_path: str | Path = "handyman_bids.db",
        busy_timeout: float = 5.0,
        clock: Optional[Callable[[], float]] = None,
    ):
        self._db_path = Path(db_path)
        self._busy_timeout = busy_timeout
        self._clock = clock or time.time
        ensure_schema(self._db_path)

    def hit(self, key: str, ttl_seconds: int) -> int:
        """Record one attempt for key; return attempts still inside their TTL (including this one)."""
        now = self._clock()
        conn = connect(self._db_path, self._busy_timeout)
        try:
            conn.execute("BEGIN IMMEDIATE")
            conn.execute("DELETE FROM bid_attempts WHERE expires_at <= ?", (now,))
            conn.execute(
                "INSERT INTO bid_attempts (attempt_key, expires_at) VALUES (?, ?)",
                (key, now + ttl_seconds),
            )
            (count,) = conn.execute(
                "SELECT COUNT(*) FROM bid_attempts WHERE attempt_key = ?", (key,)
            ).fetchone()
            conn.execute("COMMIT")
        except BaseException:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise
        finally:
            conn.close()
        return count

    def count(self, key: str) -> int:
        now = self._clock()
        conn = connect(self._db_path, self._busy_timeout)
        try:
            (n,) = conn.execute(
                "SELECT COUNT(*) FROM bid_attempts WHERE attempt_key = ? AND expires_at > ?",
                (key, now),
            ).fetchone()
        finally:
            conn.close()
        return n
