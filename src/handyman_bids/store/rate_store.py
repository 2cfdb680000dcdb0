"""Exchange rate table: append-only history with one active row per currency pair."""

import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Optional

from handyman_bids.models.exchange_rate import ExchangeRate

from .market_store import connect, ensure_schema, to_timestamp


class ExchangeRateStore:
    """SQLite store for exchange rates written by the rate feed and read by conversion."""

    def __init__(self, db_path: str | Path = "handyman_bids.db", busy_timeout: float = 5.0):
        self._db_path = Path(db_path)
        self._busy_timeout = busy_timeout
        ensure_schema(self._db_path)

    def record(self, rate: ExchangeRate) -> ExchangeRate:
        """
        Insert a new observation for the pair. When it is active, previous active
        rows for the same pair are deactivated in the same transaction.
        """
        conn = connect(self._db_path, self._busy_timeout)
        try:
            conn.execute("BEGIN IMMEDIATE")
            if rate.is_active:
                conn.execute(
                    """
                    UPDATE exchange_rates SET is_active = 0
                    WHERE from_currency = ? AND to_currency = ? AND is_active = 1
                    """,
                    (rate.from_currency, rate.to_currency),
                )
            cursor = conn.execute(
                """
                INSERT INTO exchange_rates (from_currency, to_currency, rate, source, last_updated, is_active)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    rate.from_currency,
                    rate.to_currency,
                    rate.rate,
                    rate.source,
                    to_timestamp(rate.last_updated),
                    int(rate.is_active),
                ),
            )
            conn.execute("COMMIT")
        except BaseException:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise
        finally:
            conn.close()
        return rate.model_copy(update={"id": cursor.lastrowid})

    def latest_active(self, from_currency: str, to_currency: str) -> Optional[ExchangeRate]:
        """Most recent active row for the exact pair."""
        conn = connect(self._db_path, self._busy_timeout)
        try:
            row = conn.execute(
                """
                SELECT * FROM exchange_rates
                WHERE from_currency = ? AND to_currency = ? AND is_active = 1
                ORDER BY last_updated DESC, id DESC
                LIMIT 1
                """,
                (from_currency, to_currency),
            ).fetchone()
        finally:
            conn.close()
        return self._row_to_rate(row) if row else None

    def history(self, from_currency: str, to_currency: str, limit: int = 30) -> list[ExchangeRate]:
        """Rows for the pair, newest first."""
        conn = connect(self._db_path, self._busy_timeout)
        try:
            rows = conn.execute(
                """
                SELECT * FROM exchange_rates
                WHERE from_currency = ? AND to_currency = ?
                ORDER BY last_updated DESC, id DESC
                LIMIT ?
                """,
                (from_currency, to_currency, limit),
            ).fetchall()
        finally:
            conn.close()
        return [self._row_to_rate(r) for r in rows]

    def since(self, from_currency: str, to_currency: str, since: datetime) -> list[ExchangeRate]:
        """Rows for the pair updated after `since`, oldest first."""
        conn = connect(self._db_path, self._busy_timeout)
        try:
            rows = conn.execute(
                """
                SELECT * FROM exchange_rates
                WHERE from_currency = ? AND to_currency = ? AND last_updated > ?
                ORDER BY last_updated ASC, id ASC
                """,
                (from_currency, to_currency, to_timestamp(since)),
            ).fetchall()
        finally:
            conn.close()
        return [self._row_to_rate(r) for r in rows]

    def _row_to_rate(self, row: sqlite3.Row) -> ExchangeRate:
        return ExchangeRate(
            id=row["id"],
            from_currency=row["from_currency"],
            to_currency=row["to_currency"],
            rate=row["rate"],
            source=row["source"],
            last_updated=datetime.fromisoformat(row["last_updated"]),
            is_active=bool(row["is_active"]),
        )
