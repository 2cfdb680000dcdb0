"""Notification outbox: persisted fan-out events per user."""

import json
import sqlite3
from datetime import datetime
from pathlib import Path

from handyman_bids.models.notification import Notification

from .market_store import connect, ensure_schema, to_timestamp


class NotificationStore:
    """SQLite store for delivered notifications (in-app inbox)."""

    def __init__(self, db_path: str | Path = "handyman_bids.db", busy_timeout: float = 5.0):
        self._db_path = Path(db_path)
        self._busy_timeout = busy_timeout
        ensure_schema(self._db_path)

    def add(self, notification: Notification) -> None:
        conn = connect(self._db_path, self._busy_timeout)
        try:
            conn.execute(
                """
                INSERT INTO notifications (id, user_id, kind, payload, is_read, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    notification.id,
                    notification.user_id,
                    notification.kind,
                    json.dumps(notification.payload, default=str),
                    int(notification.is_read),
                    to_timestamp(notification.created_at),
                ),
            )
        finally:
            conn.close()

    def list_for_user(self, user_id: str, *, unread_only: bool = False) -> list[Notification]:
        """Notifications for a user, newest first."""
        sql = "SELECT * FROM notifications WHERE user_id = ?"
        if unread_only:
            sql += " AND is_read = 0"
        conn = connect(self._db_path, self._busy_timeout)
        try:
            rows = conn.execute(sql + " ORDER BY created_at DESC", (user_id,)).fetchall()
        finally:
            conn.close()
        return [self._row_to_notification(r) for r in rows]

    def mark_read(self, notification_id: str) -> None:
        conn = connect(self._db_path, self._busy_timeout)
        try:
            conn.execute("UPDATE notifications SET is_read = 1 WHERE id = ?", (notification_id,))
        finally:
            conn.close()

    def _row_to_notification(self, row: sqlite3.Row) -> Notification:
        return Notification(
            id=row["id"],
            user_id=row["user_id"],
            kind=row["kind"],
            payload=json.loads(row["payload"]),
            is_read=bool(row["is_read"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )
