"""SQLite document store for job offers, bids, recommendations and assignments."""

import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Iterator, Optional

from handyman_bids.models.bid import Bid
from handyman_bids.models.job_offer import JobAssignment, JobOffer
from handyman_bids.models.recommendation import PriceRecommendation

SCHEMA_PATH = Path(__file__).parent / "schema.sql"


def to_timestamp(dt: datetime) -> str:
    """Fixed-width UTC ISO string so stored timestamps sort lexicographically."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec="microseconds")


def connect(db_path: Path, busy_timeout: float = 5.0) -> sqlite3.Connection:
    """Autocommit connection; callers issue BEGIN/COMMIT explicitly."""
    conn = sqlite3.connect(db_path, timeout=busy_timeout, isolation_level=None)
    conn.row_factory = sqlite3.Row
    return conn


def ensure_schema(db_path: Path) -> None:
    conn = connect(db_path)
    try:
        conn.executescript(SCHEMA_PATH.read_text())
    finally:
        conn.close()


class MarketSession:
    """
    Collection accessors bound to one connection and one transaction.
    Obtain through MarketStore.transaction() or MarketStore.snapshot().
    """

    def __init__(self, conn: sqlite3.Connection):
        self._conn = conn

    @staticmethod
    def _dump(model) -> str:
        return json.dumps(model.model_dump(mode="json"), default=str)

    # Job offers

    def get_job_offer(self, job_offer_id: str) -> Optional[JobOffer]:
        row = self._conn.execute(
            "SELECT data FROM job_offers WHERE id = ?", (job_offer_id,)
        ).fetchone()
        return JobOffer.model_validate(json.loads(row["data"])) if row else None

    def save_job_offer(self, offer: JobOffer) -> None:
        """Insert or overwrite the job offer document."""
        self._conn.execute(
            """
            INSERT INTO job_offers (id, client_id, status, data, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                status = excluded.status,
                data = excluded.data,
                updated_at = excluded.updated_at
            """,
            (
                offer.id,
                offer.client_id,
                offer.status,
                self._dump(offer),
                to_timestamp(offer.created_at),
                to_timestamp(offer.updated_at),
            ),
        )

    def list_job_offers(
        self,
        *,
        status: Optional[str] = None,
        client_id: Optional[str] = None,
    ) -> list[JobOffer]:
        """Job offers newest first, optionally filtered by status and/or client."""
        clauses: list[str] = []
        params: list[str] = []
        if status is not None:
            clauses.append("status = ?")
            params.append(status)
        if client_id is not None:
            clauses.append("client_id = ?")
            params.append(client_id)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        rows = self._conn.execute(
            f"SELECT data FROM job_offers {where} ORDER BY created_at DESC", params
        ).fetchall()
        return [JobOffer.model_validate(json.loads(r["data"])) for r in rows]

    # Bids

    def get_bid(self, bid_id: str) -> Optional[Bid]:
        row = self._conn.execute("SELECT data FROM bids WHERE id = ?", (bid_id,)).fetchone()
        return Bid.model_validate(json.loads(row["data"])) if row else None

    def save_bid(self, bid: Bid) -> None:
        """Insert or overwrite the bid document and its indexed columns."""
        self._conn.execute(
            """
            INSERT INTO bids (id, job_offer_id, bidder_id, status, is_current_highest, data, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                status = excluded.status,
                is_current_highest = excluded.is_current_highest,
                data = excluded.data,
                updated_at = excluded.updated_at
            """,
            (
                bid.id,
                bid.job_offer_id,
                bid.bidder_id,
                bid.status,
                int(bid.is_current_highest),
                self._dump(bid),
                to_timestamp(bid.created_at),
                to_timestamp(bid.updated_at),
            ),
        )

    def find_bids(
        self,
        job_offer_id: str,
        statuses: Optional[Iterable[str]] = None,
    ) -> list[Bid]:
        """Bids for a job offer in submission order."""
        sql = "SELECT data FROM bids WHERE job_offer_id = ?"
        params: list = [job_offer_id]
        if statuses is not None:
            statuses = list(statuses)
            sql += f" AND status IN ({', '.join('?' for _ in statuses)})"
            params.extend(statuses)
        rows = self._conn.execute(sql + " ORDER BY created_at ASC, rowid ASC", params).fetchall()
        return [Bid.model_validate(json.loads(r["data"])) for r in rows]

    def find_active_bid(self, job_offer_id: str, bidder_id: str) -> Optional[Bid]:
        row = self._conn.execute(
            """
            SELECT data FROM bids
            WHERE job_offer_id = ? AND bidder_id = ? AND status = 'active'
            LIMIT 1
            """,
            (job_offer_id, bidder_id),
        ).fetchone()
        return Bid.model_validate(json.loads(row["data"])) if row else None

    def find_current_highest(self, job_offer_id: str) -> Optional[Bid]:
        row = self._conn.execute(
            """
            SELECT data FROM bids
            WHERE job_offer_id = ? AND is_current_highest = 1 AND status = 'active'
            LIMIT 1
            """,
            (job_offer_id,),
        ).fetchone()
        return Bid.model_validate(json.loads(row["data"])) if row else None

    def bids_by_bidder(self, bidder_id: str) -> list[Bid]:
        rows = self._conn.execute(
            "SELECT data FROM bids WHERE bidder_id = ? ORDER BY created_at DESC",
            (bidder_id,),
        ).fetchall()
        return [Bid.model_validate(json.loads(r["data"])) for r in rows]

    # Price recommendations

    def get_recommendation(self, job_offer_id: str) -> Optional[PriceRecommendation]:
        row = self._conn.execute(
            "SELECT data FROM price_recommendations WHERE job_offer_id = ?",
            (job_offer_id,),
        ).fetchone()
        return PriceRecommendation.model_validate(json.loads(row["data"])) if row else None

    def save_recommendation(self, rec: PriceRecommendation) -> None:
        self._conn.execute(
            """
            INSERT INTO price_recommendations (job_offer_id, data, last_calculated)
            VALUES (?, ?, ?)
            ON CONFLICT(job_offer_id) DO UPDATE SET
                data = excluded.data,
                last_calculated = excluded.last_calculated
            """,
            (rec.job_offer_id, self._dump(rec), to_timestamp(rec.last_calculated)),
        )

    # Assignments

    def insert_assignment(self, assignment: JobAssignment) -> None:
        self._conn.execute(
            """
            INSERT INTO job_assignments (id, job_offer_id, bidder_id, client_id, data, assigned_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                assignment.id,
                assignment.job_offer_id,
                assignment.bidder_id,
                assignment.client_id,
                self._dump(assignment),
                to_timestamp(assignment.assigned_at),
            ),
        )

    def list_assignments(self, job_offer_id: str) -> list[JobAssignment]:
        rows = self._conn.execute(
            "SELECT data FROM job_assignments WHERE job_offer_id = ? ORDER BY assigned_at ASC",
            (job_offer_id,),
        ).fetchall()
        return [JobAssignment.model_validate(json.loads(r["data"])) for r in rows]


class MarketStore:
    """
    SQLite store for the marketplace document collections.
    Every mutation runs inside transaction(), which takes the database write
    lock up front (BEGIN IMMEDIATE): concurrent writers are serialized, so a
    read-compare-write sequence on a job offer's bid set cannot interleave.
    """

    def __init__(self, db_path: str | Path = "handyman_bids.db", busy_timeout: float = 5.0):
        self._db_path = Path(db_path)
        self._busy_timeout = busy_timeout
        ensure_schema(self._db_path)

    @property
    def db_path(self) -> Path:
        return self._db_path

    @contextmanager
    def transaction(self) -> Iterator[MarketSession]:
        """Atomic read-modify-write unit. Commits on success, rolls back on any exception."""
        conn = connect(self._db_path, self._busy_timeout)
        try:
            conn.execute("BEGIN IMMEDIATE")
            yield MarketSession(conn)
            conn.execute("COMMIT")
        except BaseException:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise
        finally:
            conn.close()

    @contextmanager
    def snapshot(self) -> Iterator[MarketSession]:
        """Consistent read-only view (deferred transaction)."""
        conn = connect(self._db_path, self._busy_timeout)
        try:
            conn.execute("BEGIN")
            yield MarketSession(conn)
        finally:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            conn.close()
