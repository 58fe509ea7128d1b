import os
import sqlite3
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import uuid4

from src.adapters.request_logger import NotFoundRequest


# Helper to convert sqlite rows to dicts
def dict_factory(cursor: sqlite3.Cursor, row: Any) -> dict[str, Any]:
    d = {}
    for idx, col in enumerate(cursor.description):
        d[col[0]] = row[idx]
    return d


SCHEMA = """
    CREATE TABLE IF NOT EXISTS notfound_requests (
        id TEXT PRIMARY KEY,
        old_url TEXT NOT NULL,
        referrer TEXT NOT NULL DEFAULT '',
        requested_at TEXT NOT NULL
    );
    CREATE INDEX IF NOT EXISTS idx_notfound_requests_old_url
        ON notfound_requests (old_url);
"""


@dataclass
class NotFoundSuggestion:
    """A logged URL with its hit count, candidate for a new redirect."""

    url: str
    hits: int
    last_seen: datetime
    referrers: dict[str, int] = field(default_factory=dict)


class SQLiteNotFoundLogRepo:
    """SQLite sink for the buffered request logger."""

    def __init__(self, db_path: str):
        self.db_path = db_path

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = dict_factory
        return conn

    def ensure_schema(self) -> None:
        parent = os.path.dirname(self.db_path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        conn = self._get_conn()
        try:
            conn.executescript(SCHEMA)
            conn.commit()
        finally:
            conn.close()

    def save_many(self, entries: list[NotFoundRequest]) -> None:
        conn = self._get_conn()
        try:
            conn.executemany(
                """
                INSERT INTO notfound_requests (id, old_url, referrer, requested_at)
                VALUES (?, ?, ?, ?)
            """,
                [
                    (str(uuid4()), e.url, e.referrer, e.requested_at.isoformat())
                    for e in entries
                ],
            )
            conn.commit()
        finally:
            conn.close()

    def count(self) -> int:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT COUNT(*) AS n FROM notfound_requests").fetchone()
            return int(row["n"])
        finally:
            conn.close()

    def list_suggestions(self, limit: int = 100, min_hits: int = 1) -> list[NotFoundSuggestion]:
        """Logged URLs ordered by hit count, most frequent first."""
        conn = self._get_conn()
        try:
            rows = conn.execute(
                """
                SELECT old_url, COUNT(*) AS hits, MAX(requested_at) AS last_seen
                FROM notfound_requests
                GROUP BY old_url
                HAVING COUNT(*) >= ?
                ORDER BY hits DESC, last_seen DESC
                LIMIT ?
            """,
                (min_hits, limit),
            ).fetchall()

            suggestions = []
            for row in rows:
                referrer_rows = conn.execute(
                    """
                    SELECT referrer, COUNT(*) AS hits
                    FROM notfound_requests
                    WHERE old_url = ? AND referrer != ''
                    GROUP BY referrer
                    ORDER BY hits DESC
                """,
                    (row["old_url"],),
                ).fetchall()
                suggestions.append(
                    NotFoundSuggestion(
                        url=row["old_url"],
                        hits=row["hits"],
                        last_seen=datetime.fromisoformat(row["last_seen"]),
                        referrers={r["referrer"]: r["hits"] for r in referrer_rows},
                    )
                )
            return suggestions
        finally:
            conn.close()

    def delete_for_url(self, url: str) -> int:
        conn = self._get_conn()
        try:
            cursor = conn.execute("DELETE FROM notfound_requests WHERE old_url = ?", (url,))
            conn.commit()
            return cursor.rowcount
        finally:
            conn.close()

    def delete_all(self) -> int:
        conn = self._get_conn()
        try:
            cursor = conn.execute("DELETE FROM notfound_requests")
            conn.commit()
            return cursor.rowcount
        finally:
            conn.close()
