"""
Integration tests for the SQLite not-found log.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from src.adapters.request_logger import BufferedRequestLogger, NotFoundRequest
from src.adapters.sqlite.notfound_log import SQLiteNotFoundLogRepo

T0 = datetime(2026, 3, 1, 9, 0, tzinfo=UTC)


@pytest.fixture
def repo(tmp_path: Path) -> SQLiteNotFoundLogRepo:
    r = SQLiteNotFoundLogRepo(str(tmp_path / "data" / "notfound.db"))
    r.ensure_schema()
    return r


def entry(url: str, referrer: str = "", minutes: int = 0) -> NotFoundRequest:
    return NotFoundRequest(url=url, referrer=referrer, requested_at=T0 + timedelta(minutes=minutes))


class TestSQLiteNotFoundLogRepo:
    def test_ensure_schema_creates_directory(self, tmp_path: Path, repo: SQLiteNotFoundLogRepo) -> None:
        assert (tmp_path / "data" / "notfound.db").exists()
        repo.ensure_schema()
        assert repo.count() == 0

    def test_save_many(self, repo: SQLiteNotFoundLogRepo) -> None:
        repo.save_many([entry("/a"), entry("/b")])
        assert repo.count() == 2

    def test_suggestions_ordered_by_hits(self, repo: SQLiteNotFoundLogRepo) -> None:
        repo.save_many(
            [
                entry("/rare", minutes=5),
                entry("/common", "/blog", 1),
                entry("/common", "/blog", 2),
                entry("/common", "https://other.example/", 3),
            ]
        )

        suggestions = repo.list_suggestions()

        assert [s.url for s in suggestions] == ["/common", "/rare"]
        top = suggestions[0]
        assert top.hits == 3
        assert top.last_seen == T0 + timedelta(minutes=3)
        assert top.referrers == {"/blog": 2, "https://other.example/": 1}
        assert suggestions[1].referrers == {}

    def test_suggestions_min_hits_and_limit(self, repo: SQLiteNotFoundLogRepo) -> None:
        repo.save_many([entry("/a"), entry("/a"), entry("/b"), entry("/c"), entry("/c")])

        assert {s.url for s in repo.list_suggestions(min_hits=2)} == {"/a", "/c"}
        assert len(repo.list_suggestions(limit=1)) == 1

    def test_delete_for_url(self, repo: SQLiteNotFoundLogRepo) -> None:
        repo.save_many([entry("/a"), entry("/a"), entry("/b")])

        assert repo.delete_for_url("/a") == 2
        assert repo.delete_for_url("/missing") == 0
        assert repo.count() == 1

    def test_delete_all(self, repo: SQLiteNotFoundLogRepo) -> None:
        repo.save_many([entry("/a"), entry("/b")])
        assert repo.delete_all() == 2
        assert repo.count() == 0


class TestLoggerIntoRepo:
    def test_buffered_logger_persists(self, repo: SQLiteNotFoundLogRepo) -> None:
        rl = BufferedRequestLogger(repo, buffer_size=10, threshold=5)
        rl.log_request("/old/page", "/blog")
        rl.log_request("/old/page", "")
        rl.close()

        suggestions = repo.list_suggestions()
        assert len(suggestions) == 1
        assert suggestions[0].hits == 2
        assert suggestions[0].referrers == {"/blog": 1}
