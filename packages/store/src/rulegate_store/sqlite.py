"""SQLiteStore — local file-based store for review state.

Why SQLite as the local store:
- Batteries included: ships with Python, no extra dependencies.
- Fast random access: the (repo, pr_number) key is a unique index.
- Good for single-host deployments and CI caching (point store_path at a
  path shared between jobs).

Schema:
  pull_requests — one row per pull request, upserted by (repo, pr_number).
  violations    — the current violations of each pull request; replaced
                  wholesale on every review run.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from dataclasses import asdict, fields
from datetime import datetime, timezone

from rulegate_store.base import BaseStore
from rulegate_store.models import PullRequestRecord, ViolationRecord

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS pull_requests (
    id                INTEGER PRIMARY KEY AUTOINCREMENT,
    repo              TEXT NOT NULL,
    pr_number         INTEGER NOT NULL,
    title             TEXT,
    description       TEXT,
    author            TEXT,
    source_branch     TEXT,
    target_branch     TEXT,
    status            TEXT DEFAULT 'open',
    review_decision   TEXT DEFAULT 'pending',
    review_comment    TEXT,
    github_review_id  TEXT,
    files_changed     INTEGER DEFAULT 0,
    additions         INTEGER DEFAULT 0,
    deletions         INTEGER DEFAULT 0,
    created_at        TEXT,
    updated_at        TEXT,
    UNIQUE (repo, pr_number)
);
CREATE TABLE IF NOT EXISTS violations (
    id                INTEGER PRIMARY KEY AUTOINCREMENT,
    pull_request_id   INTEGER NOT NULL REFERENCES pull_requests (id) ON DELETE CASCADE,
    file_path         TEXT NOT NULL,
    line_number       INTEGER DEFAULT 0,
    violation_type    TEXT,
    severity          TEXT,
    message           TEXT,
    suggestion        TEXT,
    rule_reference    TEXT,
    confidence_score  REAL DEFAULT 0,
    created_at        TEXT
);
CREATE INDEX IF NOT EXISTS idx_violations_pr ON violations (pull_request_id);
"""

_PR_COLUMNS = [f.name for f in fields(PullRequestRecord) if f.name != "id"]
_VIOLATION_COLUMNS = [f.name for f in fields(ViolationRecord) if f.name != "id"]


class SQLiteStore(BaseStore):
    """Stores review state in a local SQLite database file.

    The database file path defaults to `.rulegate.db` in the current working
    directory. Configure via .rulegate.yml: `store_path: /path/to/rulegate.db`.
    """

    def __init__(self, db_path: str = ".rulegate.db"):
        super().__init__()
        # One connection shared across threads; _conn_lock serialises access.
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn_lock = threading.Lock()
        self._conn.executescript(_SCHEMA)
        self._conn.commit()

    def find_pr(self, repo: str, pr_number: int) -> PullRequestRecord | None:
        with self._conn_lock:
            row = self._conn.execute(
                "SELECT * FROM pull_requests WHERE repo=? AND pr_number=?",
                (repo, pr_number),
            ).fetchone()
        return PullRequestRecord(**dict(row)) if row else None

    def save_pr(self, record: PullRequestRecord) -> PullRequestRecord:
        record.updated_at = datetime.now(timezone.utc).isoformat()
        values = asdict(record)
        with self._conn_lock:
            if record.id is None:
                existing = self._conn.execute(
                    "SELECT id FROM pull_requests WHERE repo=? AND pr_number=?",
                    (record.repo, record.pr_number),
                ).fetchone()
                if existing is not None:
                    record.id = existing["id"]

            if record.id is None:
                cursor = self._conn.execute(
                    f"INSERT INTO pull_requests ({', '.join(_PR_COLUMNS)}) "
                    f"VALUES ({', '.join('?' for _ in _PR_COLUMNS)})",
                    [values[c] for c in _PR_COLUMNS],
                )
                record.id = cursor.lastrowid
            else:
                columns = [c for c in _PR_COLUMNS if c != "created_at"]
                self._conn.execute(
                    f"UPDATE pull_requests SET {', '.join(f'{c}=?' for c in columns)} WHERE id=?",
                    [values[c] for c in columns] + [record.id],
                )
            self._conn.commit()
        return record

    def replace_violations(self, pull_request_id: int, rows: list[dict]) -> int:
        records = [ViolationRecord(pull_request_id=pull_request_id, **row) for row in rows]
        insert = (
            f"INSERT INTO violations ({', '.join(_VIOLATION_COLUMNS)}) "
            f"VALUES ({', '.join('?' for _ in _VIOLATION_COLUMNS)})"
        )
        # The delete and the inserts commit or roll back together.
        with self._conn_lock, self._conn:
            cursor = self._conn.execute("DELETE FROM violations WHERE pull_request_id=?", (pull_request_id,))
            removed = cursor.rowcount
            for record in records:
                values = asdict(record)
                self._conn.execute(insert, [values[c] for c in _VIOLATION_COLUMNS])
        return removed

    def list_violations(self, pull_request_id: int) -> list[ViolationRecord]:
        with self._conn_lock:
            rows = self._conn.execute(
                "SELECT * FROM violations WHERE pull_request_id=? ORDER BY file_path, line_number, id",
                (pull_request_id,),
            ).fetchall()
        return [ViolationRecord(**dict(r)) for r in rows]

    def list_pull_requests(self, repo: str) -> list[PullRequestRecord]:
        with self._conn_lock:
            rows = self._conn.execute(
                "SELECT * FROM pull_requests WHERE repo=? ORDER BY created_at, id",
                (repo,),
            ).fetchall()
        return [PullRequestRecord(**dict(r)) for r in rows]

    def close(self) -> None:
        self._conn.close()
