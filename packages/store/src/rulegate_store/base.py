"""Abstract store interface.

Any team-specific storage backend (SQLite, Postgres, a hosted service)
implements this interface. The orchestrator depends on BaseStore's methods,
not on a concrete backend, so backends are swappable without touching
pipeline code.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import replace

from rulegate_store.models import PullRequestRecord, ViolationRecord


class BaseStore(ABC):
    """Key-value style persistence for pull request and violation records.

    Writes for one ``(repo, pr_number)`` key must be wrapped in ``lock()`` so
    two overlapping reviews of the same pull request cannot interleave their
    delete-then-insert of violations.
    """

    def __init__(self):
        self._locks: dict[tuple[str, int], threading.RLock] = {}
        self._locks_guard = threading.Lock()

    @contextmanager
    def lock(self, repo: str, pr_number: int) -> Iterator[None]:
        """Hold the per-pull-request write lock for the duration of the block."""
        with self._locks_guard:
            key_lock = self._locks.setdefault((repo, pr_number), threading.RLock())
        with key_lock:
            yield

    @abstractmethod
    def find_pr(self, repo: str, pr_number: int) -> PullRequestRecord | None:
        """Return the record for a pull request, or None."""

    @abstractmethod
    def save_pr(self, record: PullRequestRecord) -> PullRequestRecord:
        """Insert or update a pull request record; return it with ``id`` set."""

    def upsert_pr(self, repo: str, pr_number: int, **fields) -> PullRequestRecord:
        """Create or update the record keyed by ``(repo, pr_number)`` from plain field values.

        Raises TypeError on a field name PullRequestRecord does not have.
        """
        record = self.find_pr(repo, pr_number) or PullRequestRecord(repo=repo, pr_number=pr_number)
        return self.save_pr(replace(record, **fields))

    @abstractmethod
    def replace_violations(self, pull_request_id: int, rows: list[dict]) -> int:
        """Swap the stored violations of a pull request for ``rows``, all or nothing.

        Each row holds ViolationRecord fields other than ``pull_request_id``.
        Returns how many previous violations were removed. If any row fails,
        the previous set is left untouched.
        """

    @abstractmethod
    def list_violations(self, pull_request_id: int) -> list[ViolationRecord]:
        """Return the violations of a pull request. Never raises on an unknown id."""

    @abstractmethod
    def list_pull_requests(self, repo: str) -> list[PullRequestRecord]:
        """Return every pull request record for a repo, oldest first."""

    def close(self) -> None:
        """Release any resources held by the store (connections, file handles).

        Optional — subclasses that need cleanup should override this.
        Default is a no-op so callers can always call close() safely.
        """
