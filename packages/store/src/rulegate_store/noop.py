"""No-op store — the default when no store is configured.

Reviews are still posted to GitHub but nothing is persisted. Using a NoOpStore
rather than None lets the orchestrator always call the store without
conditional checks.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rulegate_store.base import BaseStore

if TYPE_CHECKING:
    from rulegate_store.models import PullRequestRecord, ViolationRecord


class NoOpStore(BaseStore):
    """Silently discards all records — zero configuration required.

    Teams that want review status and history switch to SQLiteStore
    (.rulegate.yml: store: sqlite).
    """

    def find_pr(self, repo: str, pr_number: int) -> PullRequestRecord | None:
        return None

    def save_pr(self, record: PullRequestRecord) -> PullRequestRecord:
        return record

    def replace_violations(self, pull_request_id: int, rows: list[dict]) -> int:
        return 0

    def list_violations(self, pull_request_id: int) -> list[ViolationRecord]:
        return []

    def list_pull_requests(self, repo: str) -> list[PullRequestRecord]:
        return []
