"""Persisted pull request and violation records.

Plain strings and numbers only: rulegate_store never imports rulegate_core, so
the store layer can be used on its own (e.g. by the status command).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class PullRequestRecord:
    """One pull request, created or updated by key ``(repo, pr_number)``."""

    repo: str
    pr_number: int
    title: str = ""
    description: str = ""
    author: str = ""
    source_branch: str = ""
    target_branch: str = ""
    status: str = "open"  # "open" | "closed"
    review_decision: str = "pending"  # "pending" | "approved" | "changes_requested"
    review_comment: str = ""
    github_review_id: str | None = None
    files_changed: int = 0
    additions: int = 0
    deletions: int = 0
    id: int | None = None
    created_at: str = field(default_factory=_now)
    updated_at: str = field(default_factory=_now)


@dataclass
class ViolationRecord:
    """A detected violation persisted against its pull request.

    The full set for a pull request is replaced on every review run.
    """

    pull_request_id: int
    file_path: str
    line_number: int
    violation_type: str
    severity: str
    message: str
    suggestion: str | None = None
    rule_reference: str | None = None
    confidence_score: float = 0.0
    id: int | None = None
    created_at: str = field(default_factory=_now)
