"""Value types shared across the review pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class FileStatus(str, Enum):
    ADDED = "added"
    MODIFIED = "modified"
    REMOVED = "removed"
    RENAMED = "renamed"

    @classmethod
    def parse(cls, value: str) -> FileStatus:
        # GitHub also reports "copied", "changed" and "unchanged"; they carry a
        # normal patch so they are reviewed like a modification.
        try:
            return cls(value)
        except ValueError:
            return cls.MODIFIED


class ViolationType(str, Enum):
    NAMING_CONVENTION = "naming_convention"
    SECURITY = "security"
    CODE_QUALITY = "code_quality"
    DOCUMENTATION = "documentation"
    COMMIT_MESSAGE = "commit_message"
    OTHER = "other"


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass(frozen=True)
class FileChange:
    """One file changed by a pull request, as reported by the code host."""

    path: str
    status: FileStatus
    patch: str | None = None
    additions: int = 0
    deletions: int = 0

    @classmethod
    def from_github(cls, file) -> FileChange:
        """Build from a PyGithub ``File``. Binary files have no patch."""
        return cls(
            path=file.filename,
            status=FileStatus.parse(file.status),
            patch=file.patch or None,
            additions=file.additions or 0,
            deletions=file.deletions or 0,
        )


@dataclass(frozen=True)
class AddedLine:
    line_number: int
    content: str


@dataclass(frozen=True)
class RuleChunk:
    """A rule document fragment returned by a similarity search."""

    text: str
    title: str
    source_url: str
    similarity_score: float


@dataclass(frozen=True)
class Violation:
    """One detected issue. ``line_number`` 0 means the issue is not anchored to a line."""

    file_path: str
    line_number: int
    violation_type: ViolationType
    severity: Severity
    message: str
    suggestion: str | None = None
    rule_reference: str | None = None
    confidence_score: float = 0.8


@dataclass
class ReviewDecision:
    approve: bool
    violations: list[Violation]
    summary: str
    files_analyzed: int
    total_files: int

    @property
    def error_count(self) -> int:
        return sum(1 for v in self.violations if v.severity is Severity.ERROR)

    @property
    def warning_count(self) -> int:
        return sum(1 for v in self.violations if v.severity is Severity.WARNING)


@dataclass(frozen=True)
class ExistingComment:
    """A review comment already posted on the pull request."""

    path: str
    line: int | None
    body: str

    @classmethod
    def from_github(cls, comment) -> ExistingComment:
        # line is None for comments whose line no longer exists in the current
        # diff (e.g. after a force-push). Fall back to original_line then.
        line = comment.line if comment.line is not None else getattr(comment, "original_line", None)
        return cls(path=comment.path, line=line, body=comment.body or "")


@dataclass(frozen=True)
class InlineComment:
    """A comment ready to be attached to a diff position.

    Only ``path``, ``position`` and ``body`` are sent to GitHub; ``line`` and
    ``violation_type`` are kept for deduplication and dry-run output.
    """

    path: str
    position: int
    body: str
    line: int
    violation_type: ViolationType
    severity: Severity

    def to_api(self) -> dict:
        return {"path": self.path, "position": self.position, "body": self.body}


@dataclass(frozen=True)
class PullRequestEvent:
    """The part of a ``pull_request`` webhook payload the pipeline needs."""

    repo: str
    number: int
    title: str
    author: str
    body: str = ""
    head_ref: str = ""
    base_ref: str = ""
    head_sha: str = ""
    state: str = "open"
    changed_files: int = 0
    additions: int = 0
    deletions: int = 0
    draft: bool = False

    @classmethod
    def from_webhook(cls, payload: dict) -> PullRequestEvent:
        pr = payload["pull_request"]
        return cls(
            repo=payload["repository"]["full_name"],
            number=pr["number"],
            title=pr.get("title") or "",
            author=(pr.get("user") or {}).get("login", ""),
            body=pr.get("body") or "",
            head_ref=(pr.get("head") or {}).get("ref", ""),
            base_ref=(pr.get("base") or {}).get("ref", ""),
            head_sha=(pr.get("head") or {}).get("sha", ""),
            state=pr.get("state") or "open",
            changed_files=pr.get("changed_files") or 0,
            additions=pr.get("additions") or 0,
            deletions=pr.get("deletions") or 0,
            draft=bool(pr.get("draft")),
        )

    @classmethod
    def from_pull(cls, repo: str, pr) -> PullRequestEvent:
        """Build from a PyGithub ``PullRequest`` for manually triggered reviews."""
        return cls(
            repo=repo,
            number=pr.number,
            title=pr.title or "",
            author=pr.user.login if pr.user else "",
            body=pr.body or "",
            head_ref=pr.head.ref,
            base_ref=pr.base.ref,
            head_sha=pr.head.sha,
            state=pr.state or "open",
            changed_files=pr.changed_files or 0,
            additions=pr.additions or 0,
            deletions=pr.deletions or 0,
            draft=bool(pr.draft),
        )
