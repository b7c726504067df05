"""Core PR review orchestration.

One ReviewOrchestrator.review() call walks a pull request through

    received → persisting_pr → fetching_diff → analyzing
             → persisting_violations → deciding → submitting → done

Every step goes through _run_stage(), which records a StageResult and looks the
stage up in FAILURE_POLICY: fatal stages move the run to ``failed`` and raise
ReviewAborted (carrying the run, so whatever was computed survives); non-fatal
stages log and let the run continue. Side steps (reviewer requests, the
self-approval check, fetching existing comments) are best-effort and never
change the run's state.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum

from rich.console import Console

from rulegate_core.aggregator import aggregate
from rulegate_core.comments import deduplicate, position_comments
from rulegate_core.config import ReviewSettings
from rulegate_core.detector import AnalysisOutcome, ViolationDetector
from rulegate_core.diff import build_line_position_map
from rulegate_core.errors import ParseError, PersistenceError, ReviewAborted
from rulegate_core.models import FileChange, InlineComment, PullRequestEvent, ReviewDecision, Violation

console = Console()
logger = logging.getLogger(__name__)

APPROVE = "APPROVE"
REQUEST_CHANGES = "REQUEST_CHANGES"
COMMENT = "COMMENT"

_SELF_REVIEW_NOTE = (
    "\n\n_Posted as a comment instead of {event}: GitHub does not allow reviewing your own pull request "
    "with {event}._"
)


class Stage(str, Enum):
    RECEIVED = "received"
    PERSISTING_PR = "persisting_pr"
    FETCHING_DIFF = "fetching_diff"
    ANALYZING = "analyzing"
    PERSISTING_VIOLATIONS = "persisting_violations"
    DECIDING = "deciding"
    SUBMITTING = "submitting"
    DONE = "done"
    FAILED = "failed"


class StageStatus(str, Enum):
    OK = "ok"
    SKIPPED = "skipped"
    FAILED = "failed"


# True = a failure aborts the run.
FAILURE_POLICY: dict[Stage, bool] = {
    Stage.PERSISTING_PR: True,
    Stage.FETCHING_DIFF: True,
    Stage.ANALYZING: False,
    Stage.PERSISTING_VIOLATIONS: False,
    Stage.DECIDING: True,
    Stage.SUBMITTING: True,
}


@dataclass
class StageResult:
    stage: Stage
    status: StageStatus
    error: str | None = None
    elapsed: float = 0.0


@dataclass
class ReviewRun:
    """Everything one review run produced, successful or not."""

    repo: str
    pr_number: int
    state: Stage = Stage.RECEIVED
    history: list[StageResult] = field(default_factory=list)
    files: list[FileChange] = field(default_factory=list)
    analysis: AnalysisOutcome = field(default_factory=AnalysisOutcome)
    decision: ReviewDecision | None = None
    event: str | None = None
    comments: list[InlineComment] = field(default_factory=list)
    unresolved: list[Violation] = field(default_factory=list)
    review_id: int | None = None

    @property
    def violations(self) -> list[Violation]:
        return self.analysis.violations

    def result_for(self, stage: Stage) -> StageResult | None:
        for result in self.history:
            if result.stage is stage:
                return result
        return None


@contextmanager
def _persisting(action: str):
    try:
        yield
    except Exception as e:
        raise PersistenceError(f"Could not {action}: {e}") from e


def _decision_label(approve: bool) -> str:
    return "approved" if approve else "changes_requested"


def _violation_row(v: Violation) -> dict:
    return {
        "file_path": v.file_path,
        "line_number": v.line_number,
        "violation_type": v.violation_type.value,
        "severity": v.severity.value,
        "message": v.message,
        "suggestion": v.suggestion,
        "rule_reference": v.rule_reference,
        "confidence_score": v.confidence_score,
    }


class ReviewOrchestrator:
    """Drives one pull request through the review stages.

    ``store`` is any object with ``lock(repo, pr_number)``, ``upsert_pr(repo,
    pr_number, **fields)`` returning a record with ``id``, ``repo`` and
    ``pr_number``, and ``replace_violations(pull_request_id, rows)``. Only plain
    field values cross that boundary.
    """

    def __init__(self, host, detector: ViolationDetector, store, settings: ReviewSettings, dry_run: bool = False):
        self.host = host
        self.detector = detector
        self.store = store
        self.settings = settings
        self.dry_run = dry_run

    # ------------------------------------------------------------------ #
    # Entry points                                                         #
    # ------------------------------------------------------------------ #

    def process_pull_request(self, payload: dict) -> ReviewRun:
        """Review the pull request of a ``pull_request`` webhook payload."""
        return self.review(PullRequestEvent.from_webhook(payload))

    def review(self, event: PullRequestEvent) -> ReviewRun:
        """Run the full pipeline for one pull request.

        Raises:
            ReviewAborted: when a fatal stage fails. ``error.run`` holds the
                partial run, including the decision if it was computed.
        """
        run = ReviewRun(repo=event.repo, pr_number=event.number)
        run.history.append(StageResult(Stage.RECEIVED, StageStatus.OK))
        logger.info("Processing PR %s#%d", event.repo, event.number)

        if event.draft and not self.settings.review_draft_prs:
            logger.info("Skipping draft PR %s#%d", event.repo, event.number)
            run.history[-1] = StageResult(Stage.RECEIVED, StageStatus.SKIPPED, "draft pull request")
            run.state = Stage.DONE
            return run

        record = self._run_stage(run, Stage.PERSISTING_PR, self._persist_pr, event)
        run.files = self._run_stage(run, Stage.FETCHING_DIFF, self.host.list_changed_files, event.repo, event.number)
        logger.info("Found %d changed file(s)", len(run.files))

        analysis = self._run_stage(run, Stage.ANALYZING, self.detector.analyze_files, run.files)
        if analysis is not None:
            run.analysis = analysis
        logger.info(
            "Analysis complete: %d violation(s) in %d/%d file(s)",
            len(run.violations),
            run.analysis.files_analyzed,
            len(run.files),
        )

        self._run_stage(run, Stage.PERSISTING_VIOLATIONS, self._persist_violations, record, run.violations)
        run.decision = self._run_stage(
            run, Stage.DECIDING, aggregate, run.violations, run.analysis.files_analyzed, len(run.files)
        )

        self._request_reviewers(event)
        run.event, body = self._choose_event(event, run.decision)
        run.comments, run.unresolved = self._prepare_comments(run)
        self._record_decision(event, run.decision, body)

        if self.dry_run:
            run.history.append(StageResult(Stage.SUBMITTING, StageStatus.SKIPPED, "dry run"))
            print_dry_run(run)
        else:
            run.review_id = self._run_stage(run, Stage.SUBMITTING, self._submit, run, body)
            logger.info("Review submitted: %s#%d - %s", event.repo, event.number, run.event)
            self._record_review_id(event, run.review_id)

        run.state = Stage.DONE
        return run

    # ------------------------------------------------------------------ #
    # Stage runner                                                         #
    # ------------------------------------------------------------------ #

    def _run_stage(self, run: ReviewRun, stage: Stage, fn, *args):
        run.state = stage
        started = time.monotonic()
        try:
            value = fn(*args)
        except Exception as e:
            run.history.append(StageResult(stage, StageStatus.FAILED, str(e), time.monotonic() - started))
            if FAILURE_POLICY[stage]:
                run.state = Stage.FAILED
                logger.error("%s#%d: %s failed: %s", run.repo, run.pr_number, stage.value, e)
                raise ReviewAborted(stage, e, run) from e
            logger.warning("%s#%d: %s failed, continuing: %s", run.repo, run.pr_number, stage.value, e)
            return None
        run.history.append(StageResult(stage, StageStatus.OK, None, time.monotonic() - started))
        return value

    # ------------------------------------------------------------------ #
    # Stages                                                               #
    # ------------------------------------------------------------------ #

    def _persist_pr(self, event: PullRequestEvent):
        with self.store.lock(event.repo, event.number), _persisting("save the pull request record"):
            return self.store.upsert_pr(
                event.repo,
                event.number,
                title=event.title,
                description=event.body,
                author=event.author,
                source_branch=event.head_ref,
                target_branch=event.base_ref,
                status="open" if event.state == "open" else "closed",
                files_changed=event.changed_files,
                additions=event.additions,
                deletions=event.deletions,
            )

    def _persist_violations(self, record, violations: list[Violation]) -> None:
        # No id means the store keeps nothing (NoOpStore).
        if record.id is None:
            return
        rows = [_violation_row(v) for v in violations]
        with self.store.lock(record.repo, record.pr_number), _persisting("replace stored violations"):
            removed = self.store.replace_violations(record.id, rows)
        logger.debug("Replaced %d stored violation(s) with %d", removed, len(rows))

    def _submit(self, run: ReviewRun, body: str) -> int:
        comments = run.comments
        if not comments:
            return self.host.submit_review(run.repo, run.pr_number, run.event, body, [])

        # GitHub caps comments per review; all but the last batch go out as
        # neutral COMMENT reviews and the last one carries the real event.
        limit = max(1, self.settings.batch_limit)
        batches = [comments[i : i + limit] for i in range(0, len(comments), limit)]
        posted = 0
        review_id = None
        for idx, batch in enumerate(batches):
            is_last = idx == len(batches) - 1
            batch_body = body if is_last else f"Review in progress ({posted + len(batch)}/{len(comments)} comments)..."
            batch_event = run.event if is_last else COMMENT
            review_id = self.host.submit_review(run.repo, run.pr_number, batch_event, batch_body, batch)
            posted += len(batch)
        return review_id

    # ------------------------------------------------------------------ #
    # Best-effort side steps                                               #
    # ------------------------------------------------------------------ #

    def _request_reviewers(self, event: PullRequestEvent) -> None:
        author = event.author.lower()
        reviewers = [r for r in self.settings.reviewers if r.lower() != author]
        if not reviewers or self.dry_run:
            return
        try:
            self.host.request_reviewers(event.repo, event.number, reviewers)
            logger.info("Requested review from %s", ", ".join(reviewers))
        except Exception as e:
            logger.warning("Could not request reviewers for %s#%d: %s", event.repo, event.number, e)

    def _choose_event(self, event: PullRequestEvent, decision: ReviewDecision) -> tuple[str, str]:
        """Return the review event and body, downgrading to COMMENT on one's own PR."""
        intended = APPROVE if decision.approve else REQUEST_CHANGES
        try:
            acting = self.host.get_acting_login()
        except Exception as e:
            logger.warning("Could not resolve the acting GitHub identity: %s", e)
            return intended, decision.summary

        if acting and event.author and acting.lower() == event.author.lower():
            logger.info("Acting identity %s authored the PR; posting %s as %s", acting, intended, COMMENT)
            return COMMENT, decision.summary + _SELF_REVIEW_NOTE.format(event=intended)
        return intended, decision.summary

    def _prepare_comments(self, run: ReviewRun) -> tuple[list[InlineComment], list[Violation]]:
        position_maps: dict[str, dict[int, int]] = {}
        for f in run.files:
            if not f.patch:
                continue
            try:
                position_maps[f.path] = build_line_position_map(f.patch)
            except ParseError:
                # Already reported by the detector; no inline comments for this file.
                continue

        candidates, unresolved = position_comments(run.violations, position_maps)
        try:
            existing = self.host.list_existing_review_comments(run.repo, run.pr_number)
        except Exception as e:
            logger.warning("Could not fetch existing comments; duplicates will not be filtered: %s", e)
            existing = []
        comments = deduplicate(candidates, existing)
        if len(comments) < len(candidates):
            logger.info("Dropped %d comment(s) already posted by a previous run", len(candidates) - len(comments))
        return comments, unresolved

    def _record_decision(self, event: PullRequestEvent, decision: ReviewDecision, body: str) -> None:
        try:
            with self.store.lock(event.repo, event.number):
                self.store.upsert_pr(
                    event.repo,
                    event.number,
                    review_decision=_decision_label(decision.approve),
                    review_comment=body,
                )
        except Exception as e:
            logger.warning("Could not store the decision for %s#%d: %s", event.repo, event.number, e)

    def _record_review_id(self, event: PullRequestEvent, review_id: int | None) -> None:
        if review_id is None:
            return
        try:
            with self.store.lock(event.repo, event.number):
                self.store.upsert_pr(event.repo, event.number, github_review_id=str(review_id))
        except Exception as e:
            logger.warning("Could not store the review id for %s#%d: %s", event.repo, event.number, e)


def print_dry_run(run: ReviewRun) -> None:
    """Print the review to the terminal without posting to GitHub."""
    _severity_color = {"error": "red", "warning": "yellow", "info": "blue"}
    decision = run.decision
    console.print(
        f"\n[bold]Dry run — {run.repo}#{run.pr_number}: {run.event}[/bold] "
        f"({decision.error_count} error(s), {decision.warning_count} warning(s), "
        f"{decision.files_analyzed}/{decision.total_files} file(s) analyzed)\n"
    )
    if not run.comments:
        console.print("[yellow]No inline comments would be posted.[/yellow]")
    for c in run.comments:
        color = _severity_color.get(c.severity.value, "white")
        console.print(
            f"[bold cyan]{c.path}[/bold cyan]  line [bold]{c.line}[/bold] (position {c.position})  "
            f"[{color}]{c.severity.value.upper()}[/{color}]"
        )
        console.print(f"  {c.body}")
        console.print()
    for v in run.unresolved:
        console.print(f"[dim]Not anchored: {v.file_path}:{v.line_number} [{v.violation_type.value}] {v.message}[/dim]")


def run_review(repo: str, pr_number: int, config: dict, store, dry_run: bool = False) -> ReviewRun:
    """Build the pipeline from configuration and review one pull request.

    ``store`` is built by the caller (the CLI picks the backend from config).
    """
    from rulegate_core.config import require
    from rulegate_core.gh.pull_request import GitHubHost
    from rulegate_core.providers import get_chat_provider, get_embedder
    from rulegate_core.retrieval import RuleRetriever
    from rulegate_core.vectorstore.chroma import ChromaVectorIndex

    settings = ReviewSettings.from_config(config)
    host = GitHubHost(token=require(config, "github_token"), timeout=settings.request_timeout)
    retriever = RuleRetriever(
        get_embedder(config, settings.request_timeout),
        ChromaVectorIndex(path=config["vector_store_path"]),
        settings,
    )
    detector = ViolationDetector(retriever, get_chat_provider(config, settings.request_timeout), settings)
    orchestrator = ReviewOrchestrator(host, detector, store, settings, dry_run=dry_run)
    return orchestrator.review(host.get_pull_request_event(repo, pr_number))
