"""Turn a pull request's violations into an approve / request-changes decision."""

from __future__ import annotations

from collections import Counter

from rulegate_core.models import ReviewDecision, Severity, Violation

# Zero tolerance: a single error-severity violation blocks approval. Not a
# tunable; warnings and info never block.
MAX_ERRORS_FOR_APPROVAL = 0


def should_approve(violations: list[Violation]) -> bool:
    errors = sum(1 for v in violations if v.severity is Severity.ERROR)
    return errors <= MAX_ERRORS_FOR_APPROVAL


def build_summary(approve: bool, errors: int, warnings: int, files_analyzed: int, total_files: int) -> str:
    """Build the top-level review body posted as the GitHub review description."""
    decision = "Approved" if approve else "Changes requested"
    lines = [
        f"## {'✅' if approve else '❌'} Automated code review\n",
        f"**Decision**: {decision}\n",
        f"**Files analyzed**: {files_analyzed} of {total_files}",
        f"**Errors**: {errors}",
        f"**Warnings**: {warnings}\n",
    ]
    if approve and not warnings:
        lines.append("> No rule violations found. The changes look good.")
    elif approve:
        lines.append(f"> {warnings} warning(s) to look at; nothing blocks the merge.")
    else:
        lines.append(f"> {errors} error(s) must be fixed before this can be approved. See the inline comments.")
    return "\n".join(lines)


def aggregate(violations: list[Violation], files_analyzed: int, total_files: int) -> ReviewDecision:
    """Combine every file's violations into one decision.

    Pure: the same violations (in any order) always give the same decision and
    the same summary.
    """
    counts = Counter(v.severity for v in violations)
    approve = should_approve(violations)
    summary = build_summary(
        approve,
        counts[Severity.ERROR],
        counts[Severity.WARNING],
        files_analyzed,
        total_files,
    )
    return ReviewDecision(
        approve=approve,
        violations=list(violations),
        summary=summary,
        files_analyzed=files_analyzed,
        total_files=total_files,
    )
