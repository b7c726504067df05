"""Inline comment placement and cross-run deduplication."""

from __future__ import annotations

import logging
import re

from rulegate_core.models import ExistingComment, InlineComment, Violation

logger = logging.getLogger(__name__)

# "**[security]** ..." or "[security] ..." at the very start of a comment body.
_TAG_RE = re.compile(r"^\s*(?:\*\*)?\[([a-z_]+)\](?:\*\*)?", re.IGNORECASE)


def format_comment_body(violation: Violation) -> str:
    parts = [f"**[{violation.violation_type.value}]** {violation.message}"]
    if violation.suggestion:
        parts.append(f"💡 Suggestion: {violation.suggestion}")
    if violation.rule_reference:
        parts.append(f"📚 Rule: {violation.rule_reference}")
    return "\n\n".join(parts)


def extract_violation_tag(body: str) -> str | None:
    """Return the lower-cased ``[type]`` tag a comment body starts with, or None."""
    match = _TAG_RE.match(body or "")
    return match.group(1).lower() if match else None


def position_comments(
    violations: list[Violation],
    position_maps: dict[str, dict[int, int]],
) -> tuple[list[InlineComment], list[Violation]]:
    """Split violations into inline comments and unresolved violations.

    A violation becomes a comment when it has a line number and that line has
    a diff position in its file's map. Unresolved violations still count
    toward the decision; they are only never posted inline.
    """
    comments: list[InlineComment] = []
    unresolved: list[Violation] = []
    for v in violations:
        position = position_maps.get(v.file_path, {}).get(v.line_number) if v.line_number > 0 else None
        if position is None:
            unresolved.append(v)
            continue
        comments.append(
            InlineComment(
                path=v.file_path,
                position=position,
                body=format_comment_body(v),
                line=v.line_number,
                violation_type=v.violation_type,
                severity=v.severity,
            )
        )

    if unresolved:
        logger.warning(
            "%d violation(s) have no diff position and will not be posted inline: %s",
            len(unresolved),
            ", ".join(f"{v.file_path}:{v.line_number}" for v in unresolved),
        )
    return comments, unresolved


def deduplicate(candidates: list[InlineComment], existing: list[ExistingComment]) -> list[InlineComment]:
    """Drop candidates whose ``(path, line, type)`` was already flagged.

    A previous comment of the same violation class on the
    same line suppresses a new one even if the wording differs.
    """
    seen: set[tuple[str, int | None, str]] = set()
    for c in existing:
        tag = extract_violation_tag(c.body)
        if tag is not None:
            seen.add((c.path, c.line, tag))

    kept = []
    for candidate in candidates:
        key = (candidate.path, candidate.line, candidate.violation_type.value)
        if key in seen:
            logger.debug("Skipping duplicate %s comment on %s:%d", key[2], candidate.path, candidate.line)
            continue
        kept.append(candidate)
    return kept
