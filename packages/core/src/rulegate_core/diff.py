"""Unified diff parsing: new-file line numbers and GitHub diff positions.

GitHub's review comment API anchors comments on a *position*: the number of
lines below the first ``@@`` hunk header of the file's patch. The first hunk
header is position 0, the line right under it is position 1, and every later
hunk header consumes a position of its own. Positions never reset between
hunks. This is not the same thing as the file's line number, which is what the
pattern checks and the model report.
"""

from __future__ import annotations

import re
from collections.abc import Iterator

from rulegate_core.errors import ParseError
from rulegate_core.models import AddedLine

_HUNK_HEADER_RE = re.compile(r"^@@ -\d+(?:,\d+)? \+(\d+)(?:,\d+)? @@")

# Lines git may emit above the first hunk. GitHub's per-file patch omits them,
# but `git diff` output pasted into a payload includes them.
_FILE_HEADER_PREFIXES = ("diff ", "index ", "--- ", "+++ ", "new file mode", "deleted file mode", "similarity index")

_NO_NEWLINE_MARKER = "\\ No newline at end of file"

# Line kinds yielded by _scan.
_ADDED = "+"
_REMOVED = "-"
_CONTEXT = " "
_HUNK = "@"
_MARKER = "\\"


def _scan(patch: str) -> Iterator[tuple[str, int | None, int, str]]:
    """Yield ``(kind, new_line, position, content)`` for every line of a patch.

    ``new_line`` is None for lines that do not exist in the new file (removed
    lines, hunk headers, no-newline markers).
    """
    new_line: int | None = None
    position = -1  # the first hunk header lands on position 0

    for number, line in enumerate(patch.splitlines(), 1):
        if line.startswith("@@"):
            match = _HUNK_HEADER_RE.match(line)
            if match is None:
                raise ParseError(f"Malformed hunk header on patch line {number}: {line!r}")
            new_line = int(match.group(1))
            position += 1
            yield _HUNK, None, position, line
            continue

        if new_line is None:
            if line.startswith(_FILE_HEADER_PREFIXES) or not line.strip():
                continue
            raise ParseError(f"Patch content before the first hunk header on line {number}: {line!r}")

        position += 1
        if line.startswith(_NO_NEWLINE_MARKER):
            yield _MARKER, None, position, line
        elif line.startswith("+"):
            yield _ADDED, new_line, position, line[1:]
            new_line += 1
        elif line.startswith("-"):
            yield _REMOVED, None, position, line[1:]
        else:
            # Context line. Some tools strip the leading space of blank context lines.
            yield _CONTEXT, new_line, position, line[1:] if line.startswith(" ") else line
            new_line += 1


def build_line_position_map(patch: str) -> dict[int, int]:
    """Map new-file line numbers to their cumulative GitHub diff positions.

    Added and context lines are both mapped so that an issue anchored on an
    unchanged line inside a hunk can still receive an inline comment.

    Raises:
        ParseError: if content appears before a hunk header or a header is malformed.
    """
    positions: dict[int, int] = {}
    for kind, new_line, position, _ in _scan(patch):
        if kind in (_ADDED, _CONTEXT):
            positions[new_line] = position
    return positions


def build_added_line_records(patch: str) -> list[AddedLine]:
    """Return every added line with its new-file line number, in patch order."""
    return [AddedLine(new_line, content) for kind, new_line, _, content in _scan(patch) if kind == _ADDED]


def get_patch_line_content(patch: str, target_line: int) -> str:
    """Return the source content of a specific new-file line number from a patch."""
    for kind, new_line, _, content in _scan(patch):
        if kind in (_ADDED, _CONTEXT) and new_line == target_line:
            return content
    return ""
