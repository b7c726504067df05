"""Fast regex checks run on added lines before any model call.

Each check yields at most one violation per line, with a fixed severity and
confidence. Only added lines are inspected: pre-existing code is not the
author's responsibility in this pull request.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from rulegate_core.models import AddedLine, Severity, Violation, ViolationType
from rulegate_core.utils.code import is_test_file


@dataclass(frozen=True)
class PatternCheck:
    name: str
    patterns: tuple[re.Pattern, ...]
    violation_type: ViolationType
    severity: Severity
    confidence: float
    message: str
    suggestion: str
    rule_reference: str
    skip_test_files: bool = False

    def matches(self, code: str) -> bool:
        return any(p.search(code) for p in self.patterns)


HARDCODED_SECRET = PatternCheck(
    name="hardcoded_secret",
    patterns=(
        # Template placeholders such as "<%= pw %>" or "{{ pw }}" are not secrets.
        re.compile(r"password\s*=\s*[\"'](?!<%|\{\{\s*)[^\"']+[\"']", re.IGNORECASE),
        re.compile(r"api[_-]?key\s*=\s*[\"'][^\"']+[\"']", re.IGNORECASE),
        re.compile(r"secret\s*=\s*[\"'][^\"']+[\"']", re.IGNORECASE),
        re.compile(r"token\s*=\s*[\"'][^\"']+[\"']", re.IGNORECASE),
        re.compile(r"aws[_-]?secret\s*=\s*[\"'][^\"']+[\"']", re.IGNORECASE),
    ),
    violation_type=ViolationType.SECURITY,
    severity=Severity.ERROR,
    confidence=0.9,
    message="Hardcoded secret detected.",
    suggestion="Load the value from an environment variable or a secret manager.",
    rule_reference="Security: secret management",
)

DEBUG_STATEMENT = PatternCheck(
    name="debug_statement",
    patterns=(
        re.compile(r"console\.log\("),
        re.compile(r"console\.debug\("),
        re.compile(r"console\.warn\("),
        re.compile(r"^\s*print\s*\("),
        re.compile(r"debugger;"),
    ),
    violation_type=ViolationType.CODE_QUALITY,
    severity=Severity.WARNING,
    confidence=0.95,
    message="Debug statement left in the code.",
    suggestion="Use the project logger or remove the statement.",
    rule_reference="Code quality: remove debug code",
    skip_test_files=True,
)

SQL_INJECTION = PatternCheck(
    name="sql_injection",
    patterns=(
        re.compile(r"f[\"']SELECT.*FROM.*\{.*\}[\"']", re.IGNORECASE),
        re.compile(r"\$\{.*\}.*SELECT.*FROM", re.IGNORECASE),
        re.compile(r"\+.*SELECT.*FROM", re.IGNORECASE),
        re.compile(r"`SELECT.*FROM.*\$\{", re.IGNORECASE),
        re.compile(r"[\"']SELECT.*FROM.*[\"']\s*(?:\+|%)", re.IGNORECASE),
    ),
    violation_type=ViolationType.SECURITY,
    severity=Severity.ERROR,
    confidence=0.85,
    message="Possible SQL injection: query text is built from interpolated values.",
    suggestion="Use a parameterized query.",
    rule_reference="Security: SQL injection prevention",
)

DEFAULT_CHECKS = (HARDCODED_SECRET, DEBUG_STATEMENT, SQL_INJECTION)


def run_pattern_checks(
    file_path: str,
    added_lines: list[AddedLine],
    test_markers: tuple[str, ...] = (),
    checks: tuple[PatternCheck, ...] = DEFAULT_CHECKS,
) -> list[Violation]:
    """Run every check against every added line of one file."""
    test_file = is_test_file(file_path, test_markers)
    active = [c for c in checks if not (c.skip_test_files and test_file)]

    violations = []
    for added in added_lines:
        for check in active:
            if check.matches(added.content):
                violations.append(
                    Violation(
                        file_path=file_path,
                        line_number=added.line_number,
                        violation_type=check.violation_type,
                        severity=check.severity,
                        message=check.message,
                        suggestion=check.suggestion,
                        rule_reference=check.rule_reference,
                        confidence_score=check.confidence,
                    )
                )
    return violations
