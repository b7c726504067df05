"""Per-file violation detection: fast pattern checks plus a rule-grounded model check."""

from __future__ import annotations

import json
import logging
import re
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from rulegate_core.checks import run_pattern_checks
from rulegate_core.config import ReviewSettings
from rulegate_core.diff import build_added_line_records
from rulegate_core.errors import ModelResponseError, RetrievalError
from rulegate_core.models import AddedLine, FileChange, FileStatus, RuleChunk, Severity, Violation, ViolationType
from rulegate_core.providers.base import BaseChatProvider
from rulegate_core.retrieval import RuleRetriever
from rulegate_core.utils.code import fence_language, is_code_file, is_excluded, language_for

logger = logging.getLogger(__name__)

_SYSTEM_PROMPT = (
    "You are a strict and precise senior code reviewer. You review code changes against the "
    "team's written coding rules and report only clear, specific violations."
)


class ModelViolation(BaseModel):
    """One element of the JSON array the model must return.

    Unknown types and severities are repaired rather than rejected so that one
    sloppy field does not throw away an otherwise useful finding.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    violated: bool = True
    line_number: int = Field(default=0, alias="lineNumber")
    type: ViolationType = ViolationType.OTHER
    severity: Severity = Severity.WARNING
    message: str
    suggestion: str | None = None
    rule_reference: str | None = Field(default=None, alias="ruleReference")
    rule_url: str | None = Field(default=None, alias="ruleUrl")
    confidence: float = 0.8

    @field_validator("line_number", mode="before")
    @classmethod
    def _line(cls, value):
        try:
            return max(0, int(value))
        except (TypeError, ValueError):
            return 0

    @field_validator("type", mode="before")
    @classmethod
    def _type(cls, value):
        try:
            return ViolationType(str(value).strip().lower())
        except ValueError:
            return ViolationType.OTHER

    @field_validator("severity", mode="before")
    @classmethod
    def _severity(cls, value):
        try:
            return Severity(str(value).strip().lower())
        except ValueError:
            return Severity.WARNING

    @field_validator("confidence", mode="before")
    @classmethod
    def _confidence(cls, value):
        try:
            return min(1.0, max(0.0, float(value)))
        except (TypeError, ValueError):
            return 0.8


def strip_code_fences(raw: str) -> str:
    # Strip only the outer ```json ... ``` fence that the model wraps the
    # response in, not backticks inside message values.
    cleaned = re.sub(r"^```[a-zA-Z]*\s*", "", raw.strip())
    return re.sub(r"\s*```$", "", cleaned.strip())


def parse_model_violations(raw: str) -> list[ModelViolation]:
    """Parse and validate the model's JSON array.

    Raises:
        ModelResponseError: if the text is not JSON or not a JSON array.
    """
    cleaned = strip_code_fences(raw)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise ModelResponseError(f"Response is not valid JSON: {raw[:200]!r}") from e
    if not isinstance(data, list):
        raise ModelResponseError(f"Expected a JSON array, got {type(data).__name__}")

    items = []
    for element in data:
        try:
            items.append(ModelViolation.model_validate(element))
        except ValidationError as e:
            logger.warning("Dropping malformed violation from model output: %s", e.errors()[:1])
    return items


def build_review_prompt(file_path: str, code: str, rules: list[RuleChunk]) -> str:
    rule_sections = "\n\n".join(
        f"### {i}. {r.title}{f' ({r.source_url})' if r.source_url else ''}\n"
        f"Similarity: {r.similarity_score * 100:.1f}%\n{r.text}"
        for i, r in enumerate(rules, 1)
    )
    return f"""Review the code change below against the team's coding rules.

## Coding rules
{rule_sections}

## Change under review
- **File**: {file_path}
- **Language**: {language_for(file_path)}
- **Added code** (each line prefixed with its line number in the new file):
```{fence_language(file_path)}
{code}
```

## Instructions
1. Check the added code against the rules above.
2. Only report a violation when the rule is clearly broken.
3. Give a concrete explanation and a concrete fix for each violation.
4. Name the rule you relied on, with its URL when one is given.

## Output format
Respond with **only** a valid JSON array:
[
  {{
    "violated": true,
    "lineNumber": <the prefixed line number of the offending line>,
    "type": "naming_convention|security|code_quality|documentation|other",
    "severity": "error|warning|info",
    "message": "<what is wrong>",
    "suggestion": "<how to fix it>",
    "ruleReference": "<title of the rule>",
    "ruleUrl": "<rule URL, if any>",
    "confidence": <0.0 to 1.0>
  }}
]

If there are no violations, return: []
Do not return any text outside the JSON array."""


@dataclass
class AnalysisOutcome:
    violations: list[Violation] = field(default_factory=list)
    analyzed_files: list[str] = field(default_factory=list)
    skipped_files: list[str] = field(default_factory=list)
    failed_files: dict[str, str] = field(default_factory=dict)

    @property
    def files_analyzed(self) -> int:
        return len(self.analyzed_files)


class ViolationDetector:
    def __init__(self, retriever: RuleRetriever, chat: BaseChatProvider, settings: ReviewSettings):
        self.retriever = retriever
        self.chat = chat
        self.settings = settings

    def analyze_files(self, files: list[FileChange]) -> AnalysisOutcome:
        """Analyse every reviewable file on a bounded worker pool.

        A failure in one file is logged and costs only that file. Violation
        order across files follows completion order, not input order.
        """
        outcome = AnalysisOutcome()
        reviewable = []
        for file in files:
            reason = self._skip_reason(file)
            if reason:
                logger.info("Skipping %s: %s", file.path, reason)
                outcome.skipped_files.append(file.path)
            elif len(reviewable) >= self.settings.max_files:
                logger.warning("Skipping %s: more than %d reviewable files", file.path, self.settings.max_files)
                outcome.skipped_files.append(file.path)
            else:
                reviewable.append(file)

        if not reviewable:
            return outcome

        with ThreadPoolExecutor(max_workers=max(1, self.settings.max_workers)) as pool:
            futures = {pool.submit(self.analyze_file, f): f for f in reviewable}
            for future in as_completed(futures):
                file = futures[future]
                try:
                    found = future.result()
                except Exception as e:
                    logger.error("Failed to analyze %s: %s", file.path, e)
                    outcome.failed_files[file.path] = str(e)
                    continue
                outcome.violations.extend(found)
                outcome.analyzed_files.append(file.path)

        return outcome

    def _skip_reason(self, file: FileChange) -> str | None:
        if file.status is FileStatus.REMOVED:
            return "file removed"
        if not file.patch:
            return "no patch (binary or too large)"
        if not is_code_file(file.path):
            return "not a code file"
        if is_excluded(file.path, self.settings.exclude):
            return "matches an exclude pattern"
        return None

    def analyze_file(self, file: FileChange) -> list[Violation]:
        """Return the violations found in one file's added lines.

        Raises:
            ParseError: if the file's patch cannot be parsed.
        """
        added = build_added_line_records(file.patch or "")
        violations = run_pattern_checks(file.path, added, self.settings.test_file_markers)

        try:
            violations.extend(self._model_check(file.path, added))
        except ModelResponseError as e:
            logger.warning("Ignoring model output for %s: %s", file.path, e)
        except RetrievalError as e:
            logger.warning("Rule retrieval failed for %s: %s", file.path, e)
        except Exception as e:
            logger.warning("Model analysis failed for %s: %s", file.path, e)

        logger.debug("%s: %d violation(s)", file.path, len(violations))
        return violations

    def _model_check(self, file_path: str, added: list[AddedLine]) -> list[Violation]:
        added_code = "\n".join(a.content for a in added)
        if not added_code.strip():
            return []

        s = self.settings
        query = f"File: {file_path}\nLanguage: {language_for(file_path)}\nChanged code:\n{added_code[: s.query_char_limit]}"
        rules = self.retriever.retrieve(query, tag=s.rules_tag, min_score=s.rule_min_score)
        if not rules:
            return []

        logger.info("Found %d relevant rule(s) for %s", len(rules), file_path)
        # The model reads new-file line numbers off the prefixes.
        numbered = "\n".join(f"{a.line_number}: {a.content}" for a in added)
        prompt = build_review_prompt(file_path, numbered[: s.snippet_char_limit], rules)
        response = self.chat.complete(
            [
                {"role": "system", "content": _SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ]
        )

        violations = []
        for item in parse_model_violations(response.content):
            if not item.violated:
                continue
            reference = item.rule_reference or ""
            if item.rule_url:
                reference = f"{reference} ({item.rule_url})".strip()
            violations.append(
                Violation(
                    file_path=file_path,
                    # Approximate: the model may be off. Anchoring happens later
                    # and only when the diff has a position for this line.
                    line_number=item.line_number,
                    violation_type=item.type,
                    severity=item.severity,
                    message=item.message,
                    suggestion=item.suggestion,
                    rule_reference=reference or None,
                    confidence_score=item.confidence,
                )
            )
        return violations
