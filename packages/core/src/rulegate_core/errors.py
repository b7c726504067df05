"""Exception taxonomy for the review pipeline.

File-scoped errors (ParseError, anything raised while analysing one file) are
caught at the file boundary by the detector. Workflow-scoped errors propagate
to the caller wrapped in ReviewAborted, which still carries the run state.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from rulegate_core.reviewer import ReviewRun, Stage


class RulegateError(Exception):
    """Base class for every error raised by rulegate."""


class ParseError(RulegateError):
    """A unified diff could not be parsed."""


class RetrievalError(RulegateError):
    """The embedding or vector search call failed."""


class ModelResponseError(RulegateError):
    """The chat model returned something that is not the expected JSON array."""


class PersistenceError(RulegateError):
    """A store operation failed."""


class ExternalApiError(RulegateError):
    """A call to the code host failed."""


class ConfigurationError(RulegateError):
    """A required credential or setting is missing."""


class ReviewAborted(RulegateError):
    """A fatal stage failed; the run is in the ``failed`` state.

    ``run`` keeps everything computed before the failure (violations, decision)
    so the caller can inspect it or retry the delivery.
    """

    def __init__(self, stage: Stage, cause: BaseException, run: ReviewRun):
        super().__init__(f"Review of {run.repo}#{run.pr_number} failed at {stage.value}: {cause}")
        self.stage = stage
        self.cause = cause
        self.run = run
