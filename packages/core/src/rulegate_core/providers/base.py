"""Base chat provider implementing the Template Method pattern.

All providers share the same call shape:
    complete(messages) → split system prompt from the conversation
                       → _call_api()   ← only this differs per provider
                       → ChatResult

Subclasses implement two things only:
  - __init__: validate and store the SDK client
  - _call_api: make one raw API call and return the text plus token usage

There is deliberately no retry loop: a failed call raises, and the caller
decides what a failure means for its stage.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

_MAX_TOKENS = 4096
_DEFAULT_TIMEOUT = 60.0


@dataclass
class ChatResult:
    content: str
    token_usage: int = 0


@dataclass
class EmbeddingResult:
    vector: list[float] = field(default_factory=list)
    token_usage: int = 0


class BaseChatProvider(ABC):
    MODEL: str = ""
    TEMPERATURE: float = 0.2
    MAX_TOKENS: int = _MAX_TOKENS

    def complete(self, messages: list[dict]) -> ChatResult:
        """Send ``[{role, content}, ...]`` and return the model's reply.

        System messages are merged into one system prompt because not every
        provider accepts them inline with the conversation.
        """
        system = "\n\n".join(m["content"] for m in messages if m["role"] == "system")
        conversation = [{"role": m["role"], "content": m["content"]} for m in messages if m["role"] != "system"]
        started = time.monotonic()
        result = self._call_api(system, conversation)
        logger.debug(
            "%s completed in %.1fs (%d tokens)",
            self.__class__.__name__,
            time.monotonic() - started,
            result.token_usage,
        )
        return result

    @abstractmethod
    def _call_api(self, system_prompt: str, messages: list[dict]) -> ChatResult:
        """Make a single API call and return the raw text response.

        This is the only method subclasses must implement. It should raise
        on failure.
        """


class BaseEmbedder(ABC):
    DIMENSIONS: int = 1536

    @abstractmethod
    def embed(self, text: str) -> EmbeddingResult:
        """Return the embedding vector for ``text``."""
