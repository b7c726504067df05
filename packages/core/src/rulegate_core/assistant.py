"""Question answering over the indexed rule documents."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from rulegate_core.config import ReviewSettings
from rulegate_core.models import RuleChunk
from rulegate_core.providers.base import BaseChatProvider
from rulegate_core.retrieval import RuleRetriever

logger = logging.getLogger(__name__)

NO_EVIDENCE_ANSWER = (
    "I could not find any rule documents relevant enough to answer this question. "
    "Try rephrasing it, or index the documents that cover this topic."
)

_SYSTEM_PROMPT = (
    "You answer questions about the team's coding rules. Use only the context documents you are given. "
    "When you rely on a document, mention its title. If the documents do not contain the answer, say so."
)


@dataclass
class Answer:
    text: str
    chunks: list[RuleChunk] = field(default_factory=list)
    sources: list[str] = field(default_factory=list)


def cited_titles(answer: str, chunks: list[RuleChunk]) -> list[str]:
    """Titles of the chunks the answer actually mentions, in retrieval order.

    A title counts when it appears verbatim (case-insensitive) or when at
    least half of its words longer than two characters appear in the answer.
    """
    lowered = answer.lower()
    cited: list[str] = []
    for chunk in chunks:
        title = chunk.title
        if not title or title == "Unknown" or title in cited:
            continue
        if title.lower() in lowered:
            cited.append(title)
            continue
        words = [w for w in title.split() if len(w) > 2]
        if not words:
            continue
        matches = sum(1 for w in words if re.search(re.escape(w), answer, re.IGNORECASE))
        if matches * 2 >= len(words):
            cited.append(title)
    return cited


def build_context(chunks: list[RuleChunk]) -> str:
    return "\n\n".join(
        f"[Document {i}] {c.title}{f' ({c.source_url})' if c.source_url else ''}\n{c.text}"
        for i, c in enumerate(chunks, 1)
    )


class RuleAssistant:
    def __init__(self, retriever: RuleRetriever, chat: BaseChatProvider, settings: ReviewSettings):
        self.retriever = retriever
        self.chat = chat
        self.settings = settings

    def answer(self, question: str) -> Answer:
        """Answer ``question`` from the rule documents.

        Returns NO_EVIDENCE_ANSWER without calling the model when no chunk
        clears ``chat_min_score``.

        Raises:
            RetrievalError: if the embedding or the search call fails.
        """
        chunks = self.retriever.retrieve(question, tag=self.settings.rules_tag, min_score=self.settings.chat_min_score)
        if not chunks:
            return Answer(text=NO_EVIDENCE_ANSWER)

        logger.info("Answering from %d chunk(s)", len(chunks))
        response = self.chat.complete(
            [
                {"role": "system", "content": _SYSTEM_PROMPT},
                {"role": "user", "content": f"## Context documents\n{build_context(chunks)}\n\n## Question\n{question}"},
            ]
        )
        return Answer(text=response.content, chunks=chunks, sources=cited_titles(response.content, chunks))
