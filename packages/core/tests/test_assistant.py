"""Tests for question answering over the indexed rules."""

from unittest.mock import MagicMock

from rulegate_core.assistant import NO_EVIDENCE_ANSWER, RuleAssistant, cited_titles
from rulegate_core.config import ReviewSettings
from rulegate_core.models import RuleChunk
from rulegate_core.providers.base import ChatResult


def _chunk(title, text="body", url=""):
    return RuleChunk(text=text, title=title, source_url=url, similarity_score=0.5)


def _assistant(chunks, reply="answer"):
    retriever = MagicMock()
    retriever.retrieve.return_value = chunks
    chat = MagicMock()
    chat.complete.return_value = ChatResult(content=reply)
    return RuleAssistant(retriever, chat, ReviewSettings()), retriever, chat


class TestCitedTitles:
    def test_verbatim_title(self):
        assert cited_titles("Per the Naming Guide, use snake_case.", [_chunk("naming guide")]) == ["naming guide"]

    def test_half_of_significant_words(self):
        chunks = [_chunk("API Error Handling Policy")]
        # "error" and "handling" out of 4 significant words
        assert cited_titles("Follow the error handling rules.", chunks) == ["API Error Handling Policy"]

    def test_too_few_words(self):
        assert cited_titles("Follow the error rules.", [_chunk("API Error Handling Policy")]) == []

    def test_unknown_and_duplicate_titles_skipped(self):
        chunks = [_chunk("Unknown"), _chunk("Secrets"), _chunk("Secrets")]
        assert cited_titles("unknown secrets", chunks) == ["Secrets"]

    def test_title_of_short_words_only_must_match_verbatim(self):
        assert cited_titles("an answer", [_chunk("A B")]) == []


class TestRuleAssistant:
    def test_no_evidence_skips_model(self):
        assistant, retriever, chat = _assistant([])
        answer = assistant.answer("How do I name things?")
        assert answer.text == NO_EVIDENCE_ANSWER
        assert answer.sources == []
        chat.complete.assert_not_called()
        assert retriever.retrieve.call_args.kwargs == {"tag": "rules", "min_score": 0.35}

    def test_answers_with_numbered_context_and_sources(self):
        chunks = [_chunk("Secrets", "Never commit keys.", "https://wiki/s"), _chunk("Naming", "Use snake_case.")]
        assistant, _, chat = _assistant(chunks, reply="According to Secrets, load keys from the environment.")

        answer = assistant.answer("Where do API keys go?")

        assert answer.sources == ["Secrets"]
        assert answer.chunks == chunks
        user_prompt = chat.complete.call_args.args[0][1]["content"]
        assert "[Document 1] Secrets (https://wiki/s)\nNever commit keys." in user_prompt
        assert "[Document 2] Naming" in user_prompt
        assert user_prompt.endswith("## Question\nWhere do API keys go?")
