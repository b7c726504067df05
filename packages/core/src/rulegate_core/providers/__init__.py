from __future__ import annotations

from rulegate_core.config import require
from rulegate_core.providers.base import BaseChatProvider, BaseEmbedder


def get_chat_provider(config: dict, timeout: float) -> BaseChatProvider:
    model = config["model"]
    if model == "anthropic":
        from rulegate_core.providers.anthropic import AnthropicChat

        return AnthropicChat(api_key=require(config, "anthropic_api_key"), timeout=timeout)
    if model == "openai":
        from rulegate_core.providers.openai import OpenAIChat

        return OpenAIChat(api_key=require(config, "openai_api_key"), timeout=timeout)
    raise ValueError(f"Unknown model provider: {model!r}. Choose 'anthropic' or 'openai'.")


def get_embedder(config: dict, timeout: float) -> BaseEmbedder:
    # Anthropic has no embedding endpoint; rule vectors always come from OpenAI.
    from rulegate_core.providers.openai import OpenAIEmbedder

    return OpenAIEmbedder(api_key=require(config, "openai_api_key"), timeout=timeout)
