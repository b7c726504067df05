from __future__ import annotations

from rulegate_core.providers.base import _DEFAULT_TIMEOUT, BaseChatProvider, ChatResult


class AnthropicChat(BaseChatProvider):
    MODEL = "claude-sonnet-4-20250514"
    # Must stay low enough for the JSON array shape to hold.
    TEMPERATURE = 0.3

    def __init__(self, api_key: str, timeout: float = _DEFAULT_TIMEOUT, model: str | None = None):
        try:
            from anthropic import Anthropic
        except ImportError:
            raise ImportError(
                "The 'anthropic' package is required for this provider. "
                "Install it with: pip install 'rulegate[anthropic]'"
            )
        self.client = Anthropic(api_key=api_key, timeout=timeout, max_retries=0)
        self.model = model or self.MODEL

    def _call_api(self, system_prompt: str, messages: list[dict]) -> ChatResult:
        # Imported inside the method because the anthropic package is optional;
        # __init__ already validated it is installed before we reach here.
        from anthropic.types import TextBlock

        response = self.client.messages.create(
            model=self.model,
            system=system_prompt,
            messages=messages,
            temperature=self.TEMPERATURE,
            max_tokens=self.MAX_TOKENS,
        )
        text_blocks = [block.text for block in response.content if isinstance(block, TextBlock)]
        usage = response.usage.input_tokens + response.usage.output_tokens
        return ChatResult(content="".join(text_blocks).strip(), token_usage=usage)
