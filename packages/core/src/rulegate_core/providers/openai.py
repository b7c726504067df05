from __future__ import annotations

from openai import OpenAI

from rulegate_core.providers.base import _DEFAULT_TIMEOUT, BaseChatProvider, BaseEmbedder, ChatResult, EmbeddingResult


class OpenAIChat(BaseChatProvider):
    MODEL = "gpt-4o"
    # Low temperature keeps the JSON array shape stable.
    TEMPERATURE = 0.2

    def __init__(self, api_key: str, timeout: float = _DEFAULT_TIMEOUT, model: str | None = None):
        # max_retries=0: the SDK retries by default, the pipeline does not.
        self.client = OpenAI(api_key=api_key, timeout=timeout, max_retries=0)
        self.model = model or self.MODEL

    def _call_api(self, system_prompt: str, messages: list[dict]) -> ChatResult:
        payload = [{"role": "system", "content": system_prompt}] if system_prompt else []
        response = self.client.chat.completions.create(
            model=self.model,
            messages=payload + messages,
            temperature=self.TEMPERATURE,
            max_tokens=self.MAX_TOKENS,
        )
        usage = response.usage.total_tokens if response.usage else 0
        return ChatResult(content=response.choices[0].message.content or "", token_usage=usage)


class OpenAIEmbedder(BaseEmbedder):
    MODEL = "text-embedding-3-small"
    DIMENSIONS = 1536

    def __init__(self, api_key: str, timeout: float = _DEFAULT_TIMEOUT, model: str | None = None):
        self.client = OpenAI(api_key=api_key, timeout=timeout, max_retries=0)
        self.model = model or self.MODEL

    def embed(self, text: str) -> EmbeddingResult:
        response = self.client.embeddings.create(model=self.model, input=text)
        usage = response.usage.total_tokens if response.usage else 0
        return EmbeddingResult(vector=list(response.data[0].embedding), token_usage=usage)
