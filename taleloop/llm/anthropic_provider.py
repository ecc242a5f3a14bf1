"""Claude backend."""

import logging
import os

from .provider import LLMProvider, LLMResponse

logger = logging.getLogger(__name__)

_SONNET = "claude-sonnet-4-5"
_HAIKU = "claude-haiku-4-5"
_OPUS = "claude-opus-4-6"


class AnthropicProvider(LLMProvider):
    """Narrates with Sonnet and describes rooms with Haiku.

    ``ANTHROPIC_CREATIVE_MODEL=opus`` moves turn narration to Opus.
    """

    @property
    def name(self) -> str:
        return "anthropic"

    def get_default_model(self) -> str:
        return _SONNET

    def get_fast_model(self) -> str:
        return _HAIKU

    def get_creative_model(self) -> str:
        if os.getenv("ANTHROPIC_CREATIVE_MODEL", "").lower() == "opus":
            return _OPUS
        return _SONNET

    def _init_client(self):
        import anthropic
        self._client = anthropic.Anthropic(api_key=self.api_key)

    async def complete(
        self,
        messages: list[dict[str, str]],
        system: str | None = None,
        model: str | None = None,
        max_tokens: int = 1024,
        temperature: float = 0.7,
    ) -> LLMResponse:
        self._ensure_client()
        model_name = model or self.default_model

        message = await self._run_with_retry(lambda: self._client.messages.create(
            model=model_name,
            system=system or "",
            messages=messages,
            max_tokens=max_tokens,
            temperature=temperature,
        ))

        # Only text blocks carry narration
        text = "".join(block.text for block in message.content if getattr(block, "type", "") == "text")
        usage = {}
        if getattr(message, "usage", None) is not None:
            usage = {"input_tokens": message.usage.input_tokens,
                     "output_tokens": message.usage.output_tokens}
            logger.debug(f"[anthropic] {model_name} used {sum(usage.values())} tokens")
        if message.stop_reason == "max_tokens":
            logger.warning(f"[anthropic] {model_name} reply cut off at {max_tokens} tokens")

        return LLMResponse(content=text, model=model_name, usage=usage, raw_response=message)
