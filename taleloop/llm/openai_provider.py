"""OpenAI backend, preferred for action and combat turns when configured."""

import logging

from .provider import LLMProvider, LLMResponse

logger = logging.getLogger(__name__)

# Reasoning models take max_completion_tokens and no temperature
_REASONING_PREFIXES = ("gpt-5", "o1", "o3", "o4")


def _is_reasoning_model(model_name: str) -> bool:
    return model_name.startswith(_REASONING_PREFIXES)


class OpenAIProvider(LLMProvider):

    @property
    def name(self) -> str:
        return "openai"

    def get_default_model(self) -> str:
        return "gpt-5.2"

    def get_fast_model(self) -> str:
        return "gpt-5-mini"

    def get_creative_model(self) -> str:
        return self.get_default_model()

    def _init_client(self):
        import openai
        self._client = openai.OpenAI(api_key=self.api_key)

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

        chat = ([{"role": "system", "content": system}] if system else []) + list(messages)
        params = {"model": model_name, "messages": chat}
        if _is_reasoning_model(model_name):
            params["max_completion_tokens"] = max_tokens
        else:
            params["max_tokens"] = max_tokens
            params["temperature"] = temperature

        completion = await self._run_with_retry(lambda: self._client.chat.completions.create(**params))

        choice = completion.choices[0] if completion.choices else None
        text = (choice.message.content or "") if choice else ""
        if choice is not None and choice.finish_reason == "length":
            logger.warning(f"[openai] {model_name} reply cut off at {max_tokens} tokens")
        usage = {}
        if completion.usage is not None:
            usage = {"input_tokens": completion.usage.prompt_tokens,
                     "output_tokens": completion.usage.completion_tokens}

        return LLMResponse(content=text, model=model_name, usage=usage, raw_response=completion)
