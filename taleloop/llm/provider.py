"""Base class shared by the narrative model backends."""

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from ..errors import MalformedOutputError
from ..utils.json_repair import parse_json_lenient

logger = logging.getLogger(__name__)

T = TypeVar("T")

# SDK exception class names and error-body types that mean "try again later"
_TRANSIENT_NAMES = frozenset({"OverloadedError", "RateLimitError"})
_TRANSIENT_STATUS = frozenset({429, 529})
_TRANSIENT_BODY_TYPES = frozenset({"overloaded_error", "rate_limit_error"})

_JSON_INSTRUCTION = (
    "Reply with one JSON object that fits the schema below. "
    "Do not add prose before or after it.\n{schema}"
)


@dataclass
class LLMResponse:
    """Text returned by a backend, plus what it cost."""

    content: str
    model: str = ""
    usage: dict[str, int] = field(default_factory=dict)  # input_tokens / output_tokens
    raw_response: Any = None


class LLMProvider(ABC):
    """A chat-completion backend the narrator can talk to.

    Subclasses wrap one vendor SDK. They create the SDK client lazily in
    ``_init_client`` and name three model tiers: default, fast (room
    descriptions, short flavour) and creative (turn narration).
    """

    def __init__(self, api_key: str, default_model: str | None = None):
        self.api_key = api_key
        self.default_model = default_model or self.get_default_model()
        self._client = None

    @property
    @abstractmethod
    def name(self) -> str:
        """Short key used in configuration, e.g. ``"anthropic"``."""

    @abstractmethod
    def get_default_model(self) -> str: ...

    @abstractmethod
    def get_fast_model(self) -> str: ...

    @abstractmethod
    def get_creative_model(self) -> str: ...

    @abstractmethod
    async def complete(
        self,
        messages: list[dict[str, str]],
        system: str | None = None,
        model: str | None = None,
        max_tokens: int = 1024,
        temperature: float = 0.7,
    ) -> LLMResponse:
        """Send a chat transcript and return the model's reply.

        Args:
            messages: ``[{"role": "user", "content": ...}, ...]``
            system: Optional system prompt
            model: Overrides ``default_model`` for this call
        """

    async def complete_with_schema(
        self,
        messages: list[dict[str, str]],
        schema: type[BaseModel],
        system: str | None = None,
        model: str | None = None,
        max_tokens: int = 1024,
    ) -> BaseModel:
        """Like ``complete`` but the reply is parsed into ``schema``.

        Models often wrap JSON in fences or leave trailing commas, so the
        reply goes through ``parse_json_lenient`` before validation.

        Raises:
            MalformedOutputError: the reply is not (repairable) JSON for ``schema``
        """
        instruction = _JSON_INSTRUCTION.format(schema=schema.model_json_schema())
        system = f"{system}\n\n{instruction}" if system else instruction
        response = await self.complete(messages, system=system, model=model, max_tokens=max_tokens)

        payload = parse_json_lenient(response.content)
        try:
            return schema.model_validate(payload)
        except ValidationError as e:
            raise MalformedOutputError(f"Reply does not fit {schema.__name__}: {e}",
                                       raw=response.content) from e

    # ==== Retries ====

    @staticmethod
    def _is_retryable(exc: Exception) -> bool:
        """True for overload and rate-limit failures from either SDK.

        Checked by class name, HTTP status and error body so neither SDK
        has to be importable.
        """
        if type(exc).__name__ in _TRANSIENT_NAMES:
            return True
        if getattr(exc, "status_code", None) in _TRANSIENT_STATUS:
            return True
        body = getattr(exc, "body", None)
        if isinstance(body, dict):
            return body.get("error", {}).get("type", "") in _TRANSIENT_BODY_TYPES
        return False

    async def _run_with_retry(
        self,
        sync_fn: Callable[[], T],
        max_retries: int = 3,
        base_delay: float = 2.0,
    ) -> T:
        """Run a blocking SDK call off the event loop, backing off on transient errors."""
        loop = asyncio.get_running_loop()
        attempt = 0
        while True:
            try:
                return await loop.run_in_executor(None, sync_fn)
            except Exception as exc:
                if attempt >= max_retries or not self._is_retryable(exc):
                    raise
                delay = base_delay * 2 ** attempt
                attempt += 1
                logger.warning(f"[{self.name}] {type(exc).__name__}; retry {attempt}/{max_retries} "
                               f"in {delay:.0f}s")
                await asyncio.sleep(delay)

    # ==== Client ====

    def _ensure_client(self):
        if self._client is None:
            self._init_client()

    @abstractmethod
    def _init_client(self):
        """Create the vendor SDK client from ``self.api_key``."""
