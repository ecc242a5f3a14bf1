"""Common plumbing for agents that call a narrator backend."""

import logging
from abc import ABC, abstractmethod
from pathlib import Path

from pydantic import BaseModel

from ..llm import LLMProvider, get_llm_manager

logger = logging.getLogger(__name__)

# prompts/ at the project root; a missing file falls back to the built-in prompt
PROMPTS_DIR = Path(__file__).resolve().parents[2] / "prompts"


class BaseAgent(ABC):
    """An agent renders context into a sectioned message and asks a backend.

    The backend is looked up on every call rather than at construction,
    so resetting the LLM manager takes effect on the next turn.
    """

    agent_name: str = "unknown"

    def __init__(self, model_override: str | None = None, provider_override: LLMProvider | None = None):
        self._model_override = model_override
        self._provider_override = provider_override

    @staticmethod
    def _load_prompt_file(filename: str, fallback: str = "") -> str:
        path = PROMPTS_DIR / filename
        if not path.is_file():
            logger.debug(f"No prompt file {path}, using built-in prompt")
            return fallback
        return path.read_text(encoding="utf-8").strip()

    @property
    @abstractmethod
    def system_prompt(self) -> str: ...

    def _get_provider_and_model(self, player_input: str | None = None) -> tuple[LLMProvider, str]:
        """Pick the backend and model for one call.

        A provider override always wins (tests, pinned deployments). Otherwise
        the manager routes by the player's words when there are any, and by
        agent name when there are not.
        """
        if self._provider_override is not None:
            provider = self._provider_override
            return provider, self._model_override or provider.get_creative_model()

        manager = get_llm_manager()
        if self._model_override:
            return manager.get_provider(), self._model_override
        if player_input:
            return manager.get_provider_for_input(player_input)
        return manager.get_provider_for_agent(self.agent_name)

    def _messages(self, action: str, context: dict) -> list[dict[str, str]]:
        return [{"role": "user", "content": self._build_message(action, context)}]

    async def call(self, user_message: str, schema: type[BaseModel], player_input: str | None = None,
                   max_tokens: int = 1024, **context) -> BaseModel:
        """Structured call; each non-empty context kwarg becomes a "## Section"."""
        provider, model = self._get_provider_and_model(player_input)
        return await provider.complete_with_schema(
            self._messages(user_message, context), schema,
            system=self.system_prompt, model=model, max_tokens=max_tokens,
        )

    async def call_text(self, user_message: str, player_input: str | None = None,
                        max_tokens: int = 400, **context) -> str:
        provider, model = self._get_provider_and_model(player_input)
        response = await provider.complete(
            self._messages(user_message, context),
            system=self.system_prompt, model=model, max_tokens=max_tokens,
        )
        return response.content.strip()

    @staticmethod
    def _build_message(action: str, context: dict) -> str:
        sections = [
            f"## {key.replace('_', ' ').title()}\n{value}"
            for key, value in context.items()
            if value
        ]
        sections.append(f"## Player Action\n{action}")
        return "\n\n".join(sections)
