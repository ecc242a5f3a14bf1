"""LLM manager: provider construction, model selection and content routing.

Routing by content type:
    action / combat   -> openai when configured, else the primary provider
    dialogue          -> anthropic when configured
    everything else   -> the primary provider
"""

import logging
from dataclasses import dataclass

from ..config import Config
from ..enums import SceneType
from .anthropic_provider import AnthropicProvider
from .openai_provider import OpenAIProvider
from .provider import LLMProvider

logger = logging.getLogger(__name__)

COMBAT_KEYWORDS = ("attack", "fight", "strike", "defend", "battle", "hit", "shoot", "kill", "run",
                   "escape", "chase")
DIALOGUE_KEYWORDS = ("talk", "speak", "ask", "tell", "say", "greet", "convince", "persuade", "negotiate")
EXPLORATION_KEYWORDS = ("look", "examine", "explore", "search", "investigate", "where", "what is")

_PROVIDER_CLASSES: dict[str, type[LLMProvider]] = {
    "anthropic": AnthropicProvider,
    "openai": OpenAIProvider,
}


@dataclass
class RouteContext:
    scene_type: SceneType
    has_combat: bool = False
    has_character_interaction: bool = False
    needs_worldbuilding: bool = False


def analyze_input_for_routing(text: str) -> RouteContext:
    """Classify player input by keyword into a scene type."""
    lowered = text.lower()
    has_combat = any(k in lowered for k in COMBAT_KEYWORDS)
    has_dialogue = any(k in lowered for k in DIALOGUE_KEYWORDS)
    needs_world = any(k in lowered for k in EXPLORATION_KEYWORDS)

    if has_combat:
        scene = SceneType.ACTION
    elif has_dialogue:
        scene = SceneType.DIALOGUE
    elif needs_world:
        scene = SceneType.EXPLORATION
    else:
        scene = SceneType.DECISION

    return RouteContext(
        scene_type=scene,
        has_combat=has_combat,
        has_character_interaction=has_dialogue,
        needs_worldbuilding=needs_world,
    )


def select_provider(route: RouteContext, available: list[str], primary: str) -> str:
    """Provider name for a routed scene, restricted to ``available``."""
    if route.has_combat or route.scene_type == SceneType.ACTION:
        if "openai" in available:
            return "openai"
        return primary
    if route.has_character_interaction or route.scene_type == SceneType.DIALOGUE:
        if "anthropic" in available:
            return "anthropic"
    return primary


class LLMManager:
    """Builds providers lazily from Config and caches them."""

    def __init__(self, primary: str | None = None):
        self._providers: dict[str, LLMProvider] = {}
        self.available = Config.get_available_providers()
        self.primary_name = (primary or Config.get_primary_provider()).lower()

    def _api_key(self, name: str) -> str:
        if name == "anthropic":
            return Config.ANTHROPIC_API_KEY
        if name == "openai":
            return Config.OPENAI_API_KEY
        return ""

    def get_provider(self, name: str | None = None) -> LLMProvider:
        """Provider by name (default: primary). Raises ValueError when unusable."""
        name = (name or self.primary_name).lower()
        if name in self._providers:
            return self._providers[name]

        provider_cls = _PROVIDER_CLASSES.get(name)
        if provider_cls is None:
            raise ValueError(f"Unknown LLM provider: {name!r}")
        api_key = self._api_key(name)
        if not api_key:
            raise ValueError(f"No API key configured for provider {name!r}")

        provider = provider_cls(api_key=api_key)
        self._providers[name] = provider
        logger.info(f"Initialized LLM provider '{name}' (default model {provider.default_model})")
        return provider

    def register_provider(self, provider: LLMProvider) -> None:
        """Install a ready-made provider under its own name."""
        self._providers[provider.name] = provider
        if provider.name not in self.available:
            self.available.append(provider.name)

    @property
    def primary_provider(self) -> LLMProvider:
        return self.get_provider()

    @property
    def fast_provider(self) -> LLMProvider:
        return self.get_provider()

    def get_fast_model(self) -> str:
        return Config.FAST_MODEL or self.primary_provider.get_fast_model()

    def get_creative_model(self) -> str:
        return Config.CREATIVE_MODEL or self.primary_provider.get_creative_model()

    def get_provider_for_agent(self, agent_name: str) -> tuple[LLMProvider, str]:
        """(provider, model) for an agent; room descriptions use the fast model."""
        provider = self.primary_provider
        if agent_name == "room_describer":
            return provider, Config.FAST_MODEL or provider.get_fast_model()
        return provider, Config.CREATIVE_MODEL or provider.get_creative_model()

    def get_provider_for_input(self, text: str) -> tuple[LLMProvider, str]:
        """Routed (provider, creative model) for a piece of player input."""
        route = analyze_input_for_routing(text)
        name = select_provider(route, self.available, self.primary_name)
        provider = self.get_provider(name)
        logger.debug(f"Routed {route.scene_type} input to {name}")
        if name == self.primary_name and Config.CREATIVE_MODEL:
            return provider, Config.CREATIVE_MODEL
        return provider, provider.get_creative_model()


_manager: LLMManager | None = None


def get_llm_manager() -> LLMManager:
    """Get the global LLM manager instance."""
    global _manager
    if _manager is None:
        _manager = LLMManager()
    return _manager


def reset_llm_manager() -> None:
    """Drop the global manager so the next call rebuilds it from Config."""
    global _manager
    _manager = None
