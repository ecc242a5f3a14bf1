"""LLM provider package - Multi-provider support for taleloop."""

from .manager import LLMManager, get_llm_manager, reset_llm_manager
from .provider import LLMProvider, LLMResponse

__all__ = [
    "LLMProvider", "LLMResponse", "LLMManager", "get_llm_manager", "reset_llm_manager",
]
