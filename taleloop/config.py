"""Environment-driven settings for taleloop.

Values are read once at import time, after the nearest ``.env`` (this
package's directory or up to four parents) has been loaded.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

_ENV_SEARCH_DEPTH = 5


def _nearest_env_file(start: Path) -> Path | None:
    for directory in [start, *start.parents][:_ENV_SEARCH_DEPTH]:
        candidate = directory / ".env"
        if candidate.is_file():
            return candidate
    return None


_env_file = _nearest_env_file(Path(__file__).resolve().parent)
if _env_file is not None:
    load_dotenv(_env_file)


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Settings shared by the engine, the API and the console."""

    # Which backend narrates; empty picks the first one with a key
    LLM_PROVIDER: str = os.getenv("LLM_PROVIDER", "")

    ANTHROPIC_API_KEY: str = os.getenv("ANTHROPIC_API_KEY", "")
    OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "")

    # Pin a model tier across providers
    FAST_MODEL: str = os.getenv("FAST_MODEL", "")
    CREATIVE_MODEL: str = os.getenv("CREATIVE_MODEL", "")

    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./taleloop.db")

    # Walking off the map synthesizes a new room
    DYNAMIC_EXPANSION: bool = _env_bool("DYNAMIC_EXPANSION")
    # Seconds before a narrator call gives up and the fallback line is used
    GENERATOR_TIMEOUT: float = float(os.getenv("GENERATOR_TIMEOUT", "30"))

    DEBUG: bool = _env_bool("DEBUG")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    @classmethod
    def _provider_keys(cls) -> dict[str, str]:
        # Order is the auto-detect preference
        return {"anthropic": cls.ANTHROPIC_API_KEY, "openai": cls.OPENAI_API_KEY}

    @classmethod
    def validate(cls) -> list[str]:
        """Human-readable problems that would stop a story from running."""
        issues = []
        keys = cls._provider_keys()
        if not any(keys.values()):
            issues.append("No narrator backend configured: set ANTHROPIC_API_KEY or OPENAI_API_KEY")
        if cls.LLM_PROVIDER and cls.LLM_PROVIDER.lower() not in keys:
            issues.append(f"LLM_PROVIDER '{cls.LLM_PROVIDER}' is not one of: {', '.join(keys)}")
        if cls.GENERATOR_TIMEOUT <= 0:
            issues.append("GENERATOR_TIMEOUT must be a positive number of seconds")
        return issues

    @classmethod
    def get_available_providers(cls) -> list[str]:
        return [name for name, key in cls._provider_keys().items() if key]

    @classmethod
    def get_primary_provider(cls) -> str:
        """Explicit LLM_PROVIDER, else the first backend with a key, else ``"none"``."""
        if cls.LLM_PROVIDER:
            return cls.LLM_PROVIDER.lower()
        available = cls.get_available_providers()
        return available[0] if available else "none"

    @classmethod
    def get_database_url(cls) -> str:
        return cls.DATABASE_URL


config = Config()
