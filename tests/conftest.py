"""
Shared test fixtures for the taleloop test suite.

Provides:
- MockLLMProvider: deterministic LLM stub (no API keys needed)
- Database fixtures: in-memory SQLite, fresh per test
- A story-scoped StateManager and a fully wired Orchestrator
"""

import asyncio
import json
import os
import random
from collections import deque
from typing import Any

import pytest

# Set test environment BEFORE any taleloop imports
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ.setdefault("ANTHROPIC_API_KEY", "test-key")

from pydantic import BaseModel

from taleloop.agents.narrator import NarrativeGenerator
from taleloop.config import Config
from taleloop.core.locks import reset_story_locks
from taleloop.core.orchestrator import Orchestrator
from taleloop.db.models import Base
from taleloop.db.session import get_engine, init_db, reset_engine
from taleloop.db.state_manager import StateManager
from taleloop.llm import reset_llm_manager
from taleloop.llm.provider import LLMProvider, LLMResponse

STORY_ID = 1


# ---------------------------------------------------------------------------
# MockLLMProvider: deterministic stub
# ---------------------------------------------------------------------------

class MockLLMProvider(LLMProvider):
    """LLM provider that returns canned responses from a queue.

    Usage:
        provider = MockLLMProvider()
        provider.queue_json({"response": "The door creaks open."})
        output = await generator.process_command(...)
    """

    def __init__(self):
        super().__init__(api_key="mock-key", default_model="mock-model")
        self._response_queue: deque[LLMResponse] = deque()
        self._schema_queue: deque[BaseModel] = deque()
        self._call_history: list[dict[str, Any]] = []
        self.error: Exception | None = None
        self.delay: float = 0.0

    # --- Queue helpers ---

    def queue_response(self, content: str = "", **kwargs):
        """Queue a text response."""
        self._response_queue.append(LLMResponse(content=content, model="mock-model", **kwargs))

    def queue_json(self, payload: dict[str, Any]):
        """Queue a response whose text is ``payload`` as JSON."""
        self.queue_response(json.dumps(payload))

    def queue_schema_response(self, instance: BaseModel):
        """Queue a structured (pydantic) response, skipping JSON parsing."""
        self._schema_queue.append(instance)

    @property
    def call_history(self) -> list[dict[str, Any]]:
        return self._call_history

    # --- LLMProvider interface ---

    @property
    def name(self) -> str:
        return "mock"

    def get_default_model(self) -> str:
        return "mock-model"

    def get_fast_model(self) -> str:
        return "mock-fast"

    def get_creative_model(self) -> str:
        return "mock-creative"

    async def complete(self, messages, system=None, model=None, max_tokens=1024,
                       temperature=0.7) -> LLMResponse:
        self._call_history.append({
            "method": "complete",
            "messages": messages,
            "system": system,
            "model": model,
        })
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if self._response_queue:
            return self._response_queue.popleft()
        return LLMResponse(content="mock response", model="mock-model")

    async def complete_with_schema(self, messages, schema, system=None, model=None,
                                   max_tokens=1024) -> BaseModel:
        if self._schema_queue:
            self._call_history.append({
                "method": "complete_with_schema",
                "messages": messages,
                "schema": schema,
                "system": system,
                "model": model,
            })
            return self._schema_queue.popleft()
        # Exercise the real JSON path over queued text
        return await super().complete_with_schema(messages, schema, system=system, model=model,
                                                  max_tokens=max_tokens)

    def _init_client(self):
        pass  # No real client needed


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _isolate_globals(monkeypatch):
    """Fresh lock registry and LLM manager; expansion off unless a test enables it."""
    reset_story_locks()
    reset_llm_manager()
    monkeypatch.setattr(Config, "DYNAMIC_EXPANSION", False)
    yield
    reset_story_locks()
    reset_llm_manager()


@pytest.fixture
def fresh_db():
    """Create an in-memory SQLite database with all tables."""
    reset_engine()
    init_db()
    yield get_engine()
    Base.metadata.drop_all(bind=get_engine())
    reset_engine()


@pytest.fixture
def state_manager(fresh_db):
    """StateManager with a pre-created story on an in-memory DB."""
    sm = StateManager(STORY_ID)
    sm.ensure_story(title="Test Story", genre_tags=["fantasy"])
    yield sm
    sm.close()


@pytest.fixture
def mock_provider():
    """Fresh MockLLMProvider instance."""
    return MockLLMProvider()


@pytest.fixture
def generator(mock_provider):
    """NarrativeGenerator wired straight to the mock provider."""
    return NarrativeGenerator(timeout=2, provider_override=mock_provider)


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def orchestrator(state_manager, generator, rng):
    """Orchestrator over the shared in-memory store and the mock generator."""
    orch = Orchestrator(STORY_ID, state=state_manager, generator=generator, rng=rng)
    yield orch


@pytest.fixture
def seeded(orchestrator):
    """Orchestrator with a small starting room (lantern plus a fixed desk)."""
    orchestrator.initialize_game({
        "title": "The Lighthouse",
        "genre": "fantasy",
        "startingRoom": {
            "name": "Keeper's Cottage",
            "description": "A cramped cottage smelling of salt.",
        },
        "initialObjects": [
            {"name": "brass lantern", "description": "Dented but working.", "synonyms": ["lamp"]},
            {"name": "oak desk", "description": "Too heavy to move.", "isTakeable": False},
            {"name": "tide chart", "description": "Tonight is circled.", "isStoryCritical": True},
        ],
    })
    return orchestrator
