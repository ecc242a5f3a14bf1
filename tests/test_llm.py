"""Tests for the LLM layer: routing, the manager, retries and structured calls."""

import pytest
from pydantic import BaseModel

from taleloop.agents.narrator import NarrativeGenerator
from taleloop.config import Config
from taleloop.enums import SceneType
from taleloop.errors import MalformedOutputError
from taleloop.llm import LLMManager, LLMProvider, get_llm_manager, reset_llm_manager
from taleloop.llm.manager import analyze_input_for_routing, select_provider


class Verdict(BaseModel):
    answer: str
    score: int = 0


# ---------------------------------------------------------------------------
# Tests: Routing
# ---------------------------------------------------------------------------

class TestRouting:
    @pytest.mark.parametrize("text,scene", [
        ("attack the goblin", SceneType.ACTION),
        ("talk to the keeper", SceneType.DIALOGUE),
        ("examine the mural", SceneType.EXPLORATION),
        ("wait quietly", SceneType.DECISION),
        ("ask the guard before I attack", SceneType.ACTION),
    ])
    def test_scene_classification(self, text, scene):
        assert analyze_input_for_routing(text).scene_type == scene

    def test_combat_prefers_openai(self):
        route = analyze_input_for_routing("fight the wolf")
        assert select_provider(route, ["anthropic", "openai"], "anthropic") == "openai"

    def test_combat_without_openai_uses_primary(self):
        route = analyze_input_for_routing("fight the wolf")
        assert select_provider(route, ["anthropic"], "anthropic") == "anthropic"

    def test_dialogue_prefers_anthropic(self):
        route = analyze_input_for_routing("greet the merchant")
        assert select_provider(route, ["anthropic", "openai"], "openai") == "anthropic"

    def test_other_scenes_use_primary(self):
        route = analyze_input_for_routing("look around")
        assert select_provider(route, ["anthropic", "openai"], "openai") == "openai"


# ---------------------------------------------------------------------------
# Tests: Manager
# ---------------------------------------------------------------------------

class TestManager:
    def test_singleton_and_reset(self):
        first = get_llm_manager()
        assert get_llm_manager() is first
        reset_llm_manager()
        assert get_llm_manager() is not first

    def test_unknown_provider(self):
        with pytest.raises(ValueError):
            LLMManager().get_provider("carrier-pigeon")

    def test_missing_key(self, monkeypatch):
        monkeypatch.setattr(Config, "OPENAI_API_KEY", "")
        with pytest.raises(ValueError):
            LLMManager().get_provider("openai")

    def test_provider_is_cached(self, monkeypatch):
        monkeypatch.setattr(Config, "ANTHROPIC_API_KEY", "test-key")
        manager = LLMManager(primary="anthropic")
        assert manager.get_provider() is manager.get_provider("anthropic")

    def test_registered_provider_is_used(self, mock_provider):
        manager = LLMManager(primary="mock")
        manager.register_provider(mock_provider)
        assert manager.get_provider() is mock_provider
        assert "mock" in manager.available

    def test_creative_model_override(self, monkeypatch, mock_provider):
        monkeypatch.setattr(Config, "CREATIVE_MODEL", "house-model")
        manager = LLMManager(primary="mock")
        manager.register_provider(mock_provider)
        assert manager.get_provider_for_input("look around") == (manager.get_provider(), "house-model")

    def test_agent_routing_models(self, monkeypatch, mock_provider):
        monkeypatch.setattr(Config, "FAST_MODEL", "")
        monkeypatch.setattr(Config, "CREATIVE_MODEL", "")
        manager = LLMManager(primary="mock")
        manager.register_provider(mock_provider)
        assert manager.get_provider_for_agent("room_describer")[1] == "mock-fast"
        assert manager.get_provider_for_agent("narrator")[1] == "mock-creative"


# ---------------------------------------------------------------------------
# Tests: Provider base behaviour
# ---------------------------------------------------------------------------

class _Overloaded(Exception):
    status_code = 529


class RateLimitError(Exception):
    pass


class TestRetry:
    @pytest.mark.parametrize("exc,expected", [
        (_Overloaded(), True),
        (RateLimitError(), True),
        (ValueError("bad input"), False),
    ])
    def test_is_retryable(self, exc, expected):
        assert LLMProvider._is_retryable(exc) is expected

    def test_retryable_by_error_body(self):
        exc = Exception("overloaded")
        exc.body = {"error": {"type": "overloaded_error"}}
        assert LLMProvider._is_retryable(exc)

    async def test_retries_then_succeeds(self, mock_provider):
        calls = []

        def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise _Overloaded()
            return "done"

        assert await mock_provider._run_with_retry(flaky, base_delay=0) == "done"
        assert len(calls) == 3

    async def test_non_retryable_raises_immediately(self, mock_provider):
        calls = []

        def broken():
            calls.append(1)
            raise ValueError("bad request")

        with pytest.raises(ValueError):
            await mock_provider._run_with_retry(broken, base_delay=0)
        assert len(calls) == 1


class TestCompleteWithSchema:
    async def test_parses_and_validates(self, mock_provider):
        mock_provider.queue_response('```json\n{"answer": "yes", "score": 3,}\n```')
        result = await mock_provider.complete_with_schema(
            [{"role": "user", "content": "?"}], Verdict, system="Be brief.")
        assert result == Verdict(answer="yes", score=3)
        assert "Be brief." in mock_provider.call_history[0]["system"]
        assert "JSON" in mock_provider.call_history[0]["system"]

    async def test_validation_failure(self, mock_provider):
        mock_provider.queue_json({"score": "many"})
        with pytest.raises(MalformedOutputError):
            await mock_provider.complete_with_schema([{"role": "user", "content": "?"}], Verdict)


# ---------------------------------------------------------------------------
# Tests: BaseAgent message building
# ---------------------------------------------------------------------------

class TestBaseAgent:
    def test_sections_skip_empty_context(self, generator):
        message = generator._build_message("open the hatch", {
            "current_room": "Engine Room",
            "skill_check": "",
            "story_context": "- Genre: sci-fi",
        })
        assert message == ("## Current Room\nEngine Room\n\n"
                           "## Story Context\n- Genre: sci-fi\n\n"
                           "## Player Action\nopen the hatch")

    def test_override_uses_creative_model(self, generator, mock_provider):
        assert generator._get_provider_and_model("anything") == (mock_provider, "mock-creative")

    def test_model_override(self, mock_provider):
        agent = NarrativeGenerator(model_override="pinned", provider_override=mock_provider)
        assert agent._get_provider_and_model()[1] == "pinned"

    def test_manager_routing_without_override(self, monkeypatch, mock_provider):
        monkeypatch.setattr(Config, "CREATIVE_MODEL", "")
        manager = get_llm_manager()
        manager.primary_name = "mock"
        manager.register_provider(mock_provider)
        assert NarrativeGenerator()._get_provider_and_model("look around") == (mock_provider, "mock-creative")

    def test_system_prompt_loads_from_file(self, generator):
        assert "text adventure" in generator.system_prompt.lower()
