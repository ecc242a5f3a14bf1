"""Tests for trait scoring and dilemmas."""

import pytest

from taleloop.core.personality import (
    FOLLOW_THROUGH_TEXT,
    MISSING_DILEMMA_TEXT,
    RESOLVED_DILEMMA_TEXT,
    PersonalityModel,
    apply_signal,
)
from taleloop.core.world import WorldGraph
from taleloop.db.schemas import PersonalitySignal
from taleloop.enums import TraitDimension
from taleloop.errors import DilemmaError


@pytest.fixture
def personality(state_manager):
    return PersonalityModel(state_manager)


@pytest.fixture
def bridge(state_manager):
    return WorldGraph(state_manager).create_room("Rope Bridge", 0, 0, 0)


@pytest.fixture
def dilemma(state_manager, bridge):
    return state_manager.add_dilemma(
        bridge.id,
        "A stranger dangles from the fraying rope.",
        option_a={"description": "Haul them up", "outcome_narrative": "You drag the stranger to safety."},
        option_b={"description": "Cut the rope", "personality_implication": "Self-preservation"},
        option_c=None,
        primary_dimension=TraitDimension.AGREEABLENESS.value,
        secondary_dimension=TraitDimension.NEUROTICISM.value,
    )


# ---------------------------------------------------------------------------
# Tests: Score updates
# ---------------------------------------------------------------------------

class TestApplySignal:
    def test_first_signal_moves_score(self):
        assert apply_signal(50, 0, 5, 8) == (pytest.approx(54.0), 1)

    def test_later_signals_refine(self):
        score, confidence = apply_signal(50, 4, 5, 10)
        assert score == pytest.approx(51.0)
        assert confidence == 5

    def test_score_is_clamped(self):
        assert apply_signal(99, 0, 50, 10)[0] == 100.0
        assert apply_signal(1, 0, -50, 10)[0] == 0.0

    def test_missing_score_defaults_to_midpoint(self):
        assert apply_signal(None, None, 0, 5) == (50.0, 1)


class TestRecordSignal:
    def test_updates_row_and_logs_event(self, personality, state_manager):
        new_score = personality.record_signal(
            PersonalitySignal(dimension=TraitDimension.OPENNESS, delta=5, confidence=8),
            source="command", context="peer into the well",
        )
        assert new_score == pytest.approx(54.0)
        assert personality.scores()["openness"] == {"score": pytest.approx(54.0), "confidence": 1}

        events = state_manager.get_personality_events()
        assert len(events) == 1
        assert events[0].adjusted_delta == pytest.approx(4.0)
        assert events[0].is_key_moment

    def test_dict_signal_is_validated(self, personality):
        assert personality.record_signal({"dimension": "E", "delta": -10, "confidence": 5}) == pytest.approx(45.0)

    def test_malformed_signal_is_ignored(self, personality, state_manager):
        assert personality.record_signal({"dimension": "Q", "delta": "lots"}) is None
        assert state_manager.get_personality_events() == []

    def test_none_is_ignored(self, personality):
        assert personality.record_signal(None) is None

    def test_untouched_traits_stay_at_midpoint(self, personality):
        personality.record_signal({"dimension": "O", "delta": 5, "confidence": 8})
        scores = personality.scores()
        assert scores["neuroticism"] == {"score": 50.0, "confidence": 0}


# ---------------------------------------------------------------------------
# Tests: Dilemmas
# ---------------------------------------------------------------------------

class TestDilemmaTrigger:
    def test_triggers_once(self, personality, dilemma, bridge):
        assert personality.check_dilemma_trigger(bridge.id).id == dilemma.id
        assert personality.check_dilemma_trigger(bridge.id) is None

    def test_other_room_does_not_trigger(self, personality, dilemma, state_manager):
        elsewhere = WorldGraph(state_manager).create_room("Cliff", 1, 0, 0)
        assert personality.check_dilemma_trigger(elsewhere.id) is None

    def test_options_skip_missing_c(self, personality, dilemma):
        assert list(personality.options(dilemma)) == ["A", "B"]


class TestResolveDilemma:
    def test_option_a_raises_primary_and_secondary(self, personality, dilemma):
        text = personality.resolve_dilemma(dilemma.id, "a")

        assert text == "You drag the stranger to safety."
        scores = personality.scores()
        assert scores["agreeableness"]["score"] == pytest.approx(54.0)
        assert scores["neuroticism"]["score"] == pytest.approx(51.25)
        assert dilemma.chosen_option == "A"
        assert dilemma.is_resolved

    def test_option_b_lowers_primary(self, personality, dilemma):
        text = personality.resolve_dilemma(dilemma.id, "B")
        assert text == FOLLOW_THROUGH_TEXT
        assert personality.scores()["agreeableness"]["score"] == pytest.approx(46.0)

    def test_other_records_neutral_signal(self, personality, dilemma, state_manager):
        text = personality.resolve_dilemma(dilemma.id, "other", "I tie the rope to a tree")
        assert "I tie the rope to a tree" in text
        assert personality.scores()["agreeableness"] == {"score": 50.0, "confidence": 1}
        assert state_manager.get_personality_events()[0].context == "I tie the rope to a tree"

    def test_missing_option_c(self, personality, dilemma):
        with pytest.raises(DilemmaError):
            personality.resolve_dilemma(dilemma.id, "C")

    def test_unknown_option(self, personality, dilemma):
        with pytest.raises(DilemmaError):
            personality.resolve_dilemma(dilemma.id, "Z")

    def test_second_resolution_is_refused(self, personality, dilemma):
        personality.resolve_dilemma(dilemma.id, "A")
        assert personality.resolve_dilemma(dilemma.id, "B") == RESOLVED_DILEMMA_TEXT
        assert personality.scores()["agreeableness"]["confidence"] == 1

    def test_unknown_dilemma(self, personality):
        assert personality.resolve_dilemma(999, "A") == MISSING_DILEMMA_TEXT
