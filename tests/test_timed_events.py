"""Tests for the timed event scheduler."""

import pytest

from taleloop.core.timed_events import (
    TimedEventScheduler,
    check_game_over,
    format_tick_results,
    urgency_line,
)
from taleloop.core.world import WorldGraph
from taleloop.enums import ConsequenceType
from taleloop.errors import WorldStateError


@pytest.fixture
def scheduler(state_manager):
    return TimedEventScheduler(state_manager)


@pytest.fixture
def rooms(state_manager):
    world = WorldGraph(state_manager)
    return world.create_room("Deck", 0, 0, 0), world.create_room("Hold", 0, 0, -1)


class TestCountdown:
    def test_three_turn_event_triggers_on_third_tick(self, scheduler):
        scheduler.create_event("Tide", 3, "The tide swallows the causeway.")

        first = scheduler.tick()
        second = scheduler.tick()
        assert not first[0].triggered and not second[0].triggered

        third = scheduler.tick()
        assert third[0].triggered
        assert third[0].narrative == "The tide swallows the causeway."
        assert third[0].turns_remaining == 0

        assert scheduler.tick() == []

    def test_triggered_event_is_inactive(self, scheduler):
        event = scheduler.create_event("Fuse", 1, "Boom.")
        scheduler.tick()
        assert event.is_triggered
        assert not event.is_active
        assert event.triggered_at is not None

    def test_progress_narrative_exact_match(self, scheduler):
        scheduler.create_event(
            "Storm", 5, "The storm breaks.",
            progress_narratives=[{"atTurns": 3, "narrative": "Thunder rolls closer."}],
        )
        narratives = [scheduler.tick()[0].narrative for _ in range(4)]
        assert narratives == [None, "Thunder rolls closer.", urgency_line("Storm", 2),
                              urgency_line("Storm", 1)]

    def test_authored_narrative_beats_urgency_line(self, scheduler):
        scheduler.create_event(
            "Storm", 3, "The storm breaks.",
            progress_narratives=[{"at_turns": 2, "narrative": "The sky turns green."}],
        )
        assert scheduler.tick()[0].narrative == "The sky turns green."

    def test_urgency_line_wording(self):
        assert urgency_line("Fuse", 1) == "[Fuse: 1 turn remaining!]"
        assert urgency_line("Fuse", 2) == "[Fuse: 2 turns remaining!]"

    def test_zero_turn_event_rejected(self, scheduler):
        with pytest.raises(ValueError):
            scheduler.create_event("Instant", 0, "Now.")


class TestScoping:
    def test_room_event_only_ticks_in_its_room(self, scheduler, rooms):
        deck, hold = rooms
        scheduler.create_event("Leak", 3, "The hold floods.", room_id=hold.id)
        scheduler.create_event("Sunset", 3, "Night falls.")

        on_deck = scheduler.tick(deck.id)
        assert [r.name for r in on_deck] == ["Sunset"]

        in_hold = scheduler.tick(hold.id)
        assert {r.name: r.turns_remaining for r in in_hold} == {"Leak": 2, "Sunset": 1}


class TestExplicitOperations:
    def test_extend_adds_turns(self, scheduler):
        event = scheduler.create_event("Tide", 2, "Flooded.")
        scheduler.extend(event.id, 3)
        assert event.turns_remaining == 5
        assert event.total_turns == 5

    def test_cancel_stops_ticking(self, scheduler):
        event = scheduler.create_event("Tide", 2, "Flooded.")
        scheduler.cancel(event.id)
        assert scheduler.tick() == []

    def test_cancel_by_name(self, scheduler):
        scheduler.create_event("Tide", 2, "Flooded.")
        assert scheduler.cancel_by_name("tide") is not None
        assert scheduler.cancel_by_name("tide") is None

    def test_unknown_event(self, scheduler):
        with pytest.raises(WorldStateError):
            scheduler.extend(404, 1)


class TestResults:
    def test_game_over_detection(self, scheduler):
        scheduler.create_event("Collapse", 1, "The roof caves in.",
                               consequence={"type": ConsequenceType.GAME_OVER.value})
        scheduler.create_event("Drip", 1, "Water pools.")
        results = scheduler.tick()

        ended = check_game_over(results)
        assert ended.name == "Collapse"
        assert ended.consequence.type == ConsequenceType.GAME_OVER

    def test_non_fatal_consequence(self, scheduler):
        scheduler.create_event("Drip", 1, "Water pools.", consequence={"type": "damage"})
        assert check_game_over(scheduler.tick()) is None

    def test_format_joins_with_blank_lines(self, scheduler):
        scheduler.create_event("A", 1, "First.")
        scheduler.create_event("B", 4, "Second.")
        scheduler.create_event("C", 1, "Third.")
        assert format_tick_results(scheduler.tick()) == "First.\n\nThird."
