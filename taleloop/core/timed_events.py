"""Timed event scheduler: per-story countdowns with staged narratives.

``tick()`` runs once per turn. It only ever moves a countdown forward;
extending or cancelling an event goes through the explicit operations.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from ..db.models import TimedEvent
from ..db.schemas import EventConsequence, ProgressNarrative, dump_blob, load_blob
from ..db.state_manager import StateManager
from ..enums import ConsequenceType
from ..errors import WorldStateError

logger = logging.getLogger(__name__)

# Below this many turns, events without an authored line get a generic warning
URGENCY_THRESHOLD = 2


@dataclass
class TickResult:
    """What one event did during one tick."""
    event_id: int
    name: str
    turns_remaining: int
    narrative: str | None
    triggered: bool
    consequence: EventConsequence | None = None


def urgency_line(name: str, remaining: int) -> str:
    return f"[{name}: {remaining} turn{'s' if remaining != 1 else ''} remaining!]"


def format_tick_results(results: list[TickResult]) -> str:
    """Join tick narratives with blank lines (events without one are skipped)."""
    return "\n\n".join(r.narrative for r in results if r.narrative)


def check_game_over(results: list[TickResult]) -> TickResult | None:
    """First triggered event whose consequence ends the game."""
    for result in results:
        if result.triggered and result.consequence and result.consequence.type == ConsequenceType.GAME_OVER:
            return result
    return None


class TimedEventScheduler:
    """Countdowns for one story."""

    def __init__(self, state: StateManager):
        self.state = state

    def create_event(
        self,
        name: str,
        total_turns: int,
        trigger_narrative: str,
        consequence: EventConsequence | dict | None = None,
        progress_narratives: list[ProgressNarrative | dict] | None = None,
        description: str = "",
        room_id: int | None = None,
        can_be_prevented: bool = True,
        prevention_hint: str | None = None,
    ) -> TimedEvent:
        if total_turns < 1:
            raise ValueError("A timed event needs at least one turn")
        if isinstance(consequence, dict) or consequence is None:
            consequence = load_blob(EventConsequence, consequence)
        narratives = [
            ProgressNarrative.model_validate(pn) if isinstance(pn, dict) else pn
            for pn in (progress_narratives or [])
        ]
        event = self.state.add_timed_event(
            name,
            total_turns,
            description=description,
            room_id=room_id,
            trigger_narrative=trigger_narrative,
            consequence=dump_blob(consequence),
            progress_narratives=[pn.model_dump(mode="json") for pn in narratives],
            can_be_prevented=can_be_prevented,
            prevention_hint=prevention_hint,
            is_active=True,
            is_triggered=False,
        )
        logger.info(f"Timed event '{name}' started: {total_turns} turns")
        return event

    def get_active(self, room_id: int | None = None) -> list[TimedEvent]:
        return self.state.get_active_events(room_id)

    def tick(self, room_id: int | None = None) -> list[TickResult]:
        """Advance every visible active event by one turn."""
        results = []
        for event in self.state.get_active_events(room_id):
            remaining = event.turns_remaining - 1

            if remaining <= 0:
                event.turns_remaining = 0
                event.is_triggered = True
                event.is_active = False
                event.triggered_at = datetime.utcnow()
                self.state.save(event)
                logger.info(f"Timed event '{event.name}' triggered")
                results.append(TickResult(
                    event_id=event.id,
                    name=event.name,
                    turns_remaining=0,
                    narrative=event.trigger_narrative,
                    triggered=True,
                    consequence=load_blob(EventConsequence, event.consequence),
                ))
                continue

            event.turns_remaining = remaining
            self.state.save(event)

            narrative = None
            for raw in event.progress_narratives or []:
                stage = ProgressNarrative.model_validate(raw)
                if stage.at_turns == remaining:
                    narrative = stage.narrative
                    break
            if narrative is None and remaining <= URGENCY_THRESHOLD:
                narrative = urgency_line(event.name, remaining)

            results.append(TickResult(
                event_id=event.id,
                name=event.name,
                turns_remaining=remaining,
                narrative=narrative,
                triggered=False,
            ))
        return results

    def cancel(self, event_id: int) -> TimedEvent:
        event = self._require(event_id)
        event.is_active = False
        self.state.save(event)
        logger.info(f"Timed event '{event.name}' cancelled")
        return event

    def cancel_by_name(self, name: str) -> TimedEvent | None:
        events = self.state.get_events_by_name(name)
        if not events:
            return None
        return self.cancel(events[0].id)

    def extend(self, event_id: int, turns: int) -> TimedEvent:
        """Add turns to both the remaining and the total count."""
        event = self._require(event_id)
        event.turns_remaining += turns
        event.total_turns += turns
        self.state.save(event)
        return event

    def _require(self, event_id: int) -> TimedEvent:
        event = self.state.get_timed_event(event_id)
        if event is None:
            raise WorldStateError(f"Timed event {event_id} not found")
        return event
