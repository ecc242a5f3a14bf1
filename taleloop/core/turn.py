"""Dataclasses for command results and completed turns."""

from dataclasses import dataclass, field
from typing import Any

from ..db.schemas import PersonalitySignal


@dataclass
class CommandResult:
    """Outcome of one handler, before the turn pipeline adds its layers."""
    success: bool
    response: str
    room_changed: bool = False
    new_room_id: int | None = None
    personality_signal: PersonalitySignal | dict | None = None  # generator signals arrive as dicts
    menu_options: list[dict[str, Any]] | None = None  # [{"id": 3, "name": "Harbor"}]


@dataclass
class DilemmaPayload:
    id: int
    description: str
    options: dict[str, str]  # {"A": "...", "B": "..."}

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "description": self.description, "options": self.options}


@dataclass
class TimedEventSummary:
    """Active countdowns after this turn's tick."""
    active: list[dict[str, Any]] = field(default_factory=list)   # [{"name", "turnsRemaining"}]
    triggered: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"active": self.active, "triggered": self.triggered}


@dataclass
class GameOver:
    reason: str
    narrative: str

    def to_dict(self) -> dict[str, Any]:
        return {"reason": self.reason, "narrative": self.narrative}


@dataclass
class TurnResult:
    """Result of processing a single turn."""

    success: bool
    narrative: str
    room_changed: bool = False
    new_room_id: int | None = None
    room_name: str | None = None
    turn_count: int = 0
    score: int = 0
    dilemma: DilemmaPayload | None = None
    timed_events: TimedEventSummary | None = None
    game_over: GameOver | None = None
    menu_options: list[dict[str, Any]] | None = None

    def to_dict(self) -> dict[str, Any]:
        """camelCase wire shape for the request layer."""
        data: dict[str, Any] = {
            "success": self.success,
            "narrative": self.narrative,
            "roomChanged": self.room_changed,
            "turnCount": self.turn_count,
            "score": self.score,
        }
        if self.new_room_id is not None:
            data["newRoomId"] = self.new_room_id
        if self.room_name is not None:
            data["roomName"] = self.room_name
        if self.dilemma is not None:
            data["dilemmaTriggered"] = self.dilemma.to_dict()
        if self.timed_events is not None:
            data["timedEvents"] = self.timed_events.to_dict()
        if self.game_over is not None:
            data["gameOver"] = self.game_over.to_dict()
        if self.menu_options:
            data["menuOptions"] = self.menu_options
        return data


@dataclass
class DilemmaOutcome:
    outcome_narrative: str

    def to_dict(self) -> dict[str, Any]:
        return {"outcomeNarrative": self.outcome_narrative}


@dataclass
class GameState:
    """Current room plus counters, for status displays."""
    room_id: int
    room_name: str
    exits: list[str]
    turn_count: int
    score: int
    inventory: list[str] = field(default_factory=list)
    abilities: list[dict[str, Any]] = field(default_factory=list)
    personality: dict[str, dict[str, float]] = field(default_factory=dict)
    objectives: list[dict[str, Any]] = field(default_factory=list)
    in_vehicle: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "roomId": self.room_id,
            "roomName": self.room_name,
            "exits": self.exits,
            "turnCount": self.turn_count,
            "score": self.score,
            "inventory": self.inventory,
            "abilities": self.abilities,
            "personality": self.personality,
            "objectives": self.objectives,
            "inVehicle": self.in_vehicle,
        }


@dataclass
class TurnProgress:
    """Progress notification sent to the caller while a turn runs."""
    stage: str      # parsed, executed, ticked, complete
    detail: str = ""
