"""Pydantic request/response models for the Game API.

Responses use the camelCase wire shape produced by the core's
``to_dict()`` helpers.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from taleloop.db.schemas import StorySeed, WorldImport


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# === Requests ===

class InitRequest(_WireModel):
    """Start a story from a seed, an authored world, or both (world first)."""
    seed: StorySeed | None = None
    world: WorldImport | None = None


class TurnRequest(_WireModel):
    """Request for processing a turn."""
    player_input: str = Field(validation_alias="input")


class DilemmaRequest(_WireModel):
    option: str
    text: str = ""


# === Responses ===

class InitResponse(_WireModel):
    story_id: int
    starting_room_id: int
    opening_narrative: str
    room_ids: dict[str, int] = Field(default_factory=dict)


class DilemmaPayloadResponse(_WireModel):
    id: int
    description: str
    options: dict[str, str]


class TimedEventsResponse(_WireModel):
    active: list[dict[str, Any]] = Field(default_factory=list)
    triggered: list[str] = Field(default_factory=list)


class GameOverResponse(_WireModel):
    reason: str
    narrative: str


class TurnResponse(_WireModel):
    """Response from processing a turn."""
    success: bool
    narrative: str
    room_changed: bool
    new_room_id: int | None = None
    room_name: str | None = None
    turn_count: int
    score: int
    dilemma_triggered: DilemmaPayloadResponse | None = None
    timed_events: TimedEventsResponse | None = None
    game_over: GameOverResponse | None = None
    menu_options: list[dict[str, Any]] | None = None


class DilemmaResponse(_WireModel):
    outcome_narrative: str


class GameStateResponse(_WireModel):
    room_id: int
    room_name: str
    exits: list[str]
    turn_count: int
    score: int
    inventory: list[str] = Field(default_factory=list)
    abilities: list[dict[str, Any]] = Field(default_factory=list)
    personality: dict[str, dict[str, float]] = Field(default_factory=dict)
    objectives: list[dict[str, Any]] = Field(default_factory=list)
    in_vehicle: str | None = None


class TranscriptEntry(_WireModel):
    turn_number: int
    speaker: str
    content: str
    message_type: str
    room_id: int | None = None
    created_at: str | None = None


class TranscriptResponse(_WireModel):
    story_id: int
    entries: list[TranscriptEntry]
