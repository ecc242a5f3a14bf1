"""Typed shapes for the JSON blobs stored on world rows.

Every blob carries a ``schema_version``. ``load_blob`` upgrades older
payloads (unversioned camelCase dicts written by earlier importers) to the
current version before validation, so callers always see one shape.
"""

import logging
import re
from typing import Any, ClassVar, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..enums import ConsequenceType, Direction, RewardType, TraitDimension

logger = logging.getLogger(__name__)

B = TypeVar("B", bound="VersionedBlob")

_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")


def _snake(key: str) -> str:
    return _CAMEL_RE.sub("_", key).lower()


class VersionedBlob(BaseModel):
    """Base for all stored blobs."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    SCHEMA_VERSION: ClassVar[int] = 1
    schema_version: int = 1

    @classmethod
    def migrate(cls, data: dict[str, Any]) -> dict[str, Any]:
        """Upgrade a raw payload to the current version.

        Version 0 (no ``schema_version`` key) used camelCase keys.
        """
        version = data.get("schema_version", data.get("schemaVersion", 0))
        if version < 1:
            data = {_snake(k): v for k, v in data.items() if k != "schemaVersion"}
        data["schema_version"] = cls.SCHEMA_VERSION
        return data


class RoomAtmosphere(VersionedBlob):
    """Sensory detail plus portal bookkeeping for a room."""

    lighting: str | None = None
    mood: str | None = None
    sounds: str | None = None
    smells: str | None = None

    # Portal plane links (direction "through")
    portal_to: int | None = None
    portal_name: str | None = None
    portal_is_temporary: bool = False
    is_portal_destination: bool = False
    is_temporary: bool = False
    source_room_id: int | None = None
    return_portal: bool = False


class ObjectState(VersionedBlob):
    discovered_details: list[str] = Field(default_factory=list)
    last_interaction: str | None = None


class ProgressNarrative(BaseModel):
    """Narrative shown when an event's remaining turns equals ``at_turns``."""

    model_config = ConfigDict(populate_by_name=True)

    at_turns: int = Field(alias="atTurns")
    narrative: str


class EventConsequence(VersionedBlob):
    type: ConsequenceType = ConsequenceType.CUSTOM
    description: str = ""
    data: dict[str, Any] = Field(default_factory=dict)


class PersonalitySignal(BaseModel):
    """A single observation about the player, as produced by any subsystem."""

    dimension: TraitDimension
    delta: float
    confidence: float = 5.0
    reasoning: str = ""


class DilemmaOption(BaseModel):
    description: str
    personality_implication: str = ""
    outcome_narrative: str = ""


class StepRequirements(VersionedBlob):
    required_items: list[str] = Field(default_factory=list)
    required_actions: list[str] = Field(default_factory=list)
    required_room: str | None = None


class PuzzleReward(VersionedBlob):
    type: RewardType = RewardType.NONE
    item_name: str | None = None
    description: str = ""
    skill_name: str | None = None
    amount: float = 1.0


class SeedObject(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str
    description: str = ""
    is_takeable: bool = True
    is_story_critical: bool = False
    synonyms: list[str] = Field(default_factory=list)


class SeedRoom(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str
    description: str = ""
    short_description: str | None = None
    atmosphere: dict[str, Any] = Field(default_factory=dict)


class StorySeed(VersionedBlob):
    """Minimal content needed to open a new game."""

    model_config = ConfigDict(extra="allow", populate_by_name=True, alias_generator=to_camel)

    title: str = "Untitled"
    genre: str = "fantasy"
    theme: str = "adventure"
    tone: str = "mysterious"
    starting_room: SeedRoom
    initial_objects: list[SeedObject] = Field(default_factory=list)
    facts: list[str] = Field(default_factory=list)


# ── Bulk world import ──────────────────────────────────────────────────
# Rows reference each other by ``key`` (rooms, objects, puzzles), never by
# database id, so one payload can describe a whole world before any row exists.

class _ImportModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ImportRoom(_ImportModel):
    key: str
    name: str
    x: int
    y: int
    z: int = 0
    description: str = ""
    short_description: str | None = None
    atmosphere: dict[str, Any] = Field(default_factory=dict)
    hidden_exits: list[Direction] = Field(default_factory=list)
    is_story_critical: bool = False


class ImportConnection(_ImportModel):
    from_room: str
    to_room: str
    direction: Direction
    bidirectional: bool = True


class ImportObject(_ImportModel):
    name: str
    key: str | None = None
    room: str | None = None         # None and no container = inventory
    container: str | None = None    # key of another imported object
    unlocked_by: str | None = None  # key of the key object
    description: str = ""
    is_takeable: bool = True
    is_story_critical: bool = False
    is_container: bool = False
    is_locked: bool = False
    synonyms: list[str] = Field(default_factory=list)


class ImportCharacter(_ImportModel):
    name: str
    room: str | None = None
    description: str = ""


class ImportAbility(_ImportModel):
    name: str
    level: float = 1.0
    description: str | None = None
    trigger_verbs: list[str] | None = None
    trigger_nouns: list[str] | None = None


class ImportTimedEvent(_ImportModel):
    name: str
    total_turns: int
    trigger_narrative: str
    room: str | None = None
    description: str = ""
    consequence: dict[str, Any] = Field(default_factory=dict)
    progress_narratives: list[dict[str, Any]] = Field(default_factory=list)
    can_be_prevented: bool = True
    prevention_hint: str | None = None


class ImportDilemma(_ImportModel):
    room: str
    description: str
    option_a: DilemmaOption
    option_b: DilemmaOption
    option_c: DilemmaOption | None = None
    primary_dimension: TraitDimension
    secondary_dimension: TraitDimension | None = None


class ImportPuzzleStep(_ImportModel):
    description: str
    hint: str | None = None
    requirements: dict[str, Any] = Field(default_factory=dict)


class ImportPuzzle(_ImportModel):
    key: str
    name: str
    description: str = ""
    room: str | None = None
    active: bool = False
    reward: dict[str, Any] = Field(default_factory=dict)
    steps: list[ImportPuzzleStep] = Field(default_factory=list)
    unlocks: list[str] = Field(default_factory=list)  # puzzle keys activated on completion


class ImportVehicle(_ImportModel):
    name: str
    docked_at: str | None = None
    vehicle_type: str = "generic"
    description: str | None = None
    boarding_keywords: list[str] = Field(default_factory=list)
    destinations: list[str] = Field(default_factory=list)


class ImportPortal(_ImportModel):
    from_room: str
    name: str
    one_way: bool = False
    temporary: bool = False
    description: str | None = None


class WorldImport(_ImportModel):
    """A complete authored world, applied in one transaction."""

    rooms: list[ImportRoom] = Field(default_factory=list)
    starting_room: str | None = None
    connections: list[ImportConnection] = Field(default_factory=list)
    objects: list[ImportObject] = Field(default_factory=list)
    characters: list[ImportCharacter] = Field(default_factory=list)
    abilities: list[ImportAbility] = Field(default_factory=list)
    timed_events: list[ImportTimedEvent] = Field(default_factory=list)
    dilemmas: list[ImportDilemma] = Field(default_factory=list)
    puzzles: list[ImportPuzzle] = Field(default_factory=list)
    vehicles: list[ImportVehicle] = Field(default_factory=list)
    portals: list[ImportPortal] = Field(default_factory=list)
    facts: list[str] = Field(default_factory=list)  # established truths handed to the narrator


def load_blob(model: type[B], raw: dict[str, Any] | None) -> B:
    """Validate a stored blob, migrating older shapes first."""
    data = dict(raw or {})
    if data.get("schema_version") != model.SCHEMA_VERSION:
        logger.debug(f"Migrating {model.__name__} blob from version {data.get('schema_version', 0)}")
        data = model.migrate(data)
    return model.model_validate(data)


def dump_blob(blob: BaseModel) -> dict[str, Any]:
    """Serialize a blob for a JSON column."""
    return blob.model_dump(mode="json", exclude_none=True)
