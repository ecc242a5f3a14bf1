"""
Canonical string enumerations for taleloop.

StrEnum values serialize as plain strings, so they're
drop-in replacements for raw string literals: no migration
needed for database columns, JSON payloads, or LLM schemas.
"""

from enum import StrEnum


# ── World Graph ────────────────────────────────────────────────────────

class Direction(StrEnum):
    """The six physical exit directions of a room."""
    NORTH = "north"
    SOUTH = "south"
    EAST = "east"
    WEST = "west"
    UP = "up"
    DOWN = "down"

    @property
    def opposite(self) -> "Direction":
        return _OPPOSITES[self]

    @property
    def offset(self) -> tuple[int, int, int]:
        """Grid delta (x, y, z) for one step in this direction."""
        return _OFFSETS[self]


_OPPOSITES = {
    Direction.NORTH: Direction.SOUTH,
    Direction.SOUTH: Direction.NORTH,
    Direction.EAST: Direction.WEST,
    Direction.WEST: Direction.EAST,
    Direction.UP: Direction.DOWN,
    Direction.DOWN: Direction.UP,
}

_OFFSETS = {
    Direction.NORTH: (0, 1, 0),
    Direction.SOUTH: (0, -1, 0),
    Direction.EAST: (1, 0, 0),
    Direction.WEST: (-1, 0, 0),
    Direction.UP: (0, 0, 1),
    Direction.DOWN: (0, 0, -1),
}


# ── Command Interpreter ────────────────────────────────────────────────

class CommandType(StrEnum):
    """Structured command categories (uppercase, matching generator action types)."""
    GO = "GO"
    GO_BACK = "GO_BACK"
    LOOK = "LOOK"
    EXAMINE = "EXAMINE"
    TAKE = "TAKE"
    DROP = "DROP"
    USE = "USE"
    INVENTORY = "INVENTORY"
    TALK = "TALK"
    HELP = "HELP"
    BOARD = "BOARD"
    DISEMBARK = "DISEMBARK"
    LAUNCH = "LAUNCH"
    PORTAL = "PORTAL"
    UNCLASSIFIED = "UNCLASSIFIED"


# ── Timed Events ───────────────────────────────────────────────────────

class ConsequenceType(StrEnum):
    """What happens when a timed event reaches zero."""
    GAME_OVER = "game_over"
    DAMAGE = "damage"
    ROOM_CHANGE = "room_change"
    ITEM_LOST = "item_lost"
    CHARACTER_ACTION = "character_action"
    STORY_BRANCH = "story_branch"
    CUSTOM = "custom"


# ── Personality ────────────────────────────────────────────────────────

class TraitDimension(StrEnum):
    """Big Five dimensions, keyed by their single-letter code."""
    OPENNESS = "O"
    CONSCIENTIOUSNESS = "C"
    EXTRAVERSION = "E"
    AGREEABLENESS = "A"
    NEUROTICISM = "N"

    @property
    def trait(self) -> str:
        """Column stem on PersonalityScores (e.g. ``openness``)."""
        return self.name.lower()


class DilemmaChoice(StrEnum):
    """Options a player may pick at a dilemma."""
    A = "A"
    B = "B"
    C = "C"
    OTHER = "OTHER"


# ── Abilities ──────────────────────────────────────────────────────────

class AbilityOrigin(StrEnum):
    """How an ability entered the player's sheet."""
    BACKSTORY = "backstory"
    ATTEMPTED = "attempted"
    TRAINED = "trained"
    STORY_EVENT = "story_event"


# ── Transcript ─────────────────────────────────────────────────────────

class Speaker(StrEnum):
    PLAYER = "player"
    NARRATOR = "narrator"
    SYSTEM = "system"


class MessageType(StrEnum):
    NARRATIVE = "narrative"
    COMMAND = "command"
    DIALOGUE = "dialogue"
    SYSTEM = "system"


# ── Puzzles ────────────────────────────────────────────────────────────

class PuzzleStatus(StrEnum):
    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"


class RewardType(StrEnum):
    """Reward applied when a puzzle completes."""
    NONE = "none"
    ITEM = "item"
    SKILL_BOOST = "skill_boost"


# ── Generator routing ──────────────────────────────────────────────────

class SceneType(StrEnum):
    """Content category used to route generator calls between providers."""
    DIALOGUE = "dialogue"
    ACTION = "action"
    EXPLORATION = "exploration"
    DECISION = "decision"
