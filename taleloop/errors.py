"""Exception types raised by the taleloop core.

Parse misses are not errors (they become UNCLASSIFIED commands) and
generator failures never escape the narrator, so only the world store,
dilemma handling and JSON repair raise from here.
"""


class TaleLoopError(Exception):
    """Base class for all taleloop errors."""


class RoomOccupiedError(TaleLoopError, ValueError):
    """A room already exists at the requested (story, x, y, z) slot."""

    def __init__(self, story_id: int, x: int, y: int, z: int):
        self.story_id = story_id
        self.coordinates = (x, y, z)
        super().__init__(f"Story {story_id} already has a room at ({x}, {y}, {z})")


class PortalPlacementError(TaleLoopError):
    """The spiral search found no free slot in the reserved band."""


class WorldStateError(TaleLoopError, LookupError):
    """Player state or a referenced room is missing.

    Fatal for the turn: it points at corrupted data, not a narrative gap.
    """


class MalformedOutputError(TaleLoopError, ValueError):
    """Generator output was not valid JSON, even after repair."""

    def __init__(self, message: str, raw: str = ""):
        self.raw = raw
        super().__init__(message)


class GeneratorError(TaleLoopError):
    """The external narrative generator failed or timed out."""


class DilemmaError(TaleLoopError, ValueError):
    """The chosen option does not exist on this dilemma."""


class WorldImportError(TaleLoopError, ValueError):
    """An imported world references a room, object or puzzle key it never defines."""
