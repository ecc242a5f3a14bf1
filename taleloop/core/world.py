"""World graph: rooms on an integer grid, six directional edges, portals.

Physical rooms occupy (x, y, z) slots near the origin. Portal
destinations and vehicles are placed in reserved high-z bands by a
bounded spiral search, so they can never land on a grid slot.

Hidden exits: ``hidden_exits`` and ``discovered_exits`` are independent
sets. A hidden direction still has its edge in the graph; it is left out
of the exit listing (and cannot be walked) until it is discovered.
"""

import logging
import re
from collections.abc import Iterator
from datetime import datetime
from typing import TYPE_CHECKING

from ..db.models import Character, GameObject, Room
from ..db.schemas import RoomAtmosphere, dump_blob, load_blob
from ..db.state_manager import StateManager
from ..enums import Direction
from ..errors import PortalPlacementError, WorldStateError
from .commands import resolve_direction

if TYPE_CHECKING:
    from ..agents.narrator import NarrativeGenerator

logger = logging.getLogger(__name__)

PORTAL_Z = 100
PORTAL_SEARCH_LIMIT = 100

UNEXPLORED_NAME = "Unexplored Area"

# Verbs that count as searching a wall, floor or ceiling for a way through
SEARCH_VERBS = frozenset({
    "search", "examine", "inspect", "investigate", "look", "check",
    "push", "pull", "press", "knock", "tap", "feel",
})


def spiral_offsets(limit: int) -> Iterator[tuple[int, int]]:
    """Square spiral over the plane starting at (0, 0), at most ``limit`` points."""
    emitted = 0
    ring = 0
    while emitted < limit:
        if ring == 0:
            ring_points = [(0, 0)]
        else:
            ring_points = []
            for x in range(-ring, ring + 1):
                ring_points.append((x, -ring))
                ring_points.append((x, ring))
            for y in range(-ring + 1, ring):
                ring_points.append((-ring, y))
                ring_points.append((ring, y))
        for point in ring_points:
            if emitted >= limit:
                return
            yield point
            emitted += 1
        ring += 1


def find_free_slot(state: StateManager, z: int, limit: int = PORTAL_SEARCH_LIMIT) -> tuple[int, int, int]:
    """First unoccupied (x, y) on plane ``z``, searched in a bounded spiral."""
    for x, y in spiral_offsets(limit):
        if state.get_room_at(x, y, z) is None:
            return x, y, z
    raise PortalPlacementError(f"No free slot on plane z={z} within {limit} attempts")


def format_room_description(
    room: Room,
    description: str,
    objects: list[GameObject] | None = None,
    characters: list[Character] | None = None,
    exits: list[Direction] | None = None,
) -> str:
    lines = [f"== {room.name.upper()} ==", "", description]

    if objects:
        lines.append("")
        lines.append(f"You can see: {', '.join(o.name for o in objects)}")

    if characters:
        lines.append("")
        lines.append(f"Present here: {', '.join(c.name for c in characters)}")

    if exits:
        lines.append("")
        lines.append(f"Exits: {', '.join(d.value for d in exits)}")

    portal = load_blob(RoomAtmosphere, room.atmosphere)
    if portal.portal_to is not None:
        lines.append("")
        lines.append(f"A portal shimmers here, leading to {portal.portal_name or 'somewhere else'}.")

    return "\n".join(lines)


def format_revealed_exits(directions: list[Direction]) -> str:
    return "\n".join(f"[You discovered a hidden exit leading {d}!]" for d in directions)


class WorldGraph:
    """Room graph operations for one story."""

    def __init__(self, state: StateManager, generator: "NarrativeGenerator | None" = None):
        self.state = state
        self.generator = generator

    # ==== Rooms ====

    def create_room(self, name: str, x: int, y: int, z: int = 0, **fields) -> Room:
        """Raises RoomOccupiedError when the slot is taken."""
        return self.state.add_room(name, x, y, z, **fields)

    def get_room(self, room_id: int | None) -> Room | None:
        return self.state.get_room(room_id)

    def require_room(self, room_id: int | None) -> Room:
        room = self.state.get_room(room_id)
        if room is None:
            logger.error(f"Story {self.state.story_id}: room {room_id} not found")
            raise WorldStateError(f"Room {room_id} not found")
        return room

    def get_room_at(self, x: int, y: int, z: int = 0) -> Room | None:
        return self.state.get_room_at(x, y, z)

    def create_starting_room(self, name: str, description: str = "", short_description: str | None = None,
                             atmosphere: dict | None = None) -> Room:
        """The story-critical room at the origin, plus the player state pointing at it."""
        room = self.create_room(
            name, 0, 0, 0,
            description=description,
            short_description=short_description,
            atmosphere=dump_blob(load_blob(RoomAtmosphere, atmosphere)),
            is_story_critical=True,
            is_generated=False,
        )
        self.state.create_player_state(room.id)
        return room

    # ==== Edges ====

    @staticmethod
    def _reveal(room: Room, direction: Direction) -> None:
        hidden = list(room.hidden_exits or [])
        discovered = list(room.discovered_exits or [])
        if direction.value in hidden and direction.value not in discovered:
            room.discovered_exits = discovered + [direction.value]

    def _unlink_stale(self, room: Room, direction: Direction, new_id: int) -> Room | None:
        """Drop the back edge of the neighbour ``room`` is about to stop pointing at."""
        old_id = room.neighbor_id(direction)
        if old_id is None or old_id == new_id:
            return None
        old = self.state.get_room(old_id)
        if old is None or old.neighbor_id(direction.opposite) != room.id:
            return None
        old.set_neighbor(direction.opposite, None)
        logger.info(f"Unlinked '{old.name}' {direction.opposite} from '{room.name}'")
        return old

    def connect(self, from_id: int, to_id: int, direction: Direction, bidirectional: bool = True,
                reveal_hidden: bool = False) -> None:
        """Add an edge; bidirectional edges get their opposite reciprocal.

        Replacing an edge also clears the old neighbour's edge back, so no
        one-way remnant is left behind.
        """
        direction = Direction(direction)
        source = self.require_room(from_id)
        target = self.require_room(to_id)

        stale = [self._unlink_stale(source, direction, target.id)]
        source.set_neighbor(direction, target.id)
        if reveal_hidden:
            self._reveal(source, direction)

        if bidirectional:
            stale.append(self._unlink_stale(target, direction.opposite, source.id))
            target.set_neighbor(direction.opposite, source.id)
            if reveal_hidden:
                self._reveal(target, direction.opposite)

        self.state.save(source, target, *(room for room in stale if room is not None))

    def reveal_exits(self, room: Room, directions) -> list[Direction]:
        """Mark hidden exits of ``room`` as discovered; returns the newly revealed ones."""
        revealed = []
        for direction in directions:
            direction = Direction(direction)
            if room.neighbor_id(direction) is None or self.is_visible(room, direction):
                continue
            self._reveal(room, direction)
            revealed.append(direction)
        if revealed:
            self.state.save(room)
            logger.info(f"Revealed hidden exit(s) {', '.join(revealed)} in '{room.name}'")
        return revealed

    def discover_from_action(self, room: Room, text: str) -> list[Direction]:
        """Searching toward a hidden exit ("search the east wall") reveals it."""
        words = re.findall(r"[a-z]+", text.lower())
        if not SEARCH_VERBS.intersection(words):
            return []
        named = [resolve_direction(word) for word in words if len(word) > 1]
        return self.reveal_exits(room, [d for d in named if d is not None])

    @staticmethod
    def is_visible(room: Room, direction: Direction) -> bool:
        value = Direction(direction).value
        return value not in (room.hidden_exits or []) or value in (room.discovered_exits or [])

    def list_exits(self, room: Room, include_hidden: bool = False) -> list[Direction]:
        return [
            d for d in Direction
            if room.neighbor_id(d) is not None and (include_hidden or self.is_visible(room, d))
        ]

    def exit_map(self, room: Room, include_hidden: bool = False) -> dict[str, bool]:
        """Direction -> whether the player can see an exit that way."""
        visible = set(self.list_exits(room, include_hidden))
        return {d.value: d in visible for d in Direction}

    def room_in_direction(self, room: Room, direction: Direction) -> Room | None:
        return self.state.get_room(room.neighbor_id(Direction(direction)))

    # ==== Dynamic expansion ====

    def expand(self, from_room: Room, direction: Direction) -> Room:
        """Link toward ``direction``: an existing room at the offset, or a new one."""
        direction = Direction(direction)
        dx, dy, dz = direction.offset
        x, y, z = from_room.x + dx, from_room.y + dy, from_room.z + dz

        existing = self.state.get_room_at(x, y, z)
        if existing is not None:
            self.connect(from_room.id, existing.id, direction, bidirectional=True, reveal_hidden=True)
            logger.info(f"Linked '{from_room.name}' {direction} to existing '{existing.name}'")
            return existing

        new_room = self.create_room(UNEXPLORED_NAME, x, y, z, is_generated=True)
        self.connect(from_room.id, new_room.id, direction, bidirectional=True, reveal_hidden=True)
        return new_room

    # ==== Portals ====

    def place_portal(self, source_room: Room, name: str, one_way: bool = False, temporary: bool = False,
                     description: str | None = None) -> Room:
        """Create a portal destination in the reserved band and link it from ``source_room``."""
        x, y, z = find_free_slot(self.state, PORTAL_Z, PORTAL_SEARCH_LIMIT)

        destination_atmosphere = RoomAtmosphere(
            is_portal_destination=True,
            is_temporary=temporary,
            source_room_id=source_room.id,
        )
        destination = self.create_room(
            name, x, y, z,
            description=description,
            is_generated=True,
            atmosphere=dump_blob(destination_atmosphere),
        )

        source_atmosphere = load_blob(RoomAtmosphere, source_room.atmosphere)
        source_atmosphere.portal_to = destination.id
        source_atmosphere.portal_name = name
        source_atmosphere.portal_is_temporary = temporary
        source_room.atmosphere = dump_blob(source_atmosphere)

        if not one_way:
            destination_atmosphere.portal_to = source_room.id
            destination_atmosphere.portal_name = source_room.name
            destination_atmosphere.return_portal = True
            destination.atmosphere = dump_blob(destination_atmosphere)

        self.state.save(source_room, destination)
        logger.info(
            f"Portal from '{source_room.name}' to '{name}' at ({x}, {y}, {z}) "
            f"{'one-way' if one_way else 'two-way'}{' temporary' if temporary else ''}"
        )
        return destination

    def traverse_portal(self, room: Room) -> Room | None:
        """Destination of the room's portal; a temporary portal closes behind the player."""
        atmosphere = load_blob(RoomAtmosphere, room.atmosphere)
        if atmosphere.portal_to is None:
            return None

        destination = self.require_room(atmosphere.portal_to)
        if atmosphere.portal_is_temporary:
            atmosphere.portal_to = None
            atmosphere.portal_name = None
            atmosphere.portal_is_temporary = False
            room.atmosphere = dump_blob(atmosphere)
            self.state.save(room)
            logger.info(f"Temporary portal in '{room.name}' closed")
        return destination

    # ==== Moving the player ====

    async def move_to(self, room_id: int) -> tuple[Room, bool, str]:
        """Put the player in ``room_id``; returns (room, is_first_visit, description text)."""
        room = self.require_room(room_id)
        is_first_visit = room.first_visited_at is None

        if is_first_visit:
            room.first_visited_at = datetime.utcnow()
        room.visit_count = (room.visit_count or 0) + 1
        self.state.save(room)
        self.state.update_player_state(current_room_id=room.id, turn_increment=1)

        description = room.description or ""
        if is_first_visit and not description and self.generator is not None:
            description = await self.generator.generate_room_description(room, self.state)
            room.description = description
            self.state.save(room)
        elif not is_first_visit and room.short_description:
            description = room.short_description

        logger.info(f"Player moved to '{room.name}' (visit {room.visit_count})")
        return room, is_first_visit, description

    def describe(self, room: Room, description: str | None = None) -> str:
        """Formatted block for ``room`` with its current objects, characters and exits."""
        return format_room_description(
            room,
            description if description is not None else (room.description or ""),
            self.state.get_objects_in_room(room.id),
            self.state.get_characters_in_room(room.id),
            self.list_exits(room),
        )
