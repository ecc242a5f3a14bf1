"""Tests for the world graph: rooms, reciprocal edges, hidden exits, expansion, portals."""

import pytest

from taleloop.core.world import (
    PORTAL_Z,
    UNEXPLORED_NAME,
    WorldGraph,
    find_free_slot,
    format_room_description,
    spiral_offsets,
)
from taleloop.enums import Direction
from taleloop.errors import PortalPlacementError, RoomOccupiedError, WorldStateError


@pytest.fixture
def world(state_manager):
    return WorldGraph(state_manager)


# ---------------------------------------------------------------------------
# Tests: Rooms and coordinates
# ---------------------------------------------------------------------------

class TestRooms:
    def test_create_and_lookup_by_coordinates(self, world):
        room = world.create_room("Cell", 0, 0, 0)
        assert world.get_room_at(0, 0, 0).id == room.id
        assert world.get_room_at(1, 0, 0) is None

    def test_occupied_slot_rejected(self, world):
        world.create_room("Cell", 0, 0, 0)
        with pytest.raises(RoomOccupiedError) as exc_info:
            world.create_room("Other Cell", 0, 0, 0)
        assert exc_info.value.coordinates == (0, 0, 0)

    def test_same_slot_in_another_story_is_fine(self, world, fresh_db):
        from taleloop.db.state_manager import StateManager

        world.create_room("Cell", 0, 0, 0)
        other = StateManager(2)
        try:
            other.ensure_story(title="Second")
            room = WorldGraph(other).create_room("Elsewhere", 0, 0, 0)
            assert room.story_id == 2
        finally:
            other.close()

    def test_require_room_missing_raises(self, world):
        with pytest.raises(WorldStateError):
            world.require_room(9999)

    def test_starting_room_creates_player_state(self, world, state_manager):
        room = world.create_starting_room("Start", description="Here it begins.")
        player = state_manager.get_player_state()
        assert player.current_room_id == room.id
        assert player.turn_count == 0
        assert room.is_story_critical


# ---------------------------------------------------------------------------
# Tests: Edges
# ---------------------------------------------------------------------------

class TestConnections:
    def test_bidirectional_connect_cell_hall(self, world):
        cell = world.create_room("Cell", 0, 0, 0)
        hall = world.create_room("Hall", 1, 0, 0)
        world.connect(cell.id, hall.id, Direction.EAST)

        assert cell.exits["east"] is True
        assert hall.exits["west"] is True
        assert world.room_in_direction(hall, Direction.WEST).id == cell.id

    def test_one_way_connect(self, world):
        cell = world.create_room("Cell", 0, 0, 0)
        pit = world.create_room("Pit", 0, 0, -1)
        world.connect(cell.id, pit.id, Direction.DOWN, bidirectional=False)

        assert cell.exits["down"] is True
        assert pit.exits["up"] is False

    @pytest.mark.parametrize("direction", list(Direction))
    def test_reciprocal_is_opposite(self, world, direction):
        a = world.create_room("A", 0, 0, 0)
        dx, dy, dz = direction.offset
        b = world.create_room("B", dx, dy, dz)
        world.connect(a.id, b.id, direction)
        assert b.neighbor_id(direction.opposite) == a.id

    def test_list_exits_in_fixed_order(self, world):
        hub = world.create_room("Hub", 0, 0, 0)
        for direction in (Direction.UP, Direction.WEST, Direction.NORTH):
            dx, dy, dz = direction.offset
            spoke = world.create_room(f"Spoke {direction}", dx, dy, dz)
            world.connect(hub.id, spoke.id, direction)
        assert world.list_exits(hub) == [Direction.NORTH, Direction.WEST, Direction.UP]

    def test_reconnect_clears_old_neighbours_back_edge(self, world):
        cell = world.create_room("Cell", 0, 0, 0)
        hall = world.create_room("Hall", 0, 1, 0)
        crypt = world.create_room("Crypt", 5, 5, 0)
        world.connect(cell.id, hall.id, Direction.NORTH)
        world.connect(cell.id, crypt.id, Direction.NORTH)

        assert cell.neighbor_id(Direction.NORTH) == crypt.id
        assert crypt.neighbor_id(Direction.SOUTH) == cell.id
        assert hall.neighbor_id(Direction.SOUTH) is None

    def test_reconnect_clears_targets_old_back_edge(self, world):
        cell = world.create_room("Cell", 0, 0, 0)
        hall = world.create_room("Hall", 0, 1, 0)
        attic = world.create_room("Attic", 3, 3, 0)
        world.connect(cell.id, hall.id, Direction.NORTH)
        world.connect(attic.id, hall.id, Direction.NORTH)

        assert hall.neighbor_id(Direction.SOUTH) == attic.id
        assert cell.neighbor_id(Direction.NORTH) is None

    def test_reconnect_keeps_unrelated_one_way_edge(self, world):
        cell = world.create_room("Cell", 0, 0, 0)
        pit = world.create_room("Pit", 0, 0, -1)
        cellar = world.create_room("Cellar", 4, 0, -1)
        world.connect(cell.id, pit.id, Direction.DOWN, bidirectional=False)
        world.connect(pit.id, cellar.id, Direction.UP, bidirectional=False)
        world.connect(cell.id, cellar.id, Direction.DOWN)

        assert pit.neighbor_id(Direction.UP) == cellar.id
        assert cellar.neighbor_id(Direction.UP) == cell.id


class TestHiddenExits:
    def test_hidden_exit_not_listed_until_discovered(self, world):
        study = world.create_room("Study", 0, 0, 0, hidden_exits=["north"])
        vault = world.create_room("Vault", 0, 1, 0)
        world.connect(study.id, vault.id, Direction.NORTH)

        assert Direction.NORTH not in world.list_exits(study)
        assert Direction.NORTH in world.list_exits(study, include_hidden=True)
        assert world.exit_map(study)["north"] is False

        assert world.reveal_exits(study, [Direction.NORTH]) == [Direction.NORTH]
        assert Direction.NORTH in world.list_exits(study)
        assert study.discovered_exits == ["north"]

    def test_revealing_twice_does_not_duplicate(self, world):
        study = world.create_room("Study", 0, 0, 0, hidden_exits=["east"])
        closet = world.create_room("Closet", 1, 0, 0)
        world.connect(study.id, closet.id, Direction.EAST)
        world.reveal_exits(study, ["east"])
        assert world.reveal_exits(study, ["east"]) == []
        assert study.discovered_exits == ["east"]

    def test_reveal_ignores_directions_without_an_edge(self, world):
        study = world.create_room("Study", 0, 0, 0, hidden_exits=["west"])
        assert world.reveal_exits(study, [Direction.WEST]) == []
        assert study.discovered_exits == []

    @pytest.mark.parametrize("text", ["search the north wall", "press the panel on the north side",
                                      "knock along the wall to the north"])
    def test_searching_toward_hidden_exit_reveals_it(self, world, text):
        study = world.create_room("Study", 0, 0, 0, hidden_exits=["north"])
        vault = world.create_room("Vault", 0, 1, 0)
        world.connect(study.id, vault.id, Direction.NORTH)

        assert world.discover_from_action(study, text) == [Direction.NORTH]
        assert Direction.NORTH in world.list_exits(study)

    def test_mentioning_a_direction_without_searching_reveals_nothing(self, world):
        study = world.create_room("Study", 0, 0, 0, hidden_exits=["north"])
        vault = world.create_room("Vault", 0, 1, 0)
        world.connect(study.id, vault.id, Direction.NORTH)

        assert world.discover_from_action(study, "sing a song about the north") == []
        assert world.discover_from_action(study, "search the room") == []
        assert study.discovered_exits == []


# ---------------------------------------------------------------------------
# Tests: Dynamic expansion
# ---------------------------------------------------------------------------

class TestExpansion:
    def test_expand_creates_placeholder_room(self, world):
        cell = world.create_room("Cell", 0, 0, 0)
        new_room = world.expand(cell, Direction.NORTH)

        assert new_room.name == UNEXPLORED_NAME
        assert (new_room.x, new_room.y, new_room.z) == (0, 1, 0)
        assert new_room.is_generated
        assert cell.neighbor_id(Direction.NORTH) == new_room.id
        assert new_room.neighbor_id(Direction.SOUTH) == cell.id

    def test_expand_links_existing_room_at_offset(self, world, state_manager):
        cell = world.create_room("Cell", 0, 0, 0)
        hall = world.create_room("Hall", 1, 0, 0)

        linked = world.expand(cell, Direction.EAST)

        assert linked.id == hall.id
        assert len(state_manager.get_rooms()) == 2
        assert hall.neighbor_id(Direction.WEST) == cell.id


# ---------------------------------------------------------------------------
# Tests: Portals
# ---------------------------------------------------------------------------

class TestPortals:
    def test_spiral_starts_at_origin_and_is_bounded(self):
        points = list(spiral_offsets(10))
        assert points[0] == (0, 0)
        assert len(points) == 10
        assert len(set(points)) == 10

    def test_portal_destination_lands_in_reserved_band(self, world):
        cell = world.create_room("Cell", 0, 0, 0)
        destination = world.place_portal(cell, "Mirror Realm")
        assert destination.z == PORTAL_Z
        assert (destination.x, destination.y) == (0, 0)

    def test_second_portal_takes_next_slot(self, world):
        cell = world.create_room("Cell", 0, 0, 0)
        hall = world.create_room("Hall", 1, 0, 0)
        first = world.place_portal(cell, "Mirror Realm")
        second = world.place_portal(hall, "Ember Plane")
        assert (first.x, first.y, first.z) != (second.x, second.y, second.z)
        assert second.z == PORTAL_Z

    def test_two_way_portal_links_back(self, world):
        cell = world.create_room("Cell", 0, 0, 0)
        destination = world.place_portal(cell, "Mirror Realm")

        assert world.traverse_portal(cell).id == destination.id
        assert world.traverse_portal(destination).id == cell.id

    def test_one_way_portal_has_no_return(self, world):
        cell = world.create_room("Cell", 0, 0, 0)
        destination = world.place_portal(cell, "Mirror Realm", one_way=True)
        assert world.traverse_portal(destination) is None

    def test_temporary_portal_closes_after_use(self, world):
        cell = world.create_room("Cell", 0, 0, 0)
        world.place_portal(cell, "Fading Door", temporary=True)

        assert world.traverse_portal(cell) is not None
        assert world.traverse_portal(cell) is None

    def test_no_free_slot_raises(self, world, state_manager):
        world.create_room("Blocker", 0, 0, PORTAL_Z)
        with pytest.raises(PortalPlacementError):
            find_free_slot(state_manager, PORTAL_Z, limit=1)


# ---------------------------------------------------------------------------
# Tests: Moving and describing
# ---------------------------------------------------------------------------

class TestMoveAndDescribe:
    async def test_move_counts_visits_and_turns(self, world, state_manager):
        start = world.create_starting_room("Start", description="Begin.")
        hall = world.create_room("Hall", 1, 0, 0, description="A long hall.",
                                 short_description="The hall again.")
        world.connect(start.id, hall.id, Direction.EAST)

        room, first, text = await world.move_to(hall.id)
        assert first is True
        assert text == "A long hall."
        assert room.visit_count == 1

        await world.move_to(start.id)
        room, first, text = await world.move_to(hall.id)
        assert first is False
        assert text == "The hall again."
        assert state_manager.get_player_state().turn_count == 3

    async def test_first_visit_without_description_asks_generator(self, state_manager, generator,
                                                                 mock_provider):
        world = WorldGraph(state_manager, generator)
        world.create_starting_room("Start")
        blank = world.create_room("Blank", 0, 1, 0)
        mock_provider.queue_response("Dust hangs in a shaft of grey light.")

        room, _, text = await world.move_to(blank.id)

        assert text == "Dust hangs in a shaft of grey light."
        assert room.description == text

    def test_format_room_description_layout(self, world, state_manager):
        room = world.create_room("Cell", 0, 0, 0)
        state_manager.add_object("rusty key", room_id=room.id)
        state_manager.add_character("Old Guard", current_room_id=room.id)
        hall = world.create_room("Hall", 1, 0, 0)
        world.connect(room.id, hall.id, Direction.EAST)

        text = world.describe(room, "Damp stone walls.")

        assert text.startswith("== CELL ==\n\nDamp stone walls.")
        assert "You can see: rusty key" in text
        assert "Present here: Old Guard" in text
        assert text.endswith("Exits: east")

    def test_portal_line_in_description(self, world):
        cell = world.create_room("Cell", 0, 0, 0)
        world.place_portal(cell, "Mirror Realm")
        text = format_room_description(cell, "Damp.")
        assert "A portal shimmers here, leading to Mirror Realm." in text
