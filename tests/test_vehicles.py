"""Tests for vehicle rooms: boarding, travel menus, GO BACK, disembarking."""

import pytest

from taleloop.core.vehicles import VEHICLE_Z, VehicleService, match_destinations
from taleloop.core.world import WorldGraph


@pytest.fixture
def harbor_world(state_manager):
    """Pier (start), Harbor Town and Harbor Fort, plus a ship docked at the pier."""
    world = WorldGraph(state_manager)
    pier = world.create_starting_room("Pier", description="Gulls wheel overhead.")
    town = world.create_room("Harbor Town", 10, 0, 0)
    fort = world.create_room("Harbor Fort", 20, 0, 0)
    isle = world.create_room("Misty Isle", 30, 0, 0)
    vehicles = VehicleService(state_manager)
    ship = vehicles.create_vehicle(
        "Sea Sprite",
        pier.id,
        vehicle_type="ship",
        boarding_keywords=["boat", "sloop"],
        known_destinations=[town.id, fort.id, isle.id],
    )
    return {"vehicles": vehicles, "pier": pier, "town": town, "fort": fort, "isle": isle, "ship": ship}


# ---------------------------------------------------------------------------
# Tests: Placement
# ---------------------------------------------------------------------------

class TestVehiclePlacement:
    def test_vehicle_lives_in_its_own_band(self, harbor_world):
        ship = harbor_world["ship"]
        assert ship.is_vehicle
        assert ship.z == VEHICLE_Z

    def test_docked_room_becomes_known_destination(self, harbor_world):
        assert harbor_world["pier"].id in harbor_world["ship"].known_destinations


# ---------------------------------------------------------------------------
# Tests: Boarding and disembarking
# ---------------------------------------------------------------------------

class TestBoarding:
    def test_board_by_keyword(self, harbor_world, state_manager):
        result = harbor_world["vehicles"].board(harbor_world["pier"].id, "boat")
        assert result.success
        assert result.room_changed
        assert state_manager.get_player_state().current_room_id == harbor_world["ship"].id

    def test_board_single_vehicle_without_keyword(self, harbor_world):
        result = harbor_world["vehicles"].board(harbor_world["pier"].id, "")
        assert result.success
        assert result.response == "You board the Sea Sprite."

    def test_board_nothing_docked(self, harbor_world):
        result = harbor_world["vehicles"].board(harbor_world["town"].id, "boat")
        assert not result.success
        assert "no vehicle" in result.response

    def test_disembark_returns_to_dock(self, harbor_world, state_manager):
        vehicles = harbor_world["vehicles"]
        vehicles.board(harbor_world["pier"].id, "ship")
        result = vehicles.disembark()
        assert result.success
        assert state_manager.get_player_state().current_room_id == harbor_world["pier"].id

    def test_disembark_when_not_aboard(self, harbor_world):
        result = harbor_world["vehicles"].disembark()
        assert not result.success
        assert result.response == "You're not in a vehicle."


# ---------------------------------------------------------------------------
# Tests: Travel
# ---------------------------------------------------------------------------

class TestTravel:
    def test_launch_without_destination_offers_menu(self, harbor_world):
        vehicles = harbor_world["vehicles"]
        vehicles.board(harbor_world["pier"].id, "ship")
        result = vehicles.launch("")
        names = [option["name"] for option in result.menu_options]
        assert names == ["Harbor Town", "Harbor Fort", "Misty Isle", "Pier"]

    def test_ambiguous_destination_offers_matches(self, harbor_world):
        vehicles = harbor_world["vehicles"]
        vehicles.board(harbor_world["pier"].id, "ship")
        result = vehicles.launch("harbor")
        assert not result.success
        assert {o["name"] for o in result.menu_options} == {"Harbor Town", "Harbor Fort"}

    def test_launch_moves_vehicle_and_remembers_previous_dock(self, harbor_world, state_manager):
        vehicles = harbor_world["vehicles"]
        ship = harbor_world["ship"]
        vehicles.board(harbor_world["pier"].id, "ship")
        turns_before = state_manager.get_player_state().turn_count

        result = vehicles.launch("misty isle")

        assert result.success
        assert ship.docked_at_room_id == harbor_world["isle"].id
        assert ship.previous_docked_at_id == harbor_world["pier"].id
        assert state_manager.get_player_state().turn_count == turns_before + 1

    def test_go_back_returns_to_previous_dock(self, harbor_world):
        vehicles = harbor_world["vehicles"]
        ship = harbor_world["ship"]
        vehicles.board(harbor_world["pier"].id, "ship")
        vehicles.launch("town")

        result = vehicles.go_back()

        assert result.success
        assert ship.docked_at_room_id == harbor_world["pier"].id
        assert ship.previous_docked_at_id == harbor_world["town"].id

    def test_go_back_before_travelling(self, harbor_world):
        vehicles = harbor_world["vehicles"]
        vehicles.board(harbor_world["pier"].id, "ship")
        result = vehicles.go_back()
        assert not result.success

    def test_unknown_destination(self, harbor_world):
        vehicles = harbor_world["vehicles"]
        vehicles.board(harbor_world["pier"].id, "ship")
        result = vehicles.launch("atlantis")
        assert not result.success
        assert result.menu_options is None

    def test_menu_choice_by_id(self, harbor_world):
        vehicles = harbor_world["vehicles"]
        ship = harbor_world["ship"]
        vehicles.board(harbor_world["pier"].id, "ship")
        menu = vehicles.launch("harbor").menu_options
        fort_id = next(o["id"] for o in menu if o["name"] == "Harbor Fort")

        result = vehicles.launch(str(fort_id))

        assert result.success
        assert result.response == "The Sea Sprite travels to Harbor Fort."
        assert ship.docked_at_room_id == harbor_world["fort"].id

    def test_travel_to_known_destination(self, harbor_world):
        vehicles = harbor_world["vehicles"]
        vehicles.board(harbor_world["pier"].id, "ship")
        result = vehicles.travel_to(harbor_world["isle"].id)
        assert result.success
        assert harbor_world["ship"].docked_at_room_id == harbor_world["isle"].id

    def test_travel_to_unknown_room_refused(self, harbor_world, state_manager):
        vehicles = harbor_world["vehicles"]
        secret = WorldGraph(state_manager).create_room("Smugglers' Cove", 40, 0, 0)
        vehicles.board(harbor_world["pier"].id, "ship")

        result = vehicles.travel_to(secret.id)

        assert not result.success
        assert result.response == "The Sea Sprite doesn't know the way there."
        assert harbor_world["ship"].docked_at_room_id == harbor_world["pier"].id

    def test_travel_to_when_not_aboard(self, harbor_world):
        assert not harbor_world["vehicles"].travel_to(harbor_world["town"].id).success


class TestMatchDestinations:
    def test_exact_beats_partial(self, harbor_world):
        rooms = [harbor_world["town"], harbor_world["fort"]]
        assert match_destinations(rooms, "Harbor Town") == [harbor_world["town"]]

    def test_word_match(self, harbor_world):
        rooms = [harbor_world["town"], harbor_world["isle"]]
        assert match_destinations(rooms, "the isle please") == [harbor_world["isle"]]

    def test_blank_query(self, harbor_world):
        assert match_destinations([harbor_world["town"]], "  ") == []
