"""Vehicles: rooms that dock at other rooms and travel between known destinations.

A vehicle room sits in its own high-z band and has no directional exits.
``docked_at_room_id`` is where disembarking puts the player;
``previous_docked_at_id`` backs GO BACK.
"""

import logging
from datetime import datetime

from ..db.models import Room
from ..db.state_manager import StateManager
from .turn import CommandResult
from .world import find_free_slot

logger = logging.getLogger(__name__)

VEHICLE_Z = 200
VEHICLE_SEARCH_LIMIT = 100


def match_destinations(destinations: list[Room], query: str) -> list[Room]:
    """Exact name, then substring, then any query word inside the name."""
    query = query.lower().strip()
    if not query:
        return []

    exact = [d for d in destinations if d.name.lower() == query]
    if exact:
        return exact

    partial = [d for d in destinations if query in d.name.lower()]
    if partial:
        return partial

    words = query.split()
    return [d for d in destinations if any(w in d.name.lower() for w in words)]


def _menu(rooms: list[Room]) -> list[dict]:
    return [{"id": r.id, "name": r.name} for r in rooms]


class VehicleService:
    def __init__(self, state: StateManager):
        self.state = state

    def create_vehicle(
        self,
        name: str,
        docked_at_id: int | None,
        vehicle_type: str = "generic",
        boarding_keywords: list[str] | None = None,
        known_destinations: list[int] | None = None,
        description: str | None = None,
    ) -> Room:
        x, y, z = find_free_slot(self.state, VEHICLE_Z, VEHICLE_SEARCH_LIMIT)
        known = list(known_destinations or [])
        if docked_at_id is not None and docked_at_id not in known:
            known.append(docked_at_id)

        vehicle = self.state.add_room(
            name, x, y, z,
            description=description,
            is_vehicle=True,
            vehicle_type=vehicle_type,
            docked_at_room_id=docked_at_id,
            boarding_keywords=list(boarding_keywords or []),
            known_destinations=known,
        )
        logger.info(f"Vehicle '{name}' ({vehicle_type}) docked at room {docked_at_id}")
        return vehicle

    def get_docked_vehicles(self, room_id: int) -> list[Room]:
        return self.state.get_vehicles_docked_at(room_id)

    def player_vehicle(self) -> tuple[Room | None, Room | None]:
        """(vehicle, docked_at) when the player is aboard a vehicle, else (None, None)."""
        player = self.state.get_player_state()
        if player is None:
            return None, None
        room = self.state.get_room(player.current_room_id)
        if room is None or not room.is_vehicle:
            return None, None
        return room, self.state.get_room(room.docked_at_room_id)

    def _put_player_aboard(self, vehicle: Room) -> None:
        if vehicle.first_visited_at is None:
            vehicle.first_visited_at = datetime.utcnow()
        vehicle.visit_count = (vehicle.visit_count or 0) + 1
        self.state.save(vehicle)
        self.state.update_player_state(current_room_id=vehicle.id, turn_increment=1)

    # ==== Boarding ====

    def board(self, room_id: int, keyword: str = "") -> CommandResult:
        vehicles = self.get_docked_vehicles(room_id)
        if not vehicles:
            return CommandResult(False, "There's no vehicle here to board.")

        needle = keyword.lower().strip()
        matched = None
        if needle:
            for vehicle in vehicles:
                if (needle in vehicle.name.lower()
                        or any(needle in k.lower() for k in (vehicle.boarding_keywords or []))
                        or (vehicle.vehicle_type and vehicle.vehicle_type.lower() in needle)):
                    matched = vehicle
                    break

        if matched is None:
            if len(vehicles) == 1:
                vehicle = vehicles[0]
                self._put_player_aboard(vehicle)
                return CommandResult(True, f"You board the {vehicle.name}.",
                                     room_changed=True, new_room_id=vehicle.id)
            available = ", ".join(v.name for v in vehicles)
            return CommandResult(False, f'You don\'t see a "{keyword}" here. Available: {available}.')

        self._put_player_aboard(matched)
        logger.info(f"Player boarded '{matched.name}'")
        return CommandResult(True, f"You climb aboard the {matched.name}.",
                             room_changed=True, new_room_id=matched.id)

    def disembark(self) -> CommandResult:
        vehicle, docked_at = self.player_vehicle()
        if vehicle is None:
            return CommandResult(False, "You're not in a vehicle.")
        if docked_at is None:
            return CommandResult(
                False,
                f"The {vehicle.name} isn't docked anywhere. You'll need to travel somewhere first.",
            )

        self.state.update_player_state(current_room_id=docked_at.id, turn_increment=1)
        return CommandResult(True, f"You disembark from the {vehicle.name}.",
                             room_changed=True, new_room_id=docked_at.id)

    # ==== Travel ====

    def known_destinations(self, vehicle: Room) -> list[Room]:
        rooms = [self.state.get_room(room_id) for room_id in (vehicle.known_destinations or [])]
        return [r for r in rooms if r is not None]

    def launch(self, query: str = "") -> CommandResult:
        vehicle, _ = self.player_vehicle()
        if vehicle is None:
            return CommandResult(False, "You need to be in a vehicle to travel.")

        destinations = self.known_destinations(vehicle)

        if not query or not query.strip():
            if not destinations:
                return CommandResult(
                    False, "You don't know of any destinations yet. Try exploring or looking at maps."
                )
            return CommandResult(False, "Where would you like to go?", menu_options=_menu(destinations))

        # A bare number is a menu choice: the id of one of the offered destinations
        if query.strip().isdigit() and int(query) in {d.id for d in destinations}:
            return self.travel_to(int(query))

        matches = match_destinations(destinations, query)
        if len(matches) == 1:
            return self.travel(vehicle, matches[0])
        if len(matches) > 1:
            return CommandResult(False, f'Multiple destinations match "{query}". Which one?',
                                 menu_options=_menu(matches))
        return CommandResult(False, f'You\'re not sure how to get to "{query}" from here.')

    def travel_to(self, destination_id: int) -> CommandResult:
        """Menu follow-up: travel straight to one of the vehicle's known destinations."""
        vehicle, _ = self.player_vehicle()
        if vehicle is None:
            return CommandResult(False, "You need to be in a vehicle to travel.")
        if destination_id not in (vehicle.known_destinations or []):
            return CommandResult(False, f"The {vehicle.name} doesn't know the way there.")
        destination = self.state.get_room(destination_id)
        if destination is None:
            return CommandResult(False, "That destination doesn't exist.")
        return self.travel(vehicle, destination)

    def travel(self, vehicle: Room, destination: Room) -> CommandResult:
        vehicle.previous_docked_at_id = vehicle.docked_at_room_id
        vehicle.docked_at_room_id = destination.id
        known = list(vehicle.known_destinations or [])
        if destination.id not in known:
            vehicle.known_destinations = known + [destination.id]
        self.state.save(vehicle)
        self.state.update_player_state(turn_increment=1)

        logger.info(f"Vehicle '{vehicle.name}' travelled to '{destination.name}'")
        return CommandResult(True, f"The {vehicle.name} travels to {destination.name}.")

    def go_back(self) -> CommandResult:
        vehicle, _ = self.player_vehicle()
        if vehicle is None:
            return CommandResult(False, "You need to be in a vehicle to go back.")
        if vehicle.previous_docked_at_id is None:
            return CommandResult(False, f"The {vehicle.name} hasn't been anywhere else yet.")

        previous = self.state.get_room(vehicle.previous_docked_at_id)
        if previous is None:
            return CommandResult(False, "The previous location no longer exists.")
        return self.travel(vehicle, previous)
