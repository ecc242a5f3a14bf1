"""Command handlers mixin: one method per command type.

Split from orchestrator.py for maintainability. Every handler returns a
CommandResult; the turn pipeline adds puzzles, ticks and dilemmas on top.
"""

import logging

from ..config import Config
from ..db.models import Room
from ..enums import CommandType
from .commands import HELP_TEXT, Command, resolve_direction
from .dice import DEFAULT_DIFFICULTY
from .skills import format_check_result
from .turn import CommandResult
from .world import PORTAL_Z, format_room_description

logger = logging.getLogger(__name__)

NO_DISCOVERY_MARKERS = ("don't understand", "nothing happens")
MIN_DISCOVERY_LENGTH = 50


class CommandHandlersMixin:
    """Dispatch and handlers for every CommandType.

    Relies on instance attributes set by ``Orchestrator.__init__``.
    """

    async def _execute(self, command: Command, room: Room) -> CommandResult:
        handlers = {
            CommandType.GO: self._handle_go,
            CommandType.GO_BACK: self._handle_go_back,
            CommandType.LOOK: self._handle_look,
            CommandType.EXAMINE: self._handle_examine,
            CommandType.TAKE: self._handle_take,
            CommandType.DROP: self._handle_drop,
            CommandType.USE: self._handle_use,
            CommandType.INVENTORY: self._handle_inventory,
            CommandType.TALK: self._handle_talk,
            CommandType.HELP: self._handle_help,
            CommandType.BOARD: self._handle_board,
            CommandType.DISEMBARK: self._handle_disembark,
            CommandType.LAUNCH: self._handle_launch,
            CommandType.PORTAL: self._handle_portal,
        }
        handler = handlers.get(command.type, self._handle_unclassified)
        return await handler(command, room)

    async def _arrive(self, room_id: int, lead: str = "") -> CommandResult:
        """Move the player and describe the new room."""
        new_room, _, description = await self.world.move_to(room_id)
        text = self.world.describe(new_room, description)
        return CommandResult(
            True,
            f"{lead}\n\n{text}" if lead else text,
            room_changed=True,
            new_room_id=new_room.id,
        )

    # ==== Movement ====

    async def _handle_go(self, command: Command, room: Room) -> CommandResult:
        if not command.target:
            return CommandResult(False, "Go where? Try: GO NORTH, GO SOUTH, GO EAST, GO WEST, GO UP, or GO DOWN.")

        direction = resolve_direction(command.target)
        if direction is None:
            return CommandResult(
                False,
                f'I don\'t understand "{command.target}" as a direction. '
                f"Try: NORTH, SOUTH, EAST, WEST, UP, or DOWN.",
            )

        target_id = room.neighbor_id(direction)
        if target_id is not None and not self.world.is_visible(room, direction):
            # Undiscovered hidden exit; expansion must not build a second room there
            return CommandResult(False, f"You can't go {direction} from here.")

        if target_id is None:
            if not self._can_expand(room):
                return CommandResult(False, f"You can't go {direction} from here.")
            target_id = self.world.expand(room, direction).id

        return await self._arrive(target_id)

    @staticmethod
    def _can_expand(room: Room) -> bool:
        return Config.DYNAMIC_EXPANSION and not room.is_vehicle and room.z < PORTAL_Z

    async def _handle_go_back(self, command: Command, room: Room) -> CommandResult:
        vehicle, _ = self.vehicles.player_vehicle()
        result = self.vehicles.go_back()
        if not result.success or vehicle is None:
            return result
        docked = self.state.get_room(vehicle.docked_at_room_id)
        result.response += f"\n\n[The {vehicle.name} is now docked at {docked.name}.]"
        return result

    async def _handle_portal(self, command: Command, room: Room) -> CommandResult:
        destination = self.world.traverse_portal(room)
        if destination is None:
            return CommandResult(False, "There's no portal here.")
        return await self._arrive(destination.id, lead="You step through the portal.")

    # ==== Looking ====

    async def _handle_look(self, command: Command, room: Room) -> CommandResult:
        description = room.description or "You look around but see nothing remarkable."
        return CommandResult(True, self.world.describe(room, description))

    async def _handle_examine(self, command: Command, room: Room) -> CommandResult:
        if not command.target:
            return CommandResult(False, "Examine what? Try: EXAMINE [object name]")

        obj = self.objects.find_nearby(room.id, command.target)
        if obj is not None:
            self.objects.mark_examined(obj)
            response = obj.description or f"You examine the {obj.name}. It seems ordinary."
            details = self.objects.discovered_details(obj)
            if details:
                response += "\n\n" + "\n\n".join(details)
            return CommandResult(True, response)

        character = self.objects.find_character(room.id, command.target)
        if character is not None:
            return CommandResult(True, character.description or f"You look at {character.name}.")

        cached = self.cache.get_exact(room.id, command)
        if cached is not None:
            return CommandResult(True, cached)

        output = await self._generate(command, room)
        if not output.is_fallback:
            self.cache.store_exact(room.id, command, output.narrative_text)
        return CommandResult(True, output.narrative_text, personality_signal=output.signal())

    # ==== Objects ====

    async def _handle_take(self, command: Command, room: Room) -> CommandResult:
        if not command.target:
            return CommandResult(False, "Take what? Try: TAKE [object name]")
        return self.objects.take(room.id, command.target)

    async def _handle_drop(self, command: Command, room: Room) -> CommandResult:
        if not command.target:
            return CommandResult(False, "Drop what? Try: DROP [object name]")
        return self.objects.drop(room.id, command.target)

    async def _handle_inventory(self, command: Command, room: Room) -> CommandResult:
        inventory = self.objects.inventory()
        if not inventory:
            return CommandResult(True, "You are not carrying anything.")
        items = "\n".join(f"  - {obj.name}" for obj in inventory)
        return CommandResult(True, f"You are carrying:\n{items}")

    async def _handle_use(self, command: Command, room: Room) -> CommandResult:
        if not command.target:
            return CommandResult(False, "Use what? Try: USE [object] or USE [object] ON [target]")

        verb = command.raw.split(" ", 1)[0].lower()
        obj = self.objects.find_nearby(room.id, command.target)

        if verb == "put" and command.modifier:
            if obj is None:
                return CommandResult(False, f'You don\'t see any "{command.target}" here.')
            container = self.objects.find_nearby(room.id, command.modifier)
            if container is None:
                return CommandResult(False, f'You don\'t see any "{command.modifier}" here.')
            return self.objects.put_in(obj, container)

        if verb == "open" and obj is not None and obj.is_container:
            return self.objects.open(room.id, command.target)

        if verb == "unlock" and obj is not None and obj.is_locked:
            return self.objects.unlock(room.id, command.target)

        if verb == "use" and command.modifier:
            lock = self.objects.find_in_room(room.id, command.modifier)
            if lock is not None and lock.is_locked and obj is not None and lock.key_object_id == obj.id:
                return self.objects.unlock(room.id, command.modifier)

        output = await self._generate(command, room)
        response = output.narrative_text

        if obj is not None and len(response) > MIN_DISCOVERY_LENGTH and not output.is_fallback:
            lowered = response.lower()
            if not any(marker in lowered for marker in NO_DISCOVERY_MARKERS):
                self.objects.record_discovery(obj, response)
                self.objects.mark_examined(obj)

        return CommandResult(True, self._with_world_changes(output, room), personality_signal=output.signal())

    # ==== Characters ====

    async def _handle_talk(self, command: Command, room: Room) -> CommandResult:
        if not command.target:
            return CommandResult(False, "Talk to whom? Try: TALK TO [character name]")

        character = self.objects.find_character(room.id, command.target)
        if character is None:
            return CommandResult(False, f'You don\'t see anyone called "{command.target}" here.')

        output = await self._generate(command, room)
        return CommandResult(True, self._with_world_changes(output, room), personality_signal=output.signal())

    async def _handle_help(self, command: Command, room: Room) -> CommandResult:
        return CommandResult(True, HELP_TEXT)

    # ==== Vehicles ====

    def _docked_hint(self) -> str:
        _, docked_at = self.vehicles.player_vehicle()
        if docked_at is not None:
            return (f"[Docked at: {docked_at.name}. Type DISEMBARK to leave or "
                    f"LAUNCH TO [destination] to travel.]")
        return "[Type LAUNCH TO [destination] to travel, or LAUNCH to see available destinations.]"

    async def _handle_board(self, command: Command, room: Room) -> CommandResult:
        result = self.vehicles.board(room.id, command.target or "")
        if not result.success:
            return result

        vehicle = self.state.get_room(result.new_room_id)
        description = vehicle.description or f"You are aboard the {vehicle.name}."
        block = format_room_description(vehicle, description)
        result.response = f"{result.response}\n\n{block}\n\n{self._docked_hint()}"
        return result

    async def _handle_disembark(self, command: Command, room: Room) -> CommandResult:
        result = self.vehicles.disembark()
        if not result.success:
            return result

        destination = self.state.get_room(result.new_room_id)
        block = self.world.describe(destination, destination.description or "You step out of the vehicle.")
        result.response = f"{result.response}\n\n{block}"
        return result

    async def _handle_launch(self, command: Command, room: Room) -> CommandResult:
        vehicle, _ = self.vehicles.player_vehicle()
        if vehicle is None:
            return CommandResult(False, "You need to be in a vehicle to travel. Try BOARD [vehicle] first.")

        result = self.vehicles.launch(command.target or "")
        if result.menu_options:
            options = "\n".join(f"  {opt['id']}. {opt['name']}" for opt in result.menu_options)
            result.response = (f"{result.response}\n\n{options}\n\n"
                               f"[Type LAUNCH TO [number or destination name] to travel]")
            return result
        if not result.success:
            return result

        docked = self.state.get_room(vehicle.docked_at_room_id)
        result.response += (f"\n\n[The {vehicle.name} is now docked at {docked.name}. "
                            f"Type DISEMBARK to leave the vehicle.]")
        return result

    # ==== Free-form input ====

    async def _generate(self, command: Command, room: Room, skill_name: str | None = None):
        return await self.generator.process_command(
            self.state,
            command.raw,
            room,
            self.state.get_objects_in_room(room.id),
            self.state.get_characters_in_room(room.id),
            skill_name=skill_name,
        )

    async def _handle_unclassified(self, command: Command, room: Room) -> CommandResult:
        skill_name = self.skills.find_skill_for_input(command.raw)
        if skill_name:
            return await self._handle_skill_action(command, room, skill_name)

        cached = self.cache.get_semantic(room.id, command.raw)
        if cached is not None:
            return CommandResult(True, cached)

        output = await self._generate(command, room)
        if not output.is_fallback:
            self.cache.store_semantic(room.id, command.raw, output.narrative_text)
        return CommandResult(True, self._with_world_changes(output, room), personality_signal=output.signal())

    def _with_world_changes(self, output, room: Room) -> str:
        """Narrative plus one note per world change; the cache keeps only the narrative."""
        notes = self._apply_world_changes(output, room)
        return "\n\n".join([output.narrative_text, *notes])

    async def _handle_skill_action(self, command: Command, room: Room, skill_name: str) -> CommandResult:
        output = await self._generate(command, room, skill_name=skill_name)
        difficulty = output.skill_check_difficulty
        if difficulty is None:
            difficulty = DEFAULT_DIFFICULTY

        check = self.skills.perform_check(skill_name, difficulty, context=command.raw)
        response = format_check_result(check)

        if check.is_nat20 or check.is_nat1:
            narrative = await self.generator.generate_spectacular_narrative(
                self.state,
                command.raw,
                check.ability_name,
                check.is_nat20,
                room,
                self.state.get_objects_in_room(room.id),
                self.state.get_characters_in_room(room.id),
            )
        elif check.success:
            narrative = output.success_narrative or output.narrative_text
        else:
            narrative = output.failure_narrative or output.narrative_text

        return CommandResult(
            check.success,
            f"{response}\n\n{narrative}",
            personality_signal=check.personality_signal,
        )
