"""Objects and characters.

An object lives in exactly one place: a room, the inventory (no room and
no container), or inside another object. Every move goes through
``_relocate`` so the two location columns are never both set; the
database CHECK constraint backs this up.
"""

import logging
from datetime import datetime

from ..db.models import Character, GameObject
from ..db.schemas import ObjectState, PersonalitySignal, dump_blob, load_blob
from ..db.state_manager import StateManager
from ..enums import TraitDimension
from .turn import CommandResult

logger = logging.getLogger(__name__)


def object_matches(obj: GameObject, name: str) -> bool:
    """Name or synonym substring match, case-insensitive."""
    needle = name.lower().strip()
    if not needle:
        return False
    if needle in obj.name.lower():
        return True
    return any(needle in str(s).lower() for s in (obj.synonyms or []))


class ObjectService:
    """Object and character operations for one story."""

    def __init__(self, state: StateManager):
        self.state = state

    def create_object(
        self,
        name: str,
        room_id: int | None = None,
        description: str | None = None,
        contained_in_id: int | None = None,
        is_takeable: bool = True,
        is_story_critical: bool = False,
        is_container: bool = False,
        is_locked: bool = False,
        synonyms: list[str] | None = None,
        key_object_id: int | None = None,
    ) -> GameObject:
        """Create an object; with neither room nor container it starts in the inventory."""
        if room_id is not None and contained_in_id is not None:
            raise ValueError("An object cannot be in a room and a container at once")
        return self.state.add_object(
            name,
            room_id=room_id,
            contained_in_id=contained_in_id,
            description=description,
            is_takeable=is_takeable,
            is_story_critical=is_story_critical,
            is_container=is_container,
            is_open=not (is_container and is_locked),
            is_locked=is_locked,
            synonyms=synonyms or [],
            key_object_id=key_object_id,
            state=dump_blob(ObjectState()),
        )

    def _relocate(self, obj: GameObject, room_id: int | None = None,
                  container: GameObject | None = None) -> GameObject:
        obj.room_id = room_id if container is None else None
        obj.contained_in_id = container.id if container is not None else None
        self.state.save(obj)
        return obj

    # ==== Lookup ====

    def find_in_room(self, room_id: int, name: str) -> GameObject | None:
        for obj in self.state.get_objects_in_room(room_id):
            if object_matches(obj, name):
                return obj
        return None

    def find_in_inventory(self, name: str) -> GameObject | None:
        for obj in self.state.get_inventory():
            if object_matches(obj, name):
                return obj
        return None

    def _reachable_contents(self, room_id: int) -> list[GameObject]:
        """Objects inside open containers in the room or the inventory, nested ones included."""
        queue = self.state.get_objects_in_room(room_id) + self.state.get_inventory()
        seen: set[int] = set()
        found = []
        while queue:
            holder = queue.pop(0)
            if holder.id in seen or not (holder.is_container and holder.is_open):
                continue
            seen.add(holder.id)
            contents = self.state.get_contents(holder.id)
            found.extend(contents)
            queue.extend(contents)
        return found

    def find_in_containers(self, room_id: int, name: str) -> GameObject | None:
        for obj in self._reachable_contents(room_id):
            if object_matches(obj, name):
                return obj
        return None

    def find_nearby(self, room_id: int, name: str) -> GameObject | None:
        """Room first, then inventory, then inside open containers."""
        return (self.find_in_room(room_id, name)
                or self.find_in_inventory(name)
                or self.find_in_containers(room_id, name))

    def inventory(self) -> list[GameObject]:
        return self.state.get_inventory()

    def _encloses(self, outer: GameObject, inner: GameObject) -> bool:
        """True when ``inner`` sits somewhere inside ``outer``."""
        seen: set[int] = set()
        current = inner
        while current is not None and current.contained_in_id is not None and current.id not in seen:
            if current.contained_in_id == outer.id:
                return True
            seen.add(current.id)
            current = self.state.get_object(current.contained_in_id)
        return False

    # ==== Moving things ====

    def take(self, room_id: int, name: str) -> CommandResult:
        obj = self.find_in_room(room_id, name) or self.find_in_containers(room_id, name)
        if obj is None:
            return CommandResult(False, f'You don\'t see any "{name}" here.')
        if not obj.is_takeable:
            return CommandResult(False, f"You can't take the {obj.name}.")

        holder = self.state.get_object(obj.contained_in_id)
        self._relocate(obj)
        logger.info(f"Took '{obj.name}'")

        signal = None
        if obj.is_story_critical:
            signal = PersonalitySignal(
                dimension=TraitDimension.CONSCIENTIOUSNESS,
                delta=2,
                confidence=3,
                reasoning="Player is collecting items that may be important later.",
            )
        if holder is not None:
            return CommandResult(True, f"You take the {obj.name} from the {holder.name}.",
                                 personality_signal=signal)
        return CommandResult(True, f"You take the {obj.name}.", personality_signal=signal)

    def drop(self, room_id: int, name: str) -> CommandResult:
        obj = self.find_in_inventory(name)
        if obj is None:
            return CommandResult(False, f'You\'re not carrying any "{name}".')

        self._relocate(obj, room_id=room_id)
        logger.info(f"Dropped '{obj.name}' in room {room_id}")

        signal = None
        if obj.is_story_critical:
            signal = PersonalitySignal(
                dimension=TraitDimension.CONSCIENTIOUSNESS,
                delta=-2,
                confidence=4,
                reasoning="Player is abandoning an item that may be important.",
            )
        return CommandResult(True, f"You drop the {obj.name}.", personality_signal=signal)

    def put_in(self, obj: GameObject, container: GameObject) -> CommandResult:
        if obj.id == container.id:
            return CommandResult(False, f"You can't put the {obj.name} inside itself.")
        if not obj.is_takeable:
            return CommandResult(False, f"You can't move the {obj.name}.")
        if self._encloses(obj, container):
            return CommandResult(False, f"The {container.name} is inside the {obj.name}.")
        if not container.is_container:
            return CommandResult(False, f"The {container.name} can't hold anything.")
        if not container.is_open:
            return CommandResult(False, f"The {container.name} is closed.")
        self._relocate(obj, container=container)
        return CommandResult(True, f"You put the {obj.name} in the {container.name}.")

    # ==== Containers and locks ====

    def open(self, room_id: int, name: str) -> CommandResult:
        obj = self.find_nearby(room_id, name)
        if obj is None:
            return CommandResult(False, f'You don\'t see any "{name}" to open.')
        if not obj.is_container:
            return CommandResult(False, f"The {obj.name} can't be opened.")
        if obj.is_open:
            return CommandResult(False, f"The {obj.name} is already open.")
        if obj.is_locked:
            return CommandResult(False, f"The {obj.name} is locked.")

        obj.is_open = True
        self.state.save(obj)

        contents = self.state.get_contents(obj.id)
        if contents:
            items = ", ".join(o.name for o in contents)
            return CommandResult(True, f"You open the {obj.name}. Inside you find: {items}")
        return CommandResult(True, f"You open the {obj.name}. It's empty.")

    def unlock(self, room_id: int, name: str) -> CommandResult:
        obj = self.find_in_room(room_id, name)
        if obj is None:
            return CommandResult(False, f'You don\'t see any "{name}" to unlock.')
        if not obj.is_locked:
            return CommandResult(False, f"The {obj.name} isn't locked.")
        if obj.key_object_id is None:
            return CommandResult(False, f"You can't figure out how to unlock the {obj.name}.")

        key = next((o for o in self.state.get_inventory() if o.id == obj.key_object_id), None)
        if key is None:
            return CommandResult(False, f"You need something to unlock the {obj.name}.")

        obj.is_locked = False
        self.state.save(obj)
        return CommandResult(True, f"You unlock the {obj.name} with the {key.name}.")

    # ==== Discoveries ====

    def record_discovery(self, obj: GameObject, text: str) -> bool:
        """Remember something the player learned about ``obj``; False on duplicates."""
        blob = load_blob(ObjectState, obj.state)
        if text in blob.discovered_details:
            return False
        blob.discovered_details.append(text)
        blob.last_interaction = datetime.utcnow().isoformat()
        obj.state = dump_blob(blob)
        self.state.save(obj)
        return True

    def mark_examined(self, obj: GameObject) -> None:
        if obj.first_examined_at is None:
            obj.first_examined_at = datetime.utcnow()
            self.state.save(obj)

    @staticmethod
    def discovered_details(obj: GameObject) -> list[str]:
        return load_blob(ObjectState, obj.state).discovered_details

    # ==== Characters ====

    def characters_in(self, room_id: int) -> list[Character]:
        return self.state.get_characters_in_room(room_id)

    def find_character(self, room_id: int, name: str) -> Character | None:
        needle = name.lower().strip()
        for character in self.characters_in(room_id):
            if needle and needle in character.name.lower():
                return character
        return None
