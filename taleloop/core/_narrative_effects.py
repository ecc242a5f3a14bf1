"""Narrative effects mixin: world edits the narrator reports in ``stateChanges``.

Split from orchestrator.py for maintainability. Each applied change adds a
bracketed note to the turn's response ("[You notice: ...]").
"""

import logging

from ..agents.narrator import GeneratorOutput, NewItem, NewPassage, NewTimedEvent
from ..db.models import GameObject, Room
from ..db.schemas import RoomAtmosphere, load_blob
from .world import PORTAL_Z, UNEXPLORED_NAME, format_revealed_exits

logger = logging.getLogger(__name__)

NARRATOR_FACT_SOURCE = "narrator"


class NarrativeEffectsMixin:
    """Applies generator world changes to the current room.

    Relies on instance attributes set by ``Orchestrator.__init__``.
    """

    def _apply_world_changes(self, output: GeneratorOutput, room: Room) -> list[str]:
        """Apply everything in ``output.state_changes``; returns the notes for the player."""
        changes = output.world_changes()
        notes = []

        with self.state.transaction():
            found = self._add_found_items(changes.new_items, room)
            if found:
                notes.append(f"[You notice: {', '.join(obj.name for obj in found)}]")

            revealed = self.world.reveal_exits(room, changes.reveal_exits)
            if revealed:
                notes.append(format_revealed_exits(revealed))

            if changes.new_passage is not None:
                note = self._open_passage(changes.new_passage, room)
                if note:
                    notes.append(note)

            if changes.timed_event is not None:
                note = self._start_event(changes.timed_event, room)
                if note:
                    notes.append(note)

            self._gather_characters(changes.characters_present, room)

            for fact in changes.facts:
                if fact.strip():
                    self.state.add_fact(fact.strip(), source=NARRATOR_FACT_SOURCE)

        return notes

    def _add_found_items(self, items: list[NewItem], room: Room) -> list[GameObject]:
        known = [o.name.lower() for o in self.state.get_objects_in_room(room.id) + self.objects.inventory()]
        created = []
        for item in items:
            name = item.name.strip()
            lowered = name.lower()
            if not name or any(lowered in k or k in lowered for k in known):
                continue
            created.append(self.objects.create_object(
                name,
                room_id=room.id,
                description=item.description or None,
                is_takeable=item.is_takeable,
                synonyms=item.synonyms,
            ))
            known.append(lowered)
        if created:
            logger.info(f"Narrator placed {len(created)} item(s) in '{room.name}'")
        return created

    def _open_passage(self, passage: NewPassage, room: Room) -> str | None:
        if passage.is_portal or passage.direction is None:
            if load_blob(RoomAtmosphere, room.atmosphere).portal_to is not None:
                return None
            destination = self.world.place_portal(
                room, passage.name,
                one_way=passage.one_way,
                temporary=passage.temporary,
                description=passage.description or None,
            )
            return f"[Portal opened: enter portal to reach {destination.name}]"

        direction = passage.direction
        if room.neighbor_id(direction) is not None:
            revealed = self.world.reveal_exits(room, [direction])
            return format_revealed_exits(revealed) if revealed else None
        if room.is_vehicle or room.z >= PORTAL_Z:
            logger.warning(f"Ignoring passage '{passage.name}' off the grid in '{room.name}'")
            return None

        target = self.world.expand(room, direction)
        if target.name == UNEXPLORED_NAME and not target.description:
            target.name = passage.name
            target.description = passage.description or None
            self.state.save(target)
        return f"[New exit: {direction} to {target.name}]"

    def _start_event(self, event: NewTimedEvent, room: Room) -> str | None:
        if self.state.get_events_by_name(event.name):
            return None
        self.events.create_event(
            event.name,
            event.total_turns,
            event.trigger_narrative,
            consequence=event.consequence,
            progress_narratives=event.progress_narratives,
            description=event.description,
            room_id=room.id,
            can_be_prevented=event.can_be_prevented,
            prevention_hint=event.prevention_hint,
        )
        return f"[Event started: {event.name} - {event.total_turns} turns remaining]"

    def _gather_characters(self, names: list[str], room: Room) -> None:
        wanted = [n.lower().strip() for n in names if n and n.strip()]
        if not wanted:
            return
        for character in self.state.get_characters():
            if character.current_room_id == room.id:
                continue
            full = character.name.lower()
            if any(name == full or name in full.split() for name in wanted):
                character.current_room_id = room.id
                self.state.save(character)
                logger.info(f"'{character.name}' joined the player in '{room.name}'")
