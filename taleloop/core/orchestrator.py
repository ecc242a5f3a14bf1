"""Main orchestrator for the taleloop turn loop.

Composed from three domain-specific mixins:

    CommandHandlersMixin  – One handler per command type
    TurnPipelineMixin     – The main process_turn pipeline
    NarrativeEffectsMixin – World changes reported by the narrator

This file retains initialization, world setup and lifecycle methods.
"""

import logging
import random
from collections.abc import Awaitable, Callable

from ..agents.narrator import NarrativeGenerator
from ..db.schemas import (
    EventConsequence,
    RoomAtmosphere,
    StorySeed,
    WorldImport,
    dump_blob,
    load_blob,
)
from ..db.state_manager import StateManager
from ..enums import AbilityOrigin, MessageType, PuzzleStatus, Speaker
from ..errors import WorldImportError
from ._handlers import CommandHandlersMixin
from ._narrative_effects import NarrativeEffectsMixin
from ._turn_pipeline import TurnPipelineMixin
from .cache import ResponseCache
from .locks import story_lock
from .objects import ObjectService
from .personality import PersonalityModel
from .puzzles import PuzzleTracker
from .skills import SkillEngine, mastery
from .timed_events import TimedEventScheduler
from .turn import DilemmaOutcome, GameState, TurnProgress
from .vehicles import VehicleService
from .world import WorldGraph

logger = logging.getLogger(__name__)

OPENING_FALLBACK = "You find yourself in an unfamiliar place."

SEED_FACT_SOURCE = "seed"
WORLD_FACT_SOURCE = "world"

ProgressCallback = Callable[[TurnProgress], Awaitable[None] | None]


class Orchestrator(CommandHandlersMixin, TurnPipelineMixin, NarrativeEffectsMixin):
    """Main turn loop for one story.

    Coordinates:
    1. Command parsing (what does the player want?)
    2. Command handling (world, objects, vehicles, generator)
    3. Turn bookkeeping (personality, puzzles, timed events, dilemmas)
    """

    def __init__(
        self,
        story_id: int,
        state: StateManager | None = None,
        generator: NarrativeGenerator | None = None,
        rng: random.Random | None = None,
        progress: ProgressCallback | None = None,
    ):
        """Initialize the orchestrator.

        Args:
            story_id: The story this orchestrator drives
            state: Store scoped to ``story_id``; a default one is opened if omitted
            generator: Narrative generator; defaults to one using the LLM manager
            rng: Random source for dice (seed it in tests)
            progress: Optional callback notified as the turn advances
        """
        self.story_id = story_id
        self.state = state or StateManager(story_id)
        if self.state.story_id != story_id:
            raise ValueError(f"State manager is scoped to story {self.state.story_id}, not {story_id}")
        self.generator = generator or NarrativeGenerator()
        self.progress = progress

        self.world = WorldGraph(self.state, self.generator)
        self.vehicles = VehicleService(self.state)
        self.objects = ObjectService(self.state)
        self.skills = SkillEngine(self.state, rng)
        self.personality = PersonalityModel(self.state)
        self.events = TimedEventScheduler(self.state)
        self.puzzles = PuzzleTracker(self.state, self.skills)
        self.cache = ResponseCache(self.state)

    def close(self):
        """Release the database session held by the state manager."""
        self.state.close()
        logger.info(f"Orchestrator for story {self.story_id} shut down")

    # ==== Setup ====

    def initialize_game(self, seed: StorySeed | dict) -> int:
        """Create the story, its starting room and the player; returns the starting room id.

        Calling it again on an initialized story changes nothing.
        """
        if isinstance(seed, dict):
            seed = StorySeed.model_validate(seed)

        player = self.state.get_player_state()
        if player is not None:
            logger.info(f"Story {self.story_id} already initialized")
            return player.current_room_id

        with self.state.transaction():
            self.state.ensure_story(
                title=seed.title,
                genre_tags=[seed.genre],
                story_seed=dump_blob(seed),
            )
            start = seed.starting_room
            room = self.world.create_starting_room(
                start.name,
                description=start.description,
                short_description=start.short_description,
                atmosphere=start.atmosphere,
            )
            for item in seed.initial_objects:
                self.objects.create_object(
                    item.name,
                    room_id=room.id,
                    description=item.description or None,
                    is_takeable=item.is_takeable,
                    is_story_critical=item.is_story_critical,
                    synonyms=item.synonyms,
                )
            for fact in seed.facts:
                self.state.add_fact(fact, source=SEED_FACT_SOURCE)
            self.state.ensure_personality_scores()

        logger.info(f"Story {self.story_id} initialized in '{room.name}'")
        return room.id

    def import_world(self, world: WorldImport | dict) -> dict[str, int]:
        """Apply an authored world in one transaction; returns room key -> room id.

        Raises:
            WorldImportError: a row references a key the payload never defines
            RoomOccupiedError: two rooms share a slot (nothing is written)
        """
        if isinstance(world, dict):
            world = WorldImport.model_validate(world)

        rooms: dict[str, int] = {}
        objects: dict[str, int] = {}

        def room_id(key: str | None) -> int | None:
            if key is None:
                return None
            if key not in rooms:
                raise WorldImportError(f"Unknown room key '{key}'")
            return rooms[key]

        def object_id(key: str | None) -> int | None:
            if key is None:
                return None
            if key not in objects:
                raise WorldImportError(f"Unknown object key '{key}'")
            return objects[key]

        with self.state.transaction():
            self.state.ensure_story()

            for item in world.rooms:
                room = self.world.create_room(
                    item.name, item.x, item.y, item.z,
                    description=item.description or None,
                    short_description=item.short_description,
                    atmosphere=dump_blob(load_blob(RoomAtmosphere, item.atmosphere)),
                    hidden_exits=[d.value for d in item.hidden_exits],
                    discovered_exits=[],
                    is_story_critical=item.is_story_critical,
                )
                rooms[item.key] = room.id

            for link in world.connections:
                self.world.connect(room_id(link.from_room), room_id(link.to_room), link.direction,
                                   bidirectional=link.bidirectional)

            # Two passes so containers and keys can be declared in any order
            created = []
            for item in world.objects:
                obj = self.objects.create_object(
                    item.name,
                    room_id=room_id(item.room),
                    description=item.description or None,
                    is_takeable=item.is_takeable,
                    is_story_critical=item.is_story_critical,
                    is_container=item.is_container,
                    is_locked=item.is_locked,
                    synonyms=item.synonyms,
                )
                if item.key:
                    objects[item.key] = obj.id
                created.append((item, obj))
            for item, obj in created:
                if item.container:
                    obj.room_id = None
                    obj.contained_in_id = object_id(item.container)
                if item.unlocked_by:
                    obj.key_object_id = object_id(item.unlocked_by)
                if item.container or item.unlocked_by:
                    self.state.save(obj)

            for item in world.characters:
                self.state.add_character(item.name, current_room_id=room_id(item.room),
                                         description=item.description or None)

            for item in world.abilities:
                self.skills.get_or_create_ability(
                    item.name,
                    origin=AbilityOrigin.BACKSTORY,
                    level=item.level,
                    verbs=item.trigger_verbs,
                    nouns=item.trigger_nouns,
                    description=item.description,
                )

            for item in world.timed_events:
                self.events.create_event(
                    item.name,
                    item.total_turns,
                    item.trigger_narrative,
                    consequence=load_blob(EventConsequence, item.consequence),
                    progress_narratives=item.progress_narratives,
                    description=item.description,
                    room_id=room_id(item.room),
                    can_be_prevented=item.can_be_prevented,
                    prevention_hint=item.prevention_hint,
                )

            for item in world.dilemmas:
                self.state.add_dilemma(
                    room_id(item.room),
                    item.description,
                    option_a=item.option_a.model_dump(),
                    option_b=item.option_b.model_dump(),
                    option_c=item.option_c.model_dump() if item.option_c else None,
                    primary_dimension=item.primary_dimension.value,
                    secondary_dimension=item.secondary_dimension.value if item.secondary_dimension else None,
                )

            puzzles = {}
            for order, item in enumerate(world.puzzles):
                puzzles[item.key] = self.state.add_puzzle(
                    item.name,
                    steps=[step.model_dump() for step in item.steps],
                    description=item.description,
                    room_id=room_id(item.room),
                    status=(PuzzleStatus.ACTIVE if item.active else PuzzleStatus.PENDING).value,
                    reward=item.reward,
                    display_order=order,
                )
            for item in world.puzzles:
                for target in item.unlocks:
                    if target not in puzzles:
                        raise WorldImportError(f"Unknown puzzle key '{target}'")
                    self.state.add_puzzle_link(puzzles[item.key], puzzles[target])

            for item in world.vehicles:
                self.vehicles.create_vehicle(
                    item.name,
                    room_id(item.docked_at),
                    vehicle_type=item.vehicle_type,
                    boarding_keywords=item.boarding_keywords,
                    known_destinations=[room_id(key) for key in item.destinations],
                    description=item.description,
                )

            for item in world.portals:
                source = self.world.require_room(room_id(item.from_room))
                self.world.place_portal(source, item.name, one_way=item.one_way,
                                        temporary=item.temporary, description=item.description)

            for fact in world.facts:
                self.state.add_fact(fact, source=WORLD_FACT_SOURCE)

            if world.starting_room is not None and self.state.get_player_state() is None:
                self.state.create_player_state(room_id(world.starting_room))
            self.state.ensure_personality_scores()

        logger.info(
            f"Story {self.story_id}: imported {len(world.rooms)} rooms, {len(world.objects)} objects, "
            f"{len(world.puzzles)} puzzles"
        )
        return rooms

    # ==== Queries ====

    def get_opening_narrative(self) -> str:
        """Describe the starting position and log it as the first narrator entry."""
        _, room = self._require_position()
        text = self.world.describe(room, room.description or OPENING_FALLBACK)
        self.state.log_transcript(Speaker.NARRATOR, text, MessageType.NARRATIVE, room_id=room.id)
        return text

    def get_game_state(self) -> GameState:
        player, room = self._require_position()
        vehicle, _ = self.vehicles.player_vehicle()
        return GameState(
            room_id=room.id,
            room_name=room.name,
            exits=[d.value for d in self.world.list_exits(room)],
            turn_count=player.turn_count or 0,
            score=player.score or 0,
            inventory=[obj.name for obj in self.objects.inventory()],
            abilities=[
                {"name": a.name, "level": round(float(a.level), 2), "mastery": mastery(a)}
                for a in self.state.get_abilities()
            ],
            personality=self.personality.scores(),
            objectives=self.puzzles.objectives(),
            in_vehicle=vehicle.name if vehicle is not None else None,
        )

    def get_transcript(self, limit: int | None = None) -> list[dict]:
        return [
            {
                "turnNumber": entry.turn_number,
                "speaker": entry.speaker,
                "content": entry.content,
                "messageType": entry.message_type,
                "roomId": entry.room_id,
                "createdAt": entry.created_at.isoformat() if entry.created_at else None,
            }
            for entry in self.state.get_transcript(limit)
        ]

    # ==== Dilemmas ====

    async def handle_dilemma_response(self, dilemma_id: int, option: str, text: str = "") -> DilemmaOutcome:
        """Resolve a triggered dilemma.

        Raises:
            DilemmaError: ``option`` is not one the dilemma offers
        """
        async with story_lock(self.story_id):
            narrative = self.personality.resolve_dilemma(dilemma_id, option, text)
            player = self.state.get_player_state()
            self.state.log_transcript(
                Speaker.PLAYER,
                text or f"[Choice {option.strip().upper()}]",
                MessageType.COMMAND,
                room_id=player.current_room_id if player else None,
                meta={"dilemma_id": dilemma_id},
            )
            self.state.log_transcript(Speaker.NARRATOR, narrative, MessageType.NARRATIVE,
                                      room_id=player.current_room_id if player else None)
            return DilemmaOutcome(outcome_narrative=narrative)
