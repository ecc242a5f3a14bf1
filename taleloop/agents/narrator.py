"""Narrative generator: the external model behind free-form commands.

Every public method returns something usable. Provider errors, timeouts
and unparseable output are logged and replaced by fixed fallback text,
so a turn never fails because the model did.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from ..config import Config
from ..db.models import Character, GameObject, Room
from ..db.schemas import EventConsequence, ProgressNarrative, RoomAtmosphere, load_blob
from ..db.state_manager import StateManager
from ..enums import ConsequenceType, Direction
from .base import BaseAgent

logger = logging.getLogger(__name__)

FALLBACK_RESPONSE = (
    "I don't quite understand. Try commands like LOOK, EXAMINE [object], "
    "GO [direction], TAKE [object], or TALK TO [character]."
)
CRITICAL_SUCCESS_FALLBACK = "Against all odds, you succeed spectacularly!"
CRITICAL_FAILURE_FALLBACK = "Things go terribly, hilariously wrong."
ROOM_FALLBACK = "You find yourself in an unremarkable space."

MAX_EVENT_TURNS = 20

DIFFICULTY_GUIDE = """This action requires a "{skill}" check. Choose a difficulty on the 0-40 scale:
- 0-5: Trivial
- 6-10: Easy
- 11-15: Moderate
- 16-20: Challenging
- 21-25: Hard
- 26-30: Very Hard
- 31-35: Heroic
- 36-40: Legendary
Use the exact skill name "{skill}" in your narrative, and provide both a success and a failure narrative."""

_DEFAULT_SYSTEM_PROMPT = """You are the game engine for a text adventure in the style of Zork.
Be a "yes, and" game master: make the player's action work within reason.
Stay consistent with the room description and established facts; never contradict them.
Write in second person, 2-4 sentences.
If the action reveals something about the player's personality (risk-taking, helpfulness,
curiosity), include a personality signal with dimension O, C, E, A or N, a delta between
-10 and +10, a confidence from 1 to 10 and a short reasoning.
When the narration changes the world, describe it in stateChanges: newItems, revealExits,
newPassage, timedEvent, charactersPresent and facts. Leave stateChanges empty otherwise."""


class _ChangeModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _direction_word(value: Any) -> Any:
    return value.lower().strip() if isinstance(value, str) else value


class NewItem(_ChangeModel):
    name: str
    description: str = ""
    synonyms: list[str] = Field(default_factory=list)
    is_takeable: bool = True


class NewPassage(_ChangeModel):
    """A way out the narration just opened: a grid exit, or a portal when no direction fits."""

    name: str
    direction: Direction | None = None
    description: str = ""
    is_portal: bool = False
    one_way: bool = False
    temporary: bool = False

    @field_validator("direction", mode="before")
    @classmethod
    def _lower_direction(cls, value):
        return _direction_word(value) or None


class NewTimedEvent(_ChangeModel):
    name: str
    trigger_narrative: str
    total_turns: int = 5
    description: str = ""
    progress_narratives: list[ProgressNarrative] = Field(default_factory=list)
    consequence: EventConsequence = Field(default_factory=EventConsequence)
    can_be_prevented: bool = True
    prevention_hint: str | None = None

    @field_validator("total_turns")
    @classmethod
    def _clamp_turns(cls, value: int) -> int:
        return max(1, min(value, MAX_EVENT_TURNS))

    @field_validator("consequence", mode="before")
    @classmethod
    def _known_consequence(cls, value):
        if not isinstance(value, dict):
            return value
        kind = str(value.get("type", "")).lower()
        known = {c.value for c in ConsequenceType}
        return {**value, "type": kind if kind in known else ConsequenceType.CUSTOM.value}


class WorldChanges(_ChangeModel):
    """The ``stateChanges`` block: world edits implied by the narration."""

    new_items: list[NewItem] = Field(default_factory=list)
    reveal_exits: list[Direction] = Field(default_factory=list)
    new_passage: NewPassage | None = None
    timed_event: NewTimedEvent | None = None
    characters_present: list[str] = Field(default_factory=list)
    facts: list[str] = Field(default_factory=list)

    @field_validator("reveal_exits", mode="before")
    @classmethod
    def _lower_exits(cls, value):
        if isinstance(value, str):
            value = [value]
        return [_direction_word(v) for v in value or []]


class GeneratorOutput(BaseModel):
    """Structured answer for one free-form command."""

    model_config = ConfigDict(populate_by_name=True)

    narrative_text: str = Field(default="", alias="response")
    action_type: str = Field(default="OTHER", alias="actionType")
    target: str | None = Field(default=None, alias="targetId")
    state_changes: dict[str, Any] = Field(default_factory=dict, alias="stateChanges")
    personality_signal: dict[str, Any] | None = Field(default=None, alias="personalitySignal")
    skill_check_difficulty: int | None = Field(default=None, alias="skillCheckDifficulty")
    success_narrative: str | None = Field(default=None, alias="successNarrative")
    failure_narrative: str | None = Field(default=None, alias="failureNarrative")

    @property
    def is_fallback(self) -> bool:
        return self.narrative_text == FALLBACK_RESPONSE

    def signal(self) -> dict[str, Any] | None:
        """The personality signal, or None when the model marked the action as not revealing."""
        signal = self.personality_signal
        if not signal or signal.get("dimension") in (None, "", "null"):
            return None
        return signal

    def world_changes(self) -> WorldChanges:
        """Typed ``stateChanges``; a malformed block is dropped whole."""
        if self.is_fallback or not self.state_changes:
            return WorldChanges()
        try:
            return WorldChanges.model_validate(self.state_changes)
        except ValidationError as e:
            logger.warning(f"Ignoring malformed stateChanges ({e.error_count()} error(s))")
            return WorldChanges()


@dataclass
class StoryContext:
    genre: str = "fantasy"
    theme: str = "adventure"
    tone: str = "mysterious"
    facts: list[str] = field(default_factory=list)
    abilities: list[tuple[str, float]] = field(default_factory=list)

    @property
    def abilities_line(self) -> str:
        if not self.abilities:
            return "none"
        return ", ".join(f"{name} ({level:.1f})" for name, level in self.abilities)

    def render(self) -> str:
        lines = [f"- Genre: {self.genre}", f"- Theme: {self.theme}", f"- Tone: {self.tone}"]
        if self.facts:
            lines.append("- Established facts:")
            lines.extend(f"  * {fact}" for fact in self.facts)
        lines.append(f"- Player skills: {self.abilities_line}")
        return "\n".join(lines)


def build_story_context(state: StateManager) -> StoryContext:
    story = state.get_story()
    context = StoryContext()
    if story is not None:
        if story.genre_tags:
            context.genre = story.genre_tags[0]
        if story.story_seed:
            seed = story.story_seed
            context.theme = seed.get("theme", context.theme)
            context.tone = seed.get("tone", context.tone)
    context.facts = [f.content for f in state.get_facts(limit=20)]
    abilities = sorted(state.get_abilities(), key=lambda a: a.level, reverse=True)[:20]
    context.abilities = [(a.name, float(a.level)) for a in abilities]
    return context


def _names(items: list[GameObject] | list[Character], empty: str) -> str:
    return ", ".join(i.name for i in items) or empty


class NarrativeGenerator(BaseAgent):
    """Narration for free-form commands, critical rolls and new rooms."""

    agent_name = "narrator"

    def __init__(self, timeout: float | None = None, **kwargs):
        super().__init__(**kwargs)
        self.timeout = timeout if timeout is not None else Config.GENERATOR_TIMEOUT

    @property
    def system_prompt(self) -> str:
        return self._load_prompt_file("narrator.md", _DEFAULT_SYSTEM_PROMPT)

    async def _bounded(self, coro):
        return await asyncio.wait_for(coro, timeout=self.timeout)

    async def process_command(
        self,
        state: StateManager,
        command_text: str,
        room: Room,
        objects: list[GameObject],
        characters: list[Character],
        skill_name: str | None = None,
    ) -> GeneratorOutput:
        """Interpret ``command_text`` in ``room``; never raises."""
        context = build_story_context(state)
        room_lines = [f"Name: {room.name}"]
        if room.description:
            room_lines.append(f"Description: {room.description}")
        room_lines.append(f"Objects here: {_names(objects, 'nothing of note')}")
        room_lines.append(f"Characters here: {_names(characters, 'no one')}")

        try:
            output = await self._bounded(self.call(
                f'"{command_text}"',
                GeneratorOutput,
                player_input=command_text,
                max_tokens=600,
                current_room="\n".join(room_lines),
                story_context=context.render(),
                skill_check=DIFFICULTY_GUIDE.format(skill=skill_name) if skill_name else "",
            ))
        except Exception as e:
            logger.warning(f"Generator fallback for '{command_text[:50]}': {type(e).__name__}: {e}")
            return GeneratorOutput(narrative_text=FALLBACK_RESPONSE)

        if not output.narrative_text:
            output.narrative_text = "I don't understand that command."
        return output

    async def generate_spectacular_narrative(
        self,
        state: StateManager,
        command_text: str,
        skill_name: str,
        critical_success: bool,
        room: Room,
        objects: list[GameObject],
        characters: list[Character],
    ) -> str:
        """Narration for a natural 20 or natural 1."""
        fallback = CRITICAL_SUCCESS_FALLBACK if critical_success else CRITICAL_FAILURE_FALLBACK
        context = build_story_context(state)
        if critical_success:
            direction = ("Write a SPECTACULAR SUCCESS: the player succeeds beyond expectation and "
                         "something unexpectedly wonderful happens. 3-4 vivid sentences.")
            result = "NATURAL 20 - CRITICAL SUCCESS!"
        else:
            direction = ("Write a SPECTACULAR FAILURE: memorable, possibly darkly funny, never "
                         "game-ending; the player is not left stuck. 3-4 vivid sentences.")
            result = "NATURAL 1 - CRITICAL FAILURE!"

        try:
            text = await self._bounded(self.call_text(
                f'"{command_text}"',
                player_input=command_text,
                current_room=f"{room.name}\nObjects here: {_names(objects, 'nothing of note')}\n"
                             f"Characters here: {_names(characters, 'no one')}",
                story_context=context.render(),
                roll=f"Skill used: {skill_name}\nResult: {result}",
                instructions=direction,
            ))
        except Exception as e:
            logger.warning(f"Spectacular narrative fallback: {type(e).__name__}: {e}")
            return fallback
        return text or fallback

    async def generate_room_description(self, room: Room, state: StateManager) -> str:
        """First-visit description; exits, objects and characters are listed elsewhere."""
        context = build_story_context(state)
        atmosphere = load_blob(RoomAtmosphere, room.atmosphere)
        details = [f"Name: {room.name}"]
        for label in ("lighting", "mood", "sounds", "smells"):
            value = getattr(atmosphere, label)
            if value:
                details.append(f"{label.title()}: {value}")

        adjacent = [n for n in (state.get_room(room.neighbor_id(d)) for d in Direction) if n is not None]

        try:
            text = await self._bounded(self.call_text(
                "Describe this room as the player enters for the first time.",
                story_context=context.render(),
                room_to_describe="\n".join(details),
                adjacent_areas=", ".join(n.name for n in adjacent),
                instructions=(f"Second person, 2-4 sentences, sensory details matching the "
                              f"{context.genre} genre and {context.tone} tone. Do not mention exits, "
                              f"objects or characters."),
            ))
        except Exception as e:
            logger.warning(f"Room description fallback for '{room.name}': {type(e).__name__}: {e}")
            return ROOM_FALLBACK
        return text or ROOM_FALLBACK

