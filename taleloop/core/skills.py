"""Skill resolution: abilities, checks, and verb/noun skill matching.

Abilities grow continuously. A successful check adds margin / 20 to the
level (see dice.resolve_check); failures never lower it. The only other
way a level moves is adjust_level(), used by narrative events such as
puzzle rewards.
"""

import logging
import os
import random

from pydantic import BaseModel

from ..db.models import PlayerAbility
from ..db.schemas import PersonalitySignal
from ..db.state_manager import StateManager
from ..enums import AbilityOrigin, TraitDimension
from .dice import DIFFICULTY_SCALE, clamp_difficulty, render_d20, resolve_check, roll_d20

logger = logging.getLogger(__name__)

# Default verb-to-skill mappings
DEFAULT_SKILL_VERBS: dict[str, list[str]] = {
    # Physical
    "Athletics": ["jump", "climb", "swim", "run", "lift", "push", "pull"],
    "Acrobatics": ["dodge", "flip", "tumble", "balance", "vault"],
    "Stealth": ["sneak", "hide", "creep", "shadow", "lurk"],
    "Combat": ["fight", "attack", "strike", "punch", "kick", "defend", "parry"],

    # Mental
    "Perception": ["notice", "spot", "listen", "hear", "sense", "detect"],
    "Investigation": ["search", "investigate", "analyze", "deduce", "examine"],
    "Knowledge": ["recall", "remember", "identify", "recognize"],

    # Social
    "Persuasion": ["persuade", "convince", "negotiate", "charm", "flatter"],
    "Deception": ["lie", "bluff", "deceive", "trick", "mislead", "con"],
    "Intimidation": ["intimidate", "threaten", "menace", "scare", "bully"],
    "Performance": ["perform", "sing", "dance", "act", "entertain"],

    # Technical
    "Hacking": ["hack", "breach", "crack", "bypass", "decrypt", "infiltrate"],
    "Mechanics": ["repair", "fix", "build", "construct", "tinker", "rig"],
    "Medicine": ["heal", "treat", "diagnose", "bandage", "stabilize"],
    "Piloting": ["drive", "pilot", "steer", "navigate", "fly", "sail"],

    # Thievery
    "Lockpicking": ["pick", "unlock", "lockpick"],
    "Pickpocket": ["pickpocket", "steal", "swipe", "filch"],
}

# Default noun-to-skill mappings (objects that trigger skills)
DEFAULT_SKILL_NOUNS: dict[str, list[str]] = {
    "Cartography": ["map", "compass", "sextant", "charts", "globe", "atlas"],
    "Piloting": ["wheel", "rudder", "helm", "cockpit", "controls", "throttle"],
    "Hacking": ["terminal", "console", "computer", "keyboard", "screen", "server", "laptop"],
    "Mechanics": ["engine", "machine", "gears", "motor", "circuit", "wires", "tools", "wrench"],
    "Lockpicking": ["lock", "padlock", "keyhole", "mechanism", "tumbler", "deadbolt"],
    "Medicine": ["bandage", "medicine", "herbs", "poultice", "syringe", "medkit", "wound"],
    "Combat": ["sword", "weapon", "blade", "gun", "bow", "shield", "armor"],
    "Knowledge": ["book", "tome", "manuscript", "scroll", "inscription", "runes"],
    "Investigation": ["clue", "evidence", "footprint", "fingerprint", "document"],
    "Performance": ["instrument", "guitar", "piano", "violin", "flute", "drum", "stage"],
}

# Words that are never treated as action verbs
SKIP_WORDS = frozenset({
    "i", "the", "a", "an", "to", "try", "want", "need", "would", "like",
    "can", "could", "should", "will", "going", "please", "let", "me",
    "my", "with", "on", "in", "at", "from", "for", "of", "this", "that",
})

# Shortest word allowed to match a trigger by containment
_MIN_PARTIAL = 3
# Shared prefix that counts as the same stem ("maintain" / "maintenance")
_MIN_STEM = 5


class SkillCheckResult(BaseModel):
    """A resolved and persisted check, ready to show the player."""
    ability_name: str
    ability_level: float   # level before the check
    new_level: float
    difficulty: int
    roll: int
    total: float
    margin: float
    success: bool
    is_nat20: bool = False
    is_nat1: bool = False
    skill_gain: float = 0.0
    dice_ascii: str = ""
    personality_signal: PersonalitySignal | None = None


def normalize_skill_name(name: str) -> str:
    """First letter upper, the rest lower ("lockPICKING" -> "Lockpicking")."""
    name = name.strip()
    return name[:1].upper() + name[1:].lower()


def extract_verbs(text: str) -> list[str]:
    """Candidate action words: everything but filler and words of two letters or fewer."""
    return [w for w in text.lower().split() if w not in SKIP_WORDS and len(w) > 2]


def _partial_match(word: str, trigger: str) -> bool:
    if word == trigger:
        return True
    if len(word) < _MIN_PARTIAL or len(trigger) < _MIN_PARTIAL:
        return False
    return trigger in word or word in trigger


def _shares_stem(word: str, skill_word: str) -> bool:
    if len(word) < _MIN_PARTIAL or len(skill_word) < _MIN_PARTIAL:
        return False
    if skill_word.startswith(word) or word.startswith(skill_word):
        return True
    prefix = os.path.commonprefix([word, skill_word])
    return len(prefix) >= _MIN_STEM


def mastery(ability: PlayerAbility) -> int:
    """Success ratio as a 0-100 percentage."""
    if not ability.times_used:
        return 0
    return round(100 * (ability.times_succeeded or 0) / ability.times_used)


def format_check_result(result: SkillCheckResult) -> str:
    """Banner shown above the narrative of a skill action."""
    lines = [
        "",
        f"--- SKILL CHECK: {result.ability_name.upper()} ---",
        result.dice_ascii,
        "",
        f"Roll: {result.roll} + {result.ability_level:.1f} skill = {result.total:.1f}",
        f"Difficulty: {result.difficulty}",
        "",
    ]

    if result.is_nat20:
        lines.append("*** SPECTACULAR SUCCESS! ***")
    elif result.is_nat1:
        lines.append("*** SPECTACULAR FAILURE! ***")
    elif result.success:
        lines.append(f"SUCCESS! (margin: +{result.margin:.1f})")
    else:
        lines.append(f"FAILED (margin: {result.margin:.1f})")

    if result.skill_gain > 0:
        lines.append(f"Skill improved by +{result.skill_gain:.2f}")

    lines.append("-----------------------------------")
    return "\n".join(lines)


class SkillEngine:
    """Ability lifecycle and checks for one story."""

    def __init__(self, state: StateManager, rng: random.Random | None = None):
        self.state = state
        self.rng = rng or random.Random()

    def get_or_create_ability(
        self,
        name: str,
        origin: AbilityOrigin = AbilityOrigin.ATTEMPTED,
        level: float = 1.0,
        verbs: list[str] | None = None,
        nouns: list[str] | None = None,
        description: str | None = None,
    ) -> PlayerAbility:
        """Look up an ability, creating it lazily with the default triggers."""
        normalized = normalize_skill_name(name)
        ability = self.state.get_ability(normalized)
        if ability is not None:
            return ability

        ability = self.state.add_ability(
            normalized,
            level=max(1.0, level),
            origin=str(origin),
            description=description,
            trigger_verbs=verbs if verbs is not None else DEFAULT_SKILL_VERBS.get(normalized, []),
            trigger_nouns=nouns if nouns is not None else DEFAULT_SKILL_NOUNS.get(normalized, []),
            times_used=0,
            times_succeeded=0,
        )
        logger.info(f"New ability '{normalized}' ({origin}) at level {ability.level}")
        return ability

    def perform_check(self, name: str, difficulty: int, context: str = "",
                      roll: int | None = None) -> SkillCheckResult:
        """Roll, resolve, and persist one check. Never fails."""
        ability = self.get_or_create_ability(name)
        difficulty = clamp_difficulty(difficulty)
        level_before = float(ability.level)
        if roll is None:
            roll = roll_d20(self.rng)

        outcome = resolve_check(roll, level_before, difficulty)

        ability.level = level_before + outcome.gain
        ability.times_used = (ability.times_used or 0) + 1
        if outcome.success:
            ability.times_succeeded = (ability.times_succeeded or 0) + 1
        self.state.save(ability)

        self.state.add_skill_check(
            ability,
            context=context,
            difficulty=difficulty,
            roll=roll,
            total=outcome.total,
            margin=outcome.margin,
            success=outcome.success,
            level_before=level_before,
            level_after=ability.level,
        )
        logger.debug(
            f"Check {ability.name}: d20={roll} + {level_before:.2f} vs {difficulty} "
            f"-> {'success' if outcome.success else 'failure'}"
        )

        return SkillCheckResult(
            ability_name=ability.name,
            ability_level=level_before,
            new_level=ability.level,
            difficulty=difficulty,
            roll=roll,
            total=outcome.total,
            margin=outcome.margin,
            success=outcome.success,
            is_nat20=outcome.is_nat20,
            is_nat1=outcome.is_nat1,
            skill_gain=outcome.gain,
            dice_ascii=render_d20(roll),
            personality_signal=self._risk_signal(ability.name, difficulty, outcome.is_nat20),
        )

    @staticmethod
    def _risk_signal(ability_name: str, difficulty: int, is_nat20: bool) -> PersonalitySignal | None:
        # A natural 20 on a challenging check overrides the plain boldness signal
        if is_nat20 and difficulty >= DIFFICULTY_SCALE["CHALLENGING"]:
            return PersonalitySignal(
                dimension=TraitDimension.EXTRAVERSION,
                delta=4,
                confidence=6,
                reasoning=f"Critical success on challenging {ability_name} check!",
            )
        if difficulty >= DIFFICULTY_SCALE["HARD"]:
            return PersonalitySignal(
                dimension=TraitDimension.OPENNESS,
                delta=3,
                confidence=5,
                reasoning=f"Attempted a difficult {ability_name} check (difficulty {difficulty})",
            )
        return None

    def adjust_level(self, name: str, delta: float, reason: str = "") -> PlayerAbility:
        """Explicit narrative-event change; the level never drops below 1."""
        ability = self.get_or_create_ability(name, origin=AbilityOrigin.STORY_EVENT)
        ability.level = max(1.0, float(ability.level) + delta)
        self.state.save(ability)
        logger.info(f"Ability {ability.name} adjusted by {delta:+.2f} ({reason or 'story event'})")
        return ability

    def find_skill_for_input(self, text: str) -> str | None:
        """Map free text to a skill name.

        Authored abilities win (trigger verb, trigger noun, then a stem
        match against the ability's own name), then the default verb
        table, then the default noun table. Filler words never match.
        """
        words = extract_verbs(text)
        if not words:
            return None

        for ability in self.state.get_abilities():
            triggers = [t.lower() for t in (ability.trigger_verbs or []) + (ability.trigger_nouns or [])]
            for trigger in triggers:
                if any(_partial_match(word, trigger) for word in words):
                    return ability.name

            # e.g. "maintain" matches "Lighthouse maintenance"
            for skill_word in ability.name.lower().split():
                if any(_shares_stem(word, skill_word) for word in words):
                    return ability.name

        for skill, verbs in DEFAULT_SKILL_VERBS.items():
            if any(word in verbs for word in words):
                return skill

        for skill, nouns in DEFAULT_SKILL_NOUNS.items():
            if any(word in nouns for word in words):
                return skill

        return None
