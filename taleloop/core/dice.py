"""Dice engine for skill checks."""

import random

from pydantic import BaseModel

# Difficulty scale reference (0-40)
DIFFICULTY_SCALE = {
    "TRIVIAL": 5,       # Anyone can do this
    "EASY": 10,         # Simple task
    "MODERATE": 15,     # Requires some skill
    "CHALLENGING": 20,  # Trained individuals
    "HARD": 25,         # Experts only
    "VERY_HARD": 30,    # Masters struggle
    "HEROIC": 35,       # Legendary difficulty
    "IMPOSSIBLE": 40,   # Near-mythical feat
}

DEFAULT_DIFFICULTY = DIFFICULTY_SCALE["MODERATE"]
MIN_DIFFICULTY = 0
MAX_DIFFICULTY = 40


class CheckOutcome(BaseModel):
    """Arithmetic result of one check, before anything is persisted."""
    roll: int
    level: float
    difficulty: int
    total: float
    margin: float
    success: bool
    is_nat20: bool = False
    is_nat1: bool = False
    gain: float = 0.0


def roll_d20(rng: random.Random | None = None) -> int:
    """Roll a d20."""
    return (rng or random).randint(1, 20)


def clamp_difficulty(value: int | float | None) -> int:
    """Coerce a generator-suggested difficulty onto the 0-40 scale."""
    if value is None:
        return DEFAULT_DIFFICULTY
    return max(MIN_DIFFICULTY, min(MAX_DIFFICULTY, int(round(value))))


def resolve_check(roll: int, level: float, difficulty: int) -> CheckOutcome:
    """Resolve a check.

    A natural 20 always succeeds and a natural 1 always fails; otherwise
    the total must reach the difficulty. Only a success with a positive
    margin grows the ability, by margin / 20.
    """
    total = roll + level
    margin = total - difficulty
    is_nat20 = roll == 20
    is_nat1 = roll == 1

    if is_nat20:
        success = True
    elif is_nat1:
        success = False
    else:
        success = total >= difficulty

    gain = margin / 20 if success and margin > 0 else 0.0

    return CheckOutcome(
        roll=roll,
        level=level,
        difficulty=difficulty,
        total=total,
        margin=margin,
        success=success,
        is_nat20=is_nat20,
        is_nat1=is_nat1,
        gain=gain,
    )


def render_d20(roll: int) -> str:
    """One-line die face for the check banner."""
    result = f"[ d20: {roll} ]"
    if roll == 20:
        result += "  *** NATURAL 20! ***"
    elif roll == 1:
        result += "  *** NATURAL 1! ***"
    return result
