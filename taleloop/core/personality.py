"""Personality inference: five running trait scores fed by weighted signals.

Each update is a count-weighted average. With ``weight = 1 / (confidence + 1)``
early signals move a score a lot and later ones refine it; the signal's
own confidence (0-10) scales the step further.
"""

import logging
from datetime import datetime

from pydantic import ValidationError

from ..db.models import DilemmaPoint, PersonalityScores
from ..db.schemas import DilemmaOption, PersonalitySignal
from ..db.state_manager import StateManager
from ..enums import DilemmaChoice, TraitDimension
from ..errors import DilemmaError

logger = logging.getLogger(__name__)

DEFAULT_SCORE = 50.0
KEY_MOMENT_CONFIDENCE = 7

# Dilemma choices are high-confidence signals
DILEMMA_CONFIDENCE = 8
DILEMMA_SECONDARY_CONFIDENCE = 5
DILEMMA_DELTAS = {
    DilemmaChoice.A: 5.0,
    DilemmaChoice.B: -5.0,
    DilemmaChoice.C: 0.0,
    DilemmaChoice.OTHER: 0.0,
}

MISSING_DILEMMA_TEXT = "The moment passes."
RESOLVED_DILEMMA_TEXT = "That choice has already been made."
FOLLOW_THROUGH_TEXT = "You follow through on your decision."


def apply_signal(score: float | None, confidence: int | None, delta: float,
                 signal_confidence: float) -> tuple[float, int]:
    """Return ``(new_score, new_confidence)`` for one trait update."""
    current = DEFAULT_SCORE if score is None else float(score)
    count = confidence or 0
    weight = 1 / (count + 1)
    adjusted = delta * weight * (signal_confidence / 10)
    new_score = max(0.0, min(100.0, current + adjusted))
    return new_score, count + 1


def _option_field(choice: DilemmaChoice) -> str | None:
    return {
        DilemmaChoice.A: "option_a",
        DilemmaChoice.B: "option_b",
        DilemmaChoice.C: "option_c",
    }.get(choice)


class PersonalityModel:
    """Trait scores and dilemmas for one story."""

    def __init__(self, state: StateManager):
        self.state = state

    def scores(self) -> dict[str, dict[str, float]]:
        """``{"openness": {"score": 54.0, "confidence": 1}, ...}``"""
        row = self.state.ensure_personality_scores()
        return {
            dim.trait: {
                "score": float(getattr(row, dim.trait) if getattr(row, dim.trait) is not None else DEFAULT_SCORE),
                "confidence": getattr(row, f"{dim.trait}_confidence") or 0,
            }
            for dim in TraitDimension
        }

    def record_signal(self, signal: PersonalitySignal | dict | None, source: str = "command",
                      context: str = "") -> float | None:
        """Apply one signal. Returns the new score, or None when ignored."""
        if signal is None:
            return None
        if isinstance(signal, dict):
            try:
                signal = PersonalitySignal.model_validate(signal)
            except ValidationError as e:
                logger.warning(f"Ignoring malformed personality signal {signal!r}: {e}")
                return None

        row: PersonalityScores = self.state.ensure_personality_scores()
        dim = TraitDimension(signal.dimension)
        before = getattr(row, dim.trait)
        before = DEFAULT_SCORE if before is None else float(before)
        new_score, new_confidence = apply_signal(
            before, getattr(row, f"{dim.trait}_confidence"), signal.delta, signal.confidence
        )
        setattr(row, dim.trait, new_score)
        setattr(row, f"{dim.trait}_confidence", new_confidence)
        self.state.save(row)

        self.state.add_personality_event(
            dimension=dim.value,
            delta=signal.delta,
            adjusted_delta=new_score - before,
            confidence=signal.confidence,
            source=source,
            context=context,
            reasoning=signal.reasoning,
            is_key_moment=signal.confidence >= KEY_MOMENT_CONFIDENCE,
        )
        logger.info(f"Personality {dim.trait}: {before:.1f} -> {new_score:.1f} ({source})")
        return new_score

    # ==== Dilemmas ====

    def check_dilemma_trigger(self, room_id: int) -> DilemmaPoint | None:
        """First untriggered dilemma in the room, marked triggered on the spot."""
        pending = self.state.get_untriggered_dilemmas(room_id)
        if not pending:
            return None
        dilemma = pending[0]
        dilemma.is_triggered = True
        dilemma.triggered_at = datetime.utcnow()
        self.state.save(dilemma)
        logger.info(f"Dilemma {dilemma.id} triggered in room {room_id}")
        return dilemma

    @staticmethod
    def options(dilemma: DilemmaPoint) -> dict[str, DilemmaOption]:
        opts = {}
        for choice in (DilemmaChoice.A, DilemmaChoice.B, DilemmaChoice.C):
            raw = getattr(dilemma, _option_field(choice))
            if raw:
                opts[choice.value] = DilemmaOption.model_validate(raw)
        return opts

    def resolve_dilemma(self, dilemma_id: int, choice: str, player_text: str = "") -> str:
        """Record the choice and feed it to the trait scores; returns the outcome narrative."""
        dilemma = self.state.get_dilemma(dilemma_id)
        if dilemma is None:
            return MISSING_DILEMMA_TEXT
        if dilemma.is_resolved:
            return RESOLVED_DILEMMA_TEXT

        try:
            picked = DilemmaChoice(choice.strip().upper())
        except ValueError as e:
            raise DilemmaError(f"Unknown dilemma option: {choice!r}") from e

        option = None
        field = _option_field(picked)
        if field is not None:
            raw = getattr(dilemma, field)
            if not raw:
                raise DilemmaError(f"Dilemma {dilemma_id} has no option {picked.value}")
            option = DilemmaOption.model_validate(raw)

        delta = DILEMMA_DELTAS[picked]
        context = player_text or (option.description if option else picked.value)
        if option:
            reasoning = option.personality_implication or f"Dilemma choice {picked.value}"
        else:
            reasoning = "Player chose a creative alternative solution."
        self.record_signal(
            PersonalitySignal(
                dimension=TraitDimension(dilemma.primary_dimension),
                delta=delta,
                confidence=DILEMMA_CONFIDENCE,
                reasoning=reasoning,
            ),
            source="dilemma",
            context=context,
        )
        if dilemma.secondary_dimension:
            self.record_signal(
                PersonalitySignal(
                    dimension=TraitDimension(dilemma.secondary_dimension),
                    delta=delta / 2,
                    confidence=DILEMMA_SECONDARY_CONFIDENCE,
                    reasoning=f"{reasoning} (secondary)",
                ),
                source="dilemma",
                context=context,
            )

        dilemma.chosen_option = picked.value
        dilemma.player_response = player_text
        dilemma.resolved_at = datetime.utcnow()
        self.state.save(dilemma)

        if option:
            return option.outcome_narrative or FOLLOW_THROUGH_TEXT
        return (
            f"You choose a different path: {player_text}. "
            "The consequences of your unique approach will unfold."
        )
