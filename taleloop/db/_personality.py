"""Personality mixin: trait scores, signal history, dilemmas."""

import logging

from .models import DilemmaPoint, PersonalityEvent, PersonalityScores

logger = logging.getLogger(__name__)


class PersonalityMixin:

    def get_personality_scores(self) -> PersonalityScores | None:
        db = self._get_db()
        return (
            db.query(PersonalityScores)
            .filter(PersonalityScores.story_id == self.story_id)
            .first()
        )

    def ensure_personality_scores(self) -> PersonalityScores:
        """One record per story, created at world initialization."""
        scores = self.get_personality_scores()
        if scores is None:
            db = self._get_db()
            scores = PersonalityScores(story_id=self.story_id)
            db.add(scores)
            self._maybe_commit()
        return scores

    def add_personality_event(self, **fields) -> PersonalityEvent:
        db = self._get_db()
        event = PersonalityEvent(story_id=self.story_id, **fields)
        db.add(event)
        self._maybe_commit()
        return event

    def get_personality_events(self) -> list[PersonalityEvent]:
        db = self._get_db()
        return (
            db.query(PersonalityEvent)
            .filter(PersonalityEvent.story_id == self.story_id)
            .order_by(PersonalityEvent.id)
            .all()
        )

    # ==== Dilemmas ====

    def add_dilemma(self, room_id: int, description: str, **fields) -> DilemmaPoint:
        db = self._get_db()
        dilemma = DilemmaPoint(story_id=self.story_id, room_id=room_id, description=description, **fields)
        db.add(dilemma)
        self._maybe_commit()
        return dilemma

    def get_dilemma(self, dilemma_id: int) -> DilemmaPoint | None:
        db = self._get_db()
        return (
            db.query(DilemmaPoint)
            .filter(DilemmaPoint.story_id == self.story_id)
            .filter(DilemmaPoint.id == dilemma_id)
            .first()
        )

    def get_untriggered_dilemmas(self, room_id: int) -> list[DilemmaPoint]:
        db = self._get_db()
        return (
            db.query(DilemmaPoint)
            .filter(DilemmaPoint.story_id == self.story_id)
            .filter(DilemmaPoint.room_id == room_id)
            .filter(DilemmaPoint.is_triggered.is_(False))
            .order_by(DilemmaPoint.id)
            .all()
        )
