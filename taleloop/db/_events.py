"""Events mixin: timed event rows."""

from sqlalchemy import or_

from .models import TimedEvent


class EventsMixin:
    """TimedEvent rows for one story."""

    def add_timed_event(self, name: str, total_turns: int, **fields) -> TimedEvent:
        db = self._get_db()
        fields.setdefault("progress_narratives", [])
        fields.setdefault("consequence", {})
        event = TimedEvent(
            story_id=self.story_id,
            name=name,
            total_turns=total_turns,
            turns_remaining=fields.pop("turns_remaining", total_turns),
            **fields,
        )
        db.add(event)
        self._maybe_commit()
        return event

    def get_timed_event(self, event_id: int) -> TimedEvent | None:
        db = self._get_db()
        return (
            db.query(TimedEvent)
            .filter(TimedEvent.story_id == self.story_id)
            .filter(TimedEvent.id == event_id)
            .first()
        )

    def get_active_events(self, room_id: int | None = None) -> list[TimedEvent]:
        """Active, untriggered events: global ones plus those bound to ``room_id``."""
        db = self._get_db()
        query = (
            db.query(TimedEvent)
            .filter(TimedEvent.story_id == self.story_id)
            .filter(TimedEvent.is_active.is_(True))
            .filter(TimedEvent.is_triggered.is_(False))
        )
        if room_id is not None:
            query = query.filter(or_(TimedEvent.room_id.is_(None), TimedEvent.room_id == room_id))
        return query.order_by(TimedEvent.id).all()

    def get_events_by_name(self, name: str, active_only: bool = True) -> list[TimedEvent]:
        db = self._get_db()
        query = (
            db.query(TimedEvent)
            .filter(TimedEvent.story_id == self.story_id)
            .filter(TimedEvent.name.ilike(name))
        )
        if active_only:
            query = query.filter(TimedEvent.is_active.is_(True))
        return query.order_by(TimedEvent.id).all()
