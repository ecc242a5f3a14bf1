"""Core mixin: session plumbing, stories, player state, transcript, facts.

Split from state_manager.py for maintainability.
"""

import logging
from collections.abc import Callable
from contextlib import contextmanager
from typing import Any

from sqlalchemy import func
from sqlalchemy.orm import Session as SQLAlchemySession

from ..enums import MessageType, Speaker
from .models import GameTranscript, PlayerState, Story, StoryFact
from .session import get_session_factory

logger = logging.getLogger(__name__)


class CoreMixin:
    """Infrastructure, story rows, player state, transcript and facts."""

    def __init__(self, story_id: int, session_factory: Callable[[], SQLAlchemySession] | None = None):
        self.story_id = story_id
        self._session_factory = session_factory or get_session_factory()
        self._db: SQLAlchemySession | None = None
        self._commit_deferred: bool = False

    def _get_db(self) -> SQLAlchemySession:
        """Get or create database session."""
        if self._db is None:
            self._db = self._session_factory()
        return self._db

    def close(self):
        """Close the database session."""
        if self._db:
            self._db.close()
            self._db = None

    def _maybe_commit(self):
        """Commit unless inside a transaction() block (flush so ids exist)."""
        db = self._get_db()
        if self._commit_deferred:
            db.flush()
        else:
            db.commit()

    def save(self, *rows: Any) -> None:
        """Persist in-place edits to one or more rows."""
        db = self._get_db()
        for row in rows:
            db.add(row)
        self._maybe_commit()

    @contextmanager
    def transaction(self):
        """
        Batch every write in the block into a single atomic commit.

        Usage:
            with state.transaction():
                state.add_room(...)
                state.add_object(...)
            # Single commit here, or full rollback on exception
        """
        if self._commit_deferred:
            # Already inside a transaction, the outer block commits
            yield
            return

        self._commit_deferred = True
        db = self._get_db()
        try:
            yield
            db.commit()
            logger.info(f"Story {self.story_id}: transaction committed")
        except Exception:
            db.rollback()
            logger.error(f"Story {self.story_id}: transaction rolled back")
            raise
        finally:
            self._commit_deferred = False

    # ==== Stories ====

    def get_story(self) -> Story | None:
        db = self._get_db()
        return db.query(Story).filter(Story.id == self.story_id).first()

    def ensure_story(self, title: str = "Untitled", genre_tags: list[str] | None = None,
                     story_seed: dict[str, Any] | None = None) -> Story:
        """Ensure the story row exists, create if not."""
        db = self._get_db()
        story = self.get_story()
        if story is None:
            story = Story(
                id=self.story_id,
                title=title,
                genre_tags=genre_tags or [],
                story_seed=story_seed or {},
            )
            db.add(story)
            self._maybe_commit()
            logger.info(f"Created story {self.story_id}: {title}")
        elif story_seed is not None:
            story.title = title
            story.genre_tags = genre_tags or story.genre_tags
            story.story_seed = story_seed
            self._maybe_commit()
        return story

    # ==== Player state ====

    def get_player_state(self) -> PlayerState | None:
        db = self._get_db()
        return db.query(PlayerState).filter(PlayerState.story_id == self.story_id).first()

    def create_player_state(self, room_id: int) -> PlayerState:
        db = self._get_db()
        player = PlayerState(story_id=self.story_id, current_room_id=room_id, turn_count=0, score=0)
        db.add(player)
        self._maybe_commit()
        return player

    def update_player_state(self, **fields) -> PlayerState | None:
        """Set fields on the player state row; ``turn_increment`` adds to the count."""
        player = self.get_player_state()
        if player is None:
            return None
        increment = fields.pop("turn_increment", 0)
        for key, value in fields.items():
            setattr(player, key, value)
        if increment:
            player.turn_count = (player.turn_count or 0) + increment
        self._maybe_commit()
        return player

    # ==== Transcript ====

    def log_transcript(
        self,
        speaker: Speaker,
        content: str,
        message_type: MessageType = MessageType.NARRATIVE,
        room_id: int | None = None,
        meta: dict[str, Any] | None = None,
    ) -> GameTranscript:
        """Append one entry; turn numbers start at 0 and only increase."""
        db = self._get_db()
        last = (
            db.query(func.max(GameTranscript.turn_number))
            .filter(GameTranscript.story_id == self.story_id)
            .scalar()
        )
        entry = GameTranscript(
            story_id=self.story_id,
            turn_number=0 if last is None else last + 1,
            speaker=str(speaker),
            content=content,
            message_type=str(message_type),
            room_id=room_id,
            meta=meta or {},
        )
        db.add(entry)
        self._maybe_commit()
        return entry

    def get_transcript(self, limit: int | None = None) -> list[GameTranscript]:
        """Transcript in turn order; ``limit`` keeps only the most recent entries."""
        db = self._get_db()
        query = (
            db.query(GameTranscript)
            .filter(GameTranscript.story_id == self.story_id)
            .order_by(GameTranscript.turn_number.desc(), GameTranscript.id.desc())
        )
        if limit:
            query = query.limit(limit)
        return list(reversed(query.all()))

    # ==== Story facts ====

    def add_fact(self, content: str, fact_type: str = "WORLD", source: str | None = None,
                 importance: int = 5) -> StoryFact:
        db = self._get_db()
        fact = StoryFact(
            story_id=self.story_id,
            fact_type=fact_type,
            content=content,
            source=source,
            importance=importance,
        )
        db.add(fact)
        self._maybe_commit()
        return fact

    def get_facts(self, min_importance: int = 0, limit: int = 10) -> list[StoryFact]:
        """Most important facts first."""
        db = self._get_db()
        return (
            db.query(StoryFact)
            .filter(StoryFact.story_id == self.story_id)
            .filter(StoryFact.importance >= min_importance)
            .order_by(StoryFact.importance.desc(), StoryFact.id)
            .limit(limit)
            .all()
        )
