"""Response cache: memoized generator answers, per story and room.

Two independent lookup paths:
  exact     md5 of story, room, command type, target and modifier
  semantic  md5 of the sorted, de-duplicated, stop-word-free token set,
            so paraphrased questions in the same room share one answer

Entries are written only after a response exists and are never
invalidated by world changes. invalidate_room() is there for callers
that rewrite a room out of band.
"""

import hashlib
import logging
import re

from ..db.state_manager import StateManager
from .commands import Command

logger = logging.getLogger(__name__)

SEMANTIC_TYPE = "SEMANTIC"

STOP_WORDS = frozenset({
    "a", "an", "the", "is", "are", "was", "were", "be", "been", "being",
    "have", "has", "had", "do", "does", "did", "will", "would", "could",
    "should", "may", "might", "must", "can", "this", "that", "these",
    "those", "i", "you", "he", "she", "it", "we", "they", "what", "which",
    "who", "whom", "where", "when", "why", "how", "here", "there", "about",
    "of", "to", "for", "with", "on", "at", "by", "from", "in", "out", "up",
    "down", "and", "or", "but", "if", "then", "so", "than", "too", "very",
    "just", "only", "own", "same", "any", "some", "no", "not", "all", "each",
    "every", "both", "few", "more", "most", "other", "into", "over", "after",
    "before", "between", "under", "again", "further", "once", "during",
})

_PUNCTUATION = re.compile(r"[^\w\s]")


def _md5(key: str) -> str:
    return hashlib.md5(key.encode("utf-8")).hexdigest()


def command_signature(story_id: int, room_id: int, command: Command) -> str:
    key = f"{story_id}:{room_id}:{command.type}:{command.target or ''}:{command.modifier or ''}"
    return _md5(key)


def semantic_topics(text: str) -> list[str]:
    """Sorted, unique content words of ``text``."""
    words = _PUNCTUATION.sub("", text.lower()).split()
    return sorted({w for w in words if len(w) > 2 and w not in STOP_WORDS})


def semantic_signature(story_id: int, room_id: int, topics: list[str]) -> str:
    return _md5(f"{story_id}:{room_id}:semantic:{','.join(topics)}")


class ResponseCache:
    """Two-path memo over the interaction cache table."""

    def __init__(self, state: StateManager):
        self.state = state

    def _hit(self, command_hash: str) -> str | None:
        entry = self.state.get_cache_entry(command_hash)
        if entry is None:
            return None
        entry.hit_count = (entry.hit_count or 0) + 1
        self.state.save(entry)
        return entry.response

    # ==== Exact path ====

    def get_exact(self, room_id: int, command: Command) -> str | None:
        response = self._hit(command_signature(self.state.story_id, room_id, command))
        if response is not None:
            logger.debug(f"Cache hit: {command.type} {command.target or ''}")
        return response

    def store_exact(self, room_id: int, command: Command, response: str) -> None:
        if not response:
            return
        self.state.put_cache_entry(
            command_signature(self.state.story_id, room_id, command),
            room_id,
            str(command.type),
            command.target or "",
            response,
        )

    # ==== Semantic path ====

    def get_semantic(self, room_id: int, text: str) -> str | None:
        topics = semantic_topics(text)
        if not topics:
            return None
        response = self._hit(semantic_signature(self.state.story_id, room_id, topics))
        if response is not None:
            logger.debug(f"Semantic cache hit: {topics}")
        return response

    def store_semantic(self, room_id: int, text: str, response: str) -> None:
        topics = semantic_topics(text)
        if not topics or not response:
            return
        self.state.put_cache_entry(
            semantic_signature(self.state.story_id, room_id, topics),
            room_id,
            SEMANTIC_TYPE,
            ",".join(topics)[:255],
            response,
        )

    def hit_count(self, room_id: int, command: Command) -> int:
        entry = self.state.get_cache_entry(command_signature(self.state.story_id, room_id, command))
        return entry.hit_count if entry else 0

    def invalidate_room(self, room_id: int) -> int:
        deleted = self.state.delete_cache_for_room(room_id)
        logger.info(f"Invalidated {deleted} cache entries for room {room_id}")
        return deleted
