"""Per-story turn serialization.

Turns for one story must never interleave, so every mutating entry point
holds the story's lock. The registry is process-local; running several
worker processes against one database needs an external lock instead.
"""

import asyncio

_story_locks: dict[int, asyncio.Lock] = {}


def story_lock(story_id: int) -> asyncio.Lock:
    """The lock for ``story_id``, created on first use."""
    lock = _story_locks.get(story_id)
    if lock is None:
        lock = _story_locks[story_id] = asyncio.Lock()
    return lock


def reset_story_locks() -> None:
    """Forget every lock (tests run each case in a fresh event loop)."""
    _story_locks.clear()
