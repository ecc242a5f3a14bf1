"""State manager for CRUD operations on story state.

The implementation is split across mixins for maintainability:
  _core.py         session plumbing, stories, player state, transcript, facts
  _world.py        rooms and vehicle rooms
  _objects.py      game objects, characters
  _abilities.py    abilities, skill-check audit rows
  _events.py       timed events
  _personality.py  trait scores, signal history, dilemmas
  _cache.py        interaction cache
  _puzzles.py      puzzles, steps, links

Every StateManager is bound to one story id and one session factory,
so the orchestrator (and tests) can inject their own store.
"""

from ._abilities import AbilitiesMixin
from ._cache import CacheMixin
from ._core import CoreMixin
from ._events import EventsMixin
from ._objects import ObjectsMixin
from ._personality import PersonalityMixin
from ._puzzles import PuzzlesMixin
from ._world import WorldMixin


class StateManager(
    CoreMixin,
    WorldMixin,
    ObjectsMixin,
    AbilitiesMixin,
    EventsMixin,
    PersonalityMixin,
    CacheMixin,
    PuzzlesMixin,
):
    """Keyed store over one story's rows."""
