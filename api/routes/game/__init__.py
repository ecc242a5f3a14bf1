"""Game API routes package.

Exposes a single ``router`` that aggregates the sub-module routers, and
re-exports the orchestrator cache helpers used by ``api.main`` and tests.
"""

from fastapi import APIRouter

from .gameplay import router as _gameplay_router
from .stories import router as _stories_router

router = APIRouter()
router.include_router(_stories_router)
router.include_router(_gameplay_router)

from .stories import get_orchestrator, reset_orchestrators  # noqa: E402, F401  (re-export)
