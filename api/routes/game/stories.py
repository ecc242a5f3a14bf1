"""Story setup routes plus the per-story orchestrator cache."""

import logging

from fastapi import APIRouter, HTTPException

from taleloop.core.orchestrator import Orchestrator
from taleloop.db.session import init_db
from taleloop.errors import RoomOccupiedError, WorldImportError

from .models import InitRequest, InitResponse

logger = logging.getLogger(__name__)

router = APIRouter()

# One orchestrator per story id
_orchestrators: dict[int, Orchestrator] = {}
_db_ready = False


def get_orchestrator(story_id: int) -> Orchestrator:
    """Get or create the orchestrator for ``story_id``."""
    global _db_ready

    if not _db_ready:
        init_db()
        _db_ready = True

    orchestrator = _orchestrators.get(story_id)
    if orchestrator is None:
        orchestrator = _orchestrators[story_id] = Orchestrator(story_id)
        logger.info(f"[get_orchestrator] Created orchestrator for story {story_id}")
    return orchestrator


def reset_orchestrators():
    """Close and forget every cached orchestrator."""
    global _db_ready
    for story_id, orchestrator in list(_orchestrators.items()):
        try:
            orchestrator.close()
        except Exception as e:
            logger.error(f"[reset_orchestrators] close() failed for story {story_id}: {e}")
    _orchestrators.clear()
    _db_ready = False
    logger.info("[reset_orchestrators] Orchestrators cleared")


@router.post("/stories/{story_id}/init", response_model=InitResponse)
async def init_story(story_id: int, request: InitRequest):
    """Create a story from a seed and/or an authored world.

    The world is imported first, so a seed's starting room may sit beside
    authored rooms; without a seed the world must name a starting room.
    """
    if request.seed is None and request.world is None:
        raise HTTPException(status_code=400, detail="Provide a seed, a world, or both")

    orchestrator = get_orchestrator(story_id)
    room_ids: dict[str, int] = {}
    try:
        if request.world is not None:
            room_ids = orchestrator.import_world(request.world)
        if request.seed is not None:
            orchestrator.initialize_game(request.seed)
    except (WorldImportError, RoomOccupiedError) as e:
        raise HTTPException(status_code=400, detail=str(e))

    player = orchestrator.state.get_player_state()
    if player is None:
        raise HTTPException(status_code=400, detail="The world has no starting room")

    return InitResponse(
        story_id=story_id,
        starting_room_id=player.current_room_id,
        opening_narrative=orchestrator.get_opening_narrative(),
        room_ids=room_ids,
    )
