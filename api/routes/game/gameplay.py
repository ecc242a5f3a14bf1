"""Gameplay routes: turn, dilemma response, game state, transcript."""

import logging

from fastapi import APIRouter, HTTPException

from taleloop.errors import DilemmaError, WorldStateError

from .models import (
    DilemmaRequest,
    DilemmaResponse,
    GameStateResponse,
    TranscriptResponse,
    TurnRequest,
    TurnResponse,
)
from .stories import get_orchestrator

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/stories/{story_id}/turn", response_model=TurnResponse)
async def process_turn(story_id: int, request: TurnRequest):
    """Process a game turn.

    Args:
        story_id: The story to advance
        request: The player's input

    Returns:
        TurnResponse with narrative, counters and any dilemma, countdowns or game over
    """
    if not request.player_input.strip():
        raise HTTPException(status_code=400, detail="Player input cannot be empty")

    orchestrator = get_orchestrator(story_id)
    try:
        result = await orchestrator.process_turn(request.player_input)
    except WorldStateError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return TurnResponse.model_validate(result.to_dict())


@router.post("/stories/{story_id}/dilemmas/{dilemma_id}", response_model=DilemmaResponse)
async def respond_to_dilemma(story_id: int, dilemma_id: int, request: DilemmaRequest):
    orchestrator = get_orchestrator(story_id)
    try:
        outcome = await orchestrator.handle_dilemma_response(dilemma_id, request.option, request.text)
    except DilemmaError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return DilemmaResponse.model_validate(outcome.to_dict())


@router.get("/stories/{story_id}/state", response_model=GameStateResponse)
async def get_state(story_id: int):
    """Current room plus counters, for status displays."""
    orchestrator = get_orchestrator(story_id)
    try:
        state = orchestrator.get_game_state()
    except WorldStateError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return GameStateResponse.model_validate(state.to_dict())


@router.get("/stories/{story_id}/transcript", response_model=TranscriptResponse)
async def get_transcript(story_id: int, limit: int | None = None):
    orchestrator = get_orchestrator(story_id)
    return TranscriptResponse(story_id=story_id, entries=orchestrator.get_transcript(limit))
