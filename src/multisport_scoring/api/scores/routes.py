from fastapi import APIRouter, Depends, HTTPException, status, Query
from typing import List, Optional
from datetime import datetime
import logging
from sqlalchemy.ext.asyncio import AsyncSession
from multisport_scoring.api.dependencies import get_orchestrator, get_registry, get_session
from multisport_scoring.api.scores.models import (
    ScoreSubmission, ScoreUpdateResponse, EventScoresResponse,
    ScoringMethodResponse, StageStatisticsResponse
)
from multisport_scoring.engine import ScoreOrchestrator, HistoryService
from multisport_scoring.exceptions import (
    ScoringEngineError, ValidationError, NotFoundError, StructureError, ConfigurationError
)
from multisport_scoring.scoring.registry import ScoringMethodRegistry

logger = logging.getLogger(__name__)

router = APIRouter()


def to_http_error(error: ScoringEngineError) -> HTTPException:
    """Map an engine error onto the HTTP status the caller should see."""
    if isinstance(error, ValidationError):
        return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(error))
    if isinstance(error, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(error))
    if isinstance(error, StructureError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(error))
    if isinstance(error, ConfigurationError):
        logger.error(f"Scoring configuration error: {error}")
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(error))


@router.put("/events/{event_id}/stages/{stage_id}/scores/{participant_id}", response_model=ScoreUpdateResponse)
async def set_stage_score(
    event_id: str,
    stage_id: str,
    participant_id: str,
    submission: ScoreSubmission,
    orchestrator: ScoreOrchestrator = Depends(get_orchestrator)
):
    """Record a participant's raw value at a stage and return the recomputed results"""
    try:
        update = await orchestrator.set_stage_score(event_id, stage_id, participant_id, submission.value)
    except ScoringEngineError as e:
        raise to_http_error(e)

    return ScoreUpdateResponse.model_validate(update)


@router.get("/events/{event_id}/scores", response_model=EventScoresResponse)
async def get_event_scores(
    event_id: str,
    orchestrator: ScoreOrchestrator = Depends(get_orchestrator)
):
    """Every stage result and the event result, recomputed from raw values"""
    try:
        scores = await orchestrator.get_event_scores(event_id)
    except ScoringEngineError as e:
        raise to_http_error(e)

    return EventScoresResponse.model_validate(scores)


@router.get("/scoring-methods", response_model=List[ScoringMethodResponse])
async def list_scoring_methods(registry: ScoringMethodRegistry = Depends(get_registry)):
    """Registered scoring methods and their behavior flags"""
    return [ScoringMethodResponse(**method.describe()) for method in registry]


@router.get("/venue-stages/{venue_stage_id}/statistics", response_model=StageStatisticsResponse)
async def get_stage_statistics(
    venue_stage_id: str,
    before: Optional[datetime] = Query(None),
    registry: ScoringMethodRegistry = Depends(get_registry),
    db: AsyncSession = Depends(get_session)
):
    """Distribution of every value recorded at a venue stage"""
    try:
        statistics = await HistoryService(db, registry).get_stage_statistics(venue_stage_id, before)
    except ScoringEngineError as e:
        raise to_http_error(e)

    return StageStatisticsResponse(**statistics)
