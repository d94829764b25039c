from pydantic import BaseModel, Field, ConfigDict
from typing import Any, Dict, List, Optional


class ScoreSubmission(BaseModel):
    # Sport-defined raw value, checked by the stage's scoring method
    value: Any = Field(...)


class ParticipantResultResponse(BaseModel):
    participant_id: str
    points: float
    place: int
    place_from_end: int
    won: bool
    lost: bool
    tied: bool
    win_margin: float
    loss_margin: float
    points_behind_previous: float
    points_ahead_of_next: float
    value: Any = None
    score_type: str = ""
    stats: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(from_attributes=True)


class GroupResultResponse(BaseModel):
    participant_results: Dict[str, ParticipantResultResponse] = Field(default_factory=dict)
    winners: List[str] = Field(default_factory=list)
    winning_points: Optional[float] = None
    higher_points_better: bool = True
    stats: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(from_attributes=True)


class ScoreUpdateResponse(BaseModel):
    event_id: str
    stage_id: str
    participant_id: str
    stage_result: GroupResultResponse
    event_result: GroupResultResponse
    recomputed_stage_ids: List[str] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class EventScoresResponse(BaseModel):
    event_id: str
    stage_results: Dict[str, GroupResultResponse] = Field(default_factory=dict)
    event_result: GroupResultResponse

    model_config = ConfigDict(from_attributes=True)


class ScoringMethodResponse(BaseModel):
    name: str
    description: str = ""
    higher_points_better: bool
    propagates_to_sibling_stages: bool


class StageStatisticsResponse(BaseModel):
    venue_stage_id: str
    scoring_method: Optional[str] = None
    skipped: int = 0
    count: int = 0
    best: Optional[float] = None
    worst: Optional[float] = None
    mean: Optional[float] = None
    median: Optional[float] = None
    p25: Optional[float] = None
    p75: Optional[float] = None
