"""
Scoring engine: event snapshots, evaluation and the recomputation cascade.

Provides:
- ScoreOrchestrator: set_stage_score / get_event_scores
- ScoreStore: storage operations backed by an async session
- StructureService: sports, formats, venues, participants and events
- HistoryService: per venue stage distribution statistics
"""

from .snapshot import EventSnapshot, StageNode, ScoreRow
from .evaluator import EventEvaluator, EventScores
from .locks import KeyedLock
from .store import ScoreStore
from .orchestrator import ScoreOrchestrator, ScoreUpdate
from .structure import StructureService, StageDefinition
from .history import HistoryService

__all__ = [
    "EventSnapshot",
    "StageNode",
    "ScoreRow",
    "EventEvaluator",
    "EventScores",
    "KeyedLock",
    "ScoreStore",
    "ScoreOrchestrator",
    "ScoreUpdate",
    "StructureService",
    "StageDefinition",
    "HistoryService",
]
