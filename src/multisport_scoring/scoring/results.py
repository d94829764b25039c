"""
Group result computation.

Ranks one set of participants' points with competition ranking ("1224"):
tied participants share a place and the next distinct value skips ahead by
the size of the tie group. Also derives won/lost flags, margins against the
best and worst values, and distances to the adjacent place groups.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .statistics import summarize_points

logger = logging.getLogger(__name__)

ParticipantId = str


@dataclass
class SimpleResult:
    """Points per participant as produced by a scoring method, before ranking."""
    points: Dict[ParticipantId, float] = field(default_factory=dict)
    # Per-participant label such as 'birdie' or 'ace'
    score_types: Dict[ParticipantId, str] = field(default_factory=dict)
    # Per-participant computed stats
    stats: Dict[ParticipantId, Dict[str, Any]] = field(default_factory=dict)
    # Group-level stats
    group_stats: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ParticipantResult:
    """One participant's ranked result within a group."""
    participant_id: ParticipantId
    points: float
    place: int
    place_from_end: int
    won: bool = False
    lost: bool = False
    win_margin: float = 0.0
    loss_margin: float = 0.0
    points_behind_previous: float = 0.0
    points_ahead_of_next: float = 0.0
    value: Any = None
    score_type: str = ""
    stats: Dict[str, Any] = field(default_factory=dict)

    @property
    def tied(self) -> bool:
        """Ranked, but neither won nor lost."""
        return not self.won and not self.lost

    def to_dict(self) -> Dict[str, Any]:
        return {
            "participantId": self.participant_id,
            "points": self.points,
            "place": self.place,
            "placeFromEnd": self.place_from_end,
            "won": self.won,
            "lost": self.lost,
            "tied": self.tied,
            "winMargin": self.win_margin,
            "lossMargin": self.loss_margin,
            "pointsBehindPrevious": self.points_behind_previous,
            "pointsAheadOfNext": self.points_ahead_of_next,
            "value": self.value,
            "scoreType": self.score_type,
            "stats": self.stats,
        }


@dataclass
class GroupResult:
    """The ranked, tie-aware result of scoring one set of participants."""
    participant_results: Dict[ParticipantId, ParticipantResult] = field(default_factory=dict)
    winners: List[ParticipantId] = field(default_factory=list)
    winning_points: Optional[float] = None
    higher_points_better: bool = True
    stats: Dict[str, Any] = field(default_factory=dict)

    def __contains__(self, participant_id: ParticipantId) -> bool:
        return participant_id in self.participant_results

    def __len__(self) -> int:
        return len(self.participant_results)

    def get(self, participant_id: ParticipantId) -> Optional[ParticipantResult]:
        return self.participant_results.get(participant_id)

    def points(self) -> Dict[ParticipantId, float]:
        return {pid: result.points for pid, result in self.participant_results.items()}

    def ranking(self) -> List[ParticipantResult]:
        """Participant results ordered best first (ties ordered by id)."""
        return sorted(
            self.participant_results.values(),
            key=lambda result: (result.place, result.participant_id)
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "participantResults": {
                pid: result.to_dict() for pid, result in self.participant_results.items()
            },
            "winners": list(self.winners),
            "winningPoints": self.winning_points,
            "higherPointsBetter": self.higher_points_better,
            "stats": self.stats,
        }


def _distance(a: float, b: float) -> float:
    return abs(a - b)


def compute_group_result(
    simple_result: SimpleResult,
    higher_points_better: bool,
    values: Optional[Dict[ParticipantId, Any]] = None,
) -> GroupResult:
    """
    Rank a ``SimpleResult``.

    Args:
        simple_result: Points (and optional stats) per participant
        higher_points_better: Sort direction
        values: Raw values to carry through onto each participant result

    Returns:
        GroupResult with place, margins and won/lost flags per participant
    """
    points = simple_result.points
    values = values or {}

    if not points:
        return GroupResult(higher_points_better=higher_points_better, stats=dict(simple_result.group_stats))

    # Distinct values, best first
    distinct = sorted(set(points.values()), reverse=higher_points_better)
    best, worst = distinct[0], distinct[-1]

    counts: Dict[float, int] = {}
    for p in points.values():
        counts[p] = counts.get(p, 0) + 1

    # Competition ranking from the top and from the bottom
    place_for: Dict[float, int] = {}
    place = 1
    for p in distinct:
        place_for[p] = place
        place += counts[p]

    place_from_end_for: Dict[float, int] = {}
    place = 1
    for p in reversed(distinct):
        place_from_end_for[p] = place
        place += counts[p]

    has_spread = len(distinct) > 1
    sole_best = has_spread and counts[best] == 1
    sole_worst = has_spread and counts[worst] == 1

    participant_results: Dict[ParticipantId, ParticipantResult] = {}
    for pid, p in points.items():
        index = distinct.index(p)
        previous_points = distinct[index - 1] if index > 0 else None
        next_points = distinct[index + 1] if index < len(distinct) - 1 else None

        participant_results[pid] = ParticipantResult(
            participant_id=pid,
            points=p,
            place=place_for[p],
            place_from_end=place_from_end_for[p],
            won=sole_best and p == best,
            lost=sole_worst and p == worst,
            win_margin=_distance(p, best),
            loss_margin=_distance(p, worst),
            points_behind_previous=_distance(p, previous_points) if previous_points is not None else 0.0,
            points_ahead_of_next=_distance(p, next_points) if next_points is not None else 0.0,
            value=values.get(pid),
            score_type=simple_result.score_types.get(pid, ""),
            stats=dict(simple_result.stats.get(pid, {})),
        )

    winners = sorted(pid for pid, p in points.items() if p == best)

    stats = summarize_points(list(points.values()), higher_points_better)
    stats.update(simple_result.group_stats)

    logger.debug(f"Ranked {len(points)} participants into {len(distinct)} places, winners={winners}")

    return GroupResult(
        participant_results=participant_results,
        winners=winners,
        winning_points=best,
        higher_points_better=higher_points_better,
        stats=stats,
    )
