"""
Golf scoring methods: stroke play, match play and a cumulative stroke
leaderboard. Raw values are stroke counts (positive integers).
"""

import logging
from typing import Any, Optional

from ..base import ScoringMethod, StageScoringInfo, EventScoringInfo
from ..results import SimpleResult

logger = logging.getLogger(__name__)

SCORE_TYPES_TO_PAR = {
    -3: "albatross",
    -2: "eagle",
    -1: "birdie",
    0: "par",
    1: "bogey",
    2: "double-bogey",
}


def parse_strokes(value: Any) -> int:
    """Stroke counts are positive integers."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"Strokes must be an integer, got {value!r}")
    if value < 1:
        raise ValueError(f"Strokes must be at least 1, got {value}")
    return value


def score_type_for(strokes: int, par: Optional[int]) -> str:
    if strokes == 1:
        return "hole-in-one"
    if par is None:
        return ""
    to_par = strokes - par
    if to_par <= -3:
        return "albatross"
    if to_par >= 3:
        return "triple-bogey+"
    return SCORE_TYPES_TO_PAR[to_par]


def _previous_stat(info: StageScoringInfo, participant_id: str, key: str, default: float = 0.0) -> float:
    """Latest value of a per-participant stat among the preceding stage results."""
    for result in reversed(info.previous_stage_results):
        participant = result.get(participant_id)
        if participant is not None and key in participant.stats:
            return participant.stats[key]
    return default


def _previous_points(info: StageScoringInfo, participant_id: str) -> float:
    """Points of the participant in the latest preceding stage they played."""
    for result in reversed(info.previous_stage_results):
        participant = result.get(participant_id)
        if participant is not None:
            return participant.points
    return 0.0


class StrokePlayMethod(ScoringMethod):
    """Fewest strokes wins; labels each hole relative to par when known."""

    name = "stroke_play"
    description = "Stroke count per hole, lowest total wins"
    higher_points_better = False
    propagates_to_sibling_stages = False

    def value_to_points(self, value: Any) -> float:
        return float(parse_strokes(value))

    def score_stage(self, info: StageScoringInfo) -> SimpleResult:
        par = info.stage.metadata.get("par")
        result = SimpleResult()
        for pid, value in info.values.items():
            strokes = parse_strokes(value)
            result.points[pid] = float(strokes)
            result.score_types[pid] = score_type_for(strokes, par)
            if par is not None:
                result.stats[pid] = {"toPar": strokes - par}
        if par is not None:
            result.group_stats["par"] = par
        return result

    def score_event(self, info: EventScoringInfo) -> SimpleResult:
        result = SimpleResult(points=dict(info.point_sums))
        for pid, total in info.point_sums.items():
            pars = [
                stage.metadata.get("par")
                for stage, stage_result in zip(info.stages, info.stage_results)
                if pid in stage_result
            ]
            result.stats[pid] = {"holesPlayed": len(pars)}
            if pars and all(par is not None for par in pars):
                result.stats[pid]["toPar"] = total - sum(pars)
        return result


class MatchPlayMethod(ScoringMethod):
    """
    Hole-by-hole match play.

    The lowest score wins the hole (1 point), a hole shared by everyone is
    halved (0.5 each). The running match standing is carried from hole to
    hole, so every later hole depends on the earlier ones.
    """

    name = "match_play"
    description = "Holes won; running standing carried hole to hole"
    higher_points_better = True
    propagates_to_sibling_stages = True

    def value_to_points(self, value: Any) -> float:
        return float(parse_strokes(value))

    def score_stage(self, info: StageScoringInfo) -> SimpleResult:
        result = SimpleResult()
        if not info.values:
            return result

        strokes = {pid: parse_strokes(value) for pid, value in info.values.items()}
        best = min(strokes.values())
        low_scorers = [pid for pid, s in strokes.items() if s == best]

        for pid in strokes:
            if len(low_scorers) == 1:
                points = 1.0 if pid in low_scorers else 0.0
                score_type = "won" if points else "lost"
            else:
                points = 0.5 if pid in low_scorers else 0.0
                score_type = "halved" if points else "lost"
            result.points[pid] = points
            result.score_types[pid] = score_type

        holes_won = {
            pid: _previous_stat(info, pid, "holesWon") + result.points[pid]
            for pid in strokes
        }
        for pid in strokes:
            opponents = [won for other, won in holes_won.items() if other != pid]
            result.stats[pid] = {
                "strokes": strokes[pid],
                "holesWon": holes_won[pid],
                "holesUp": holes_won[pid] - max(opponents) if opponents else 0.0,
            }
        return result

    def score_event(self, info: EventScoringInfo) -> SimpleResult:
        result = SimpleResult(points=dict(info.point_sums))
        for pid, won in info.point_sums.items():
            opponents = [other_won for other, other_won in info.point_sums.items() if other != pid]
            result.stats[pid] = {"holesUp": won - max(opponents) if opponents else 0.0}
        return result


class CumulativeStrokesMethod(ScoringMethod):
    """Leaderboard ranked on running stroke totals after each hole."""

    name = "cumulative_strokes"
    description = "Running stroke total after each hole, lowest wins"
    higher_points_better = False
    propagates_to_sibling_stages = True

    def value_to_points(self, value: Any) -> float:
        return float(parse_strokes(value))

    def score_stage(self, info: StageScoringInfo) -> SimpleResult:
        result = SimpleResult()
        for pid, value in info.values.items():
            strokes = parse_strokes(value)
            result.points[pid] = _previous_points(info, pid) + strokes
            result.stats[pid] = {"strokes": strokes}
        return result

    def score_event(self, info: EventScoringInfo) -> SimpleResult:
        # Each stage already carries the running total; the last one counts
        result = SimpleResult()
        for stage_result in info.stage_results:
            for pid, participant in stage_result.participant_results.items():
                result.points[pid] = participant.points
        return result
