"""
Tennis scoring: games roll up into sets, sets roll up into the match.

Game stages record the points each player won in the game. A set stage is
a composite of its games and a match (the event) is a composite of sets.
"""

from typing import Any

from ..base import ScoringMethod, StageScoringInfo, EventScoringInfo
from ..results import SimpleResult


def parse_count(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"Expected a whole number, got {value!r}")
    if value < 0:
        raise ValueError(f"Expected a non-negative number, got {value}")
    return value


class TennisGameMethod(ScoringMethod):
    """The player with the most points takes the game (1 point)."""

    name = "tennis_game"
    description = "Points won per game; game winner scores 1"
    higher_points_better = True

    def value_to_points(self, value: Any) -> float:
        return float(parse_count(value))

    def score_stage(self, info: StageScoringInfo) -> SimpleResult:
        result = SimpleResult()
        if not info.values:
            return result

        rally_points = {pid: parse_count(value) for pid, value in info.values.items()}
        most = max(rally_points.values())
        leaders = [pid for pid, p in rally_points.items() if p == most]

        for pid, p in rally_points.items():
            # An unfinished (level) game is nobody's yet
            won_game = len(leaders) == 1 and pid in leaders
            result.points[pid] = 1.0 if won_game else 0.0
            result.score_types[pid] = "game" if won_game else ""
            result.stats[pid] = {"pointsWon": p}
        return result


class TennisSetMethod(ScoringMethod):
    """Games won; a set recorded directly takes games won as its value."""

    name = "tennis_set"
    description = "Games won per set"
    higher_points_better = True

    def value_to_points(self, value: Any) -> float:
        return float(parse_count(value))


class TennisMatchMethod(ScoringMethod):
    """Sets won across the match; games won kept as a stat."""

    name = "tennis_match"
    description = "Sets won per match"
    higher_points_better = True

    def value_to_points(self, value: Any) -> float:
        return float(parse_count(value))

    def score_event(self, info: EventScoringInfo) -> SimpleResult:
        result = SimpleResult()
        for pid, games in info.point_sums.items():
            sets_won = sum(
                1 for set_result in info.stage_results
                if set_result.winners == [pid] and len(set_result) > 1
            )
            result.points[pid] = float(sets_won)
            result.stats[pid] = {"gamesWon": games}
        return result
