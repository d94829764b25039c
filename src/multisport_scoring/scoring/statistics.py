"""
Distribution statistics over a group of points.

Percentiles are expressed as "better than X% of scores": for
lower-is-better sports (golf, racing) ``p25`` is the value that 25% of
scores are worse (higher) than, which is the traditional 75th percentile.
"""

from typing import Any, Dict, List, Optional

import numpy as np


def _round(value) -> float:
    return round(float(value), 1)


def better_than_percentile(points: List[float], percentile: float, higher_points_better: bool) -> Optional[float]:
    """Linear-interpolated percentile in "better than" orientation."""
    if not points:
        return None
    traditional = percentile if higher_points_better else 100 - percentile
    return _round(np.percentile(np.asarray(points, dtype=float), traditional))


def summarize_points(points: List[float], higher_points_better: bool) -> Dict[str, Any]:
    """
    Summarize a list of points.

    Returns:
        Dictionary with count, best, worst, mean, median, p25, p75. Every
        value except count is None for an empty list.
    """
    if not points:
        return {"count": 0, "best": None, "worst": None, "mean": None,
                "median": None, "p25": None, "p75": None}

    array = np.asarray(points, dtype=float)
    best = array.max() if higher_points_better else array.min()
    worst = array.min() if higher_points_better else array.max()

    return {
        "count": int(array.size),
        "best": float(best),
        "worst": float(worst),
        "mean": _round(array.mean()),
        "median": _round(np.median(array)),
        "p25": better_than_percentile(points, 25, higher_points_better),
        "p75": better_than_percentile(points, 75, higher_points_better),
    }
