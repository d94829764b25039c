"""Time-based scoring (swimming, running, racing): fastest time wins."""

import re
from typing import Any

from ..base import ScoringMethod

DURATION_PATTERN = re.compile(r"^(?:(?:(\d+):)?(\d{1,2}):)?(\d+(?:\.\d+)?)$")


def parse_duration(value: Any) -> float:
    """
    Parse a duration in seconds.

    Accepts a number of seconds or a "ss.ff", "m:ss.ff" or "h:mm:ss.ff"
    string.
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid duration {value!r}")
    if isinstance(value, (int, float)):
        seconds = float(value)
    elif isinstance(value, str):
        match = DURATION_PATTERN.match(value.strip())
        if not match:
            raise ValueError(f"Invalid duration {value!r}")
        hours, minutes, secs = match.groups()
        seconds = int(hours or 0) * 3600 + int(minutes or 0) * 60 + float(secs)
    else:
        raise ValueError(f"Invalid duration {value!r}")

    if seconds <= 0:
        raise ValueError(f"Duration must be positive, got {value!r}")
    return seconds


class TimedMethod(ScoringMethod):
    """Lowest elapsed time wins."""

    name = "timed"
    description = "Elapsed time in seconds, fastest wins"
    higher_points_better = False
    propagates_to_sibling_stages = False

    def value_to_points(self, value: Any) -> float:
        return parse_duration(value)
