"""
Historical statistics for a venue stage ("how is this hole usually played").
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from multisport_scoring.scoring.registry import ScoringMethodRegistry
from multisport_scoring.scoring.statistics import summarize_points
from .store import ScoreStore

logger = logging.getLogger(__name__)


class HistoryService:
    def __init__(self, db_session: AsyncSession, registry: ScoringMethodRegistry):
        self.store = ScoreStore(db_session)
        self.registry = registry

    async def get_stage_statistics(self, venue_stage_id: str, before: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Distribution of every value recorded at a venue stage across events.

        Args:
            venue_stage_id: Venue event format stage identifier
            before: Only count events that started before this time

        Returns:
            Summary with count, best, worst, mean, median, p25 and p75 plus
            the scoring method and how many stored values it rejected
        """
        method_name = await self.store.get_venue_stage_scoring_method(venue_stage_id)
        if method_name is None:
            return {"venue_stage_id": venue_stage_id, "scoring_method": None, "skipped": 0,
                    **summarize_points([], True)}
        method = self.registry.get(method_name)

        values = await self.store.get_historical_values(venue_stage_id, before)
        points = [float(method.value_to_points(value)) for value in values if method.validate_value(value)]
        skipped = len(values) - len(points)
        if skipped:
            logger.warning(f"Skipped {skipped} unreadable values at venue stage {venue_stage_id}")

        summary = summarize_points(points, method.higher_points_better)
        logger.debug(f"Venue stage {venue_stage_id}: {summary['count']} historical values")
        return {"venue_stage_id": venue_stage_id, "scoring_method": method.name, "skipped": skipped, **summary}
