"""Win/loss/tie accounting with streaks and confidence buckets."""
import logging
from typing import Optional

from shared.clock import today_utc
from shared.schemas import (
    ConfidencePerformance,
    DailyPerformance,
    TotalPerformance,
    confidence_bucket,
)
from storage.db import Database

logger = logging.getLogger(__name__)


class PerformanceLedger:
    """Records outcomes into the per-day and per-confidence-bucket tables.

    Each record call touches today's row (UTC) with single-statement
    increments. A day row that does not exist yet is created with the
    streak carried over from the most recent prior day.
    """

    def __init__(self, db: Database):
        self.db = db

    async def record_win(self, amount: float, confidence: Optional[float] = None, date: Optional[str] = None):
        date = date or today_utc()
        await self.db.increment_win(amount, date)
        await self._record_bucket(confidence, "win", amount)
        logger.info("Recorded win", extra={"amount": amount, "confidence": confidence, "date": date})

    async def record_loss(self, amount: float, confidence: Optional[float] = None, date: Optional[str] = None):
        date = date or today_utc()
        await self.db.increment_loss(amount, date)
        await self._record_bucket(confidence, "loss", amount)
        logger.info("Recorded loss", extra={"amount": amount, "confidence": confidence, "date": date})

    async def record_tie(self, confidence: Optional[float] = None, date: Optional[str] = None):
        date = date or today_utc()
        await self.db.increment_tie(date)
        await self._record_bucket(confidence, "tie")
        logger.info("Recorded tie", extra={"confidence": confidence, "date": date})

    async def record_resolver_earnings(self, amount: float, date: Optional[str] = None):
        await self.db.increment_resolver_earnings(amount, date or today_utc())

    async def _record_bucket(self, confidence: Optional[float], outcome: str, amount: float = 0.0):
        bucket = confidence_bucket(confidence)
        if bucket is None:
            return
        await self.db.increment_confidence_outcome(bucket, outcome, amount)

    async def daily_performance(self, date: Optional[str] = None) -> DailyPerformance:
        return await self.db.get_daily_performance(date or today_utc())

    async def total_performance(self) -> TotalPerformance:
        return await self.db.get_total_performance()

    async def confidence_performance(self) -> list[ConfidencePerformance]:
        return await self.db.get_confidence_performance()

    async def daily_net_loss(self, date: Optional[str] = None) -> float:
        """Today's ``total_lost - total_won`` (positive when losing)."""
        daily = await self.daily_performance(date)
        return daily.total_lost - daily.total_won
