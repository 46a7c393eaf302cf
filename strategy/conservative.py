"""Conservative policy: high confidence only, small stakes."""
from typing import Optional

from shared.schemas import AcceptAnalysis, Direction, MarketContext, Wager
from shared.units import percent_change
from strategy.base import StrategyDeps
from strategy.thresholds import CONSERVATIVE, PolicyLimits
from strategy.trading import TradingStrategy


class ConservativeStrategy(TradingStrategy):
    """Accepts only after a dedicated accept judgment, and never chases a move.

    Wagers whose price has already moved in the creator's favour since
    creation, beyond the drift tolerance, are skipped.
    """

    def __init__(self, deps: StrategyDeps, limits: PolicyLimits = CONSERVATIVE):
        super().__init__(deps, limits)

    async def prefilter(self, wager: Wager, context: MarketContext) -> Optional[str]:
        tolerance = self.limits.max_price_drift_pct
        if tolerance is None:
            return None
        price_then = await self.deps.db.get_price_at(wager.created_at)
        if price_then is None:
            return None

        drift = percent_change(price_then, context.current_price)
        if wager.direction == Direction.UP and drift > tolerance:
            return f"price already up {drift:.2f}% since creation"
        if wager.direction == Direction.DOWN and drift < -tolerance:
            return f"price already down {abs(drift):.2f}% since creation"
        return None

    async def evaluate_accept(self, wager: Wager, context: MarketContext) -> AcceptAnalysis:
        return await self.deps.predictor.evaluate_accept(wager, context)
