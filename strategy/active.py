"""Active policy: lower thresholds, tighter duration and stake windows."""
from typing import Optional

from shared.schemas import AcceptAnalysis, MarketContext, Wager
from shared.units import units_to_xpr
from strategy.base import StrategyDeps
from strategy.thresholds import ACTIVE, PolicyLimits
from strategy.trading import TradingStrategy


class ActiveStrategy(TradingStrategy):
    """Reuses the creation prediction to judge acceptance.

    A wager is worth accepting when the predicted direction is the side we
    would take, i.e. the opposite of the creator's.
    """

    def __init__(self, deps: StrategyDeps, limits: PolicyLimits = ACTIVE):
        super().__init__(deps, limits)

    async def prefilter(self, wager: Wager, context: MarketContext) -> Optional[str]:
        if wager.duration < self.limits.min_duration:
            return f"duration {wager.duration}s below {self.limits.min_duration}s"
        if wager.duration > self.limits.max_duration:
            return f"duration {wager.duration}s above {self.limits.max_duration}s"
        stake = units_to_xpr(wager.stake)
        if self.limits.max_accept_stake is not None and stake > self.limits.max_accept_stake:
            return f"stake {stake:.4f} above {self.limits.max_accept_stake:.4f}"
        return None

    async def evaluate_accept(self, wager: Wager, context: MarketContext) -> AcceptAnalysis:
        prediction = await self.deps.predictor.predict(context)
        our_side = wager.direction.opposite().label
        matches = prediction.direction.value == our_side
        return AcceptAnalysis(
            accept=matches,
            confidence=prediction.confidence,
            reasoning=prediction.reasoning if matches else (
                f"predicted {prediction.direction.value}, our side is {our_side}. {prediction.reasoning}"
            ),
            model=prediction.model,
            latency_ms=prediction.latency_ms,
        )
