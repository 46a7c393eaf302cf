"""Shared tick for the policies that create and accept wagers."""
import logging
import time
from abc import abstractmethod
from typing import Optional

from execution.wager_book import acceptable_wagers, open_wagers, pending_count
from shared.constants import TOKEN_MULTIPLIER
from shared.errors import InsufficientFundsError
from shared.schemas import (
    AcceptAnalysis,
    CreatePlan,
    Decision,
    DecisionAction,
    Direction,
    MarketContext,
    PredictedDirection,
    Wager,
)
from shared.units import format_asset, units_to_xpr
from strategy.base import BaseStrategy, StrategyDeps
from strategy.sizing import available_balance, clamp, compute_stake
from strategy.thresholds import PRICE_HISTORY_LEN, PolicyLimits

logger = logging.getLogger(__name__)


class TradingStrategy(BaseStrategy):
    """Resolve, expire, then create and accept within the policy's limits.

    A failure while building the context ends the tick's trading phase.
    A failure on a single opportunity is logged and the loop moves on.
    """

    def __init__(self, deps: StrategyDeps, limits: PolicyLimits):
        super().__init__(deps)
        if deps.predictor is None:
            raise ValueError(f"{limits.name} requires a predictor")
        self.limits = limits
        self.name = limits.name
        self.mode = limits.mode
        self._last_create: Optional[float] = None

    @property
    def account(self) -> str:
        return self.deps.book.account

    @property
    def max_stake_percent(self) -> float:
        if self.limits.max_stake_percent is None:
            return self.config.MAX_PERCENT_PER_CHALLENGE
        return min(self.limits.max_stake_percent, self.config.MAX_PERCENT_PER_CHALLENGE)

    async def tick(self) -> None:
        await self.resolve_expired()
        await self.expire_expired()
        await self.deps.outcomes.record_settled()

        if await self.deps.book.is_paused():
            logger.warning("Contract is paused, skipping trading")
            return

        daily_loss = await self.deps.performance.daily_net_loss()
        if daily_loss >= self.config.MAX_DAILY_LOSS:
            logger.warning("Daily loss limit reached, pausing trading", extra={
                "daily_loss": daily_loss,
                "limit": self.config.MAX_DAILY_LOSS,
            })
            return

        try:
            context = await self.build_context()
            wagers = await self.deps.book.sync_all()
        except Exception as e:
            logger.error(f"Failed to build decision context: {e}")
            return

        pending = pending_count(wagers, self.account)
        if await self._create_phase(context, wagers, pending):
            pending += 1
        await self._accept_phase(context, acceptable_wagers(wagers, self.account), pending)

    async def build_context(self) -> MarketContext:
        quote = await self.deps.oracle.get_btc_price()
        history = await self.deps.db.get_recent_prices(PRICE_HISTORY_LEN)
        performance = await self.deps.performance.total_performance()

        market = None
        if self.deps.market_feed is not None:
            try:
                market = await self.deps.market_feed.get_snapshot()
            except Exception as e:
                logger.warning(f"Market data unavailable, using basic context: {e}")

        return MarketContext(
            current_price=quote.price,
            price_history=history,
            performance=performance,
            market=market,
        )

    # Creation

    def _cooldown_remaining(self) -> float:
        if self._last_create is None:
            return 0.0
        return max(0.0, self.limits.create_cooldown - (time.monotonic() - self._last_create))

    async def _create_phase(self, context: MarketContext, wagers: list[Wager], pending: int) -> bool:
        """Run the creation gate; True when a wager was created."""
        cap = self.config.MAX_CONCURRENT_CHALLENGES
        our_open = [w for w in open_wagers(wagers) if w.creator == self.account]

        if pending >= cap:
            logger.info("Skipping create - at max wagers", extra={"pending": pending, "max": cap})
            return False
        remaining = self._cooldown_remaining()
        if remaining > 0:
            logger.info("Skipping create - cooldown active", extra={
                "seconds_remaining": int(remaining),
            })
            return False
        if self.limits.wait_for_open and our_open:
            logger.info("Skipping create - waiting for open wager to be accepted", extra={
                "open": len(our_open),
            })
            return False

        try:
            plan = await self.should_create(context)
            if plan is None:
                return False
            self._last_create = time.monotonic()
            await self.execute_create(plan, context, known_ids=frozenset(w.id for w in wagers))
            return True
        except InsufficientFundsError as e:
            logger.info(f"Skipping create - {e}")
        except Exception as e:
            logger.error(f"Create failed: {e}")
        return False

    async def should_create(self, context: MarketContext) -> Optional[CreatePlan]:
        prediction = await self.deps.predictor.predict(context)

        await self.deps.db.log_decision(Decision(
            action=DecisionAction.ANALYZE_CREATE,
            direction=prediction.direction.value,
            confidence=prediction.confidence,
            reasoning=prediction.reasoning,
            ai_provider=self.deps.predictor.provider,
            ai_model=prediction.model,
            price_at_decision=context.current_price,
        ))

        if (
            prediction.direction == PredictedDirection.NEUTRAL
            or prediction.confidence < self.limits.min_create_confidence
        ):
            logger.info("Skipping create - below threshold", extra={
                "direction": prediction.direction.value,
                "confidence": prediction.confidence,
            })
            return None

        return CreatePlan(
            direction=Direction[prediction.direction.value],
            duration=int(clamp(prediction.duration_seconds, self.limits.min_duration, self.limits.max_duration)),
            stake_percent=clamp(prediction.stake_percent, self.limits.min_stake_percent, self.max_stake_percent),
            confidence=prediction.confidence,
            reasoning=prediction.reasoning,
        )

    async def execute_create(
        self, plan: CreatePlan, context: MarketContext, known_ids: frozenset[int] = frozenset()
    ) -> None:
        balance = await self.deps.book.get_balance()
        stake_xpr = compute_stake(balance, self.config.MIN_BALANCE_RESERVE, plan.stake_percent)
        stake_units = stake_xpr * TOKEN_MULTIPLIER

        receipt = await self.deps.actions.create_wager(stake_units, plan.direction, plan.duration)
        wager_id = await self._find_created(plan, stake_units, known_ids)

        await self.deps.db.log_decision(Decision(
            challenge_id=wager_id,
            action=DecisionAction.CREATE,
            direction=plan.direction.label,
            confidence=plan.confidence,
            reasoning=plan.reasoning,
            ai_provider=self.deps.predictor.provider,
            price_at_decision=context.current_price,
        ))
        logger.info("Wager created", extra={
            "tx_id": receipt.transaction_id,
            "wager_id": wager_id,
            "direction": plan.direction.label,
            "duration": plan.duration,
            "stake": format_asset(stake_units),
            "balance": balance,
        })

    async def _find_created(
        self, plan: CreatePlan, stake_units: int, known_ids: frozenset[int] = frozenset()
    ) -> Optional[int]:
        """Id of the wager we just created: our newest unseen open wager matching the plan.

        None in dry-run mode or when the ledger does not show it yet; the
        CREATE decision is then logged without a wager id.
        """
        try:
            wagers = await self.deps.book.sync_all()
        except Exception as e:
            logger.warning(f"Could not look up created wager: {e}")
            return None
        matches = [
            w.id for w in open_wagers(wagers)
            if w.creator == self.account
            and w.id not in known_ids
            and w.stake == stake_units
            and w.direction == plan.direction
            and w.duration == plan.duration
        ]
        return max(matches) if matches else None

    # Acceptance

    async def _accept_phase(self, context: MarketContext, candidates: list[Wager], pending: int) -> None:
        cap = self.config.MAX_CONCURRENT_CHALLENGES
        for wager in candidates:
            if pending >= cap:
                break
            try:
                if await self.should_accept(wager, context):
                    await self.execute_accept(wager)
                    pending += 1
            except InsufficientFundsError as e:
                logger.info(f"Skipping wager {wager.id} - {e}")
            except Exception as e:
                logger.error("Failed to evaluate wager", extra={"wager_id": wager.id, "error": str(e)})

    @abstractmethod
    async def prefilter(self, wager: Wager, context: MarketContext) -> Optional[str]:
        """Reason to skip ``wager`` without consulting the predictor, or None."""

    @abstractmethod
    async def evaluate_accept(self, wager: Wager, context: MarketContext) -> AcceptAnalysis:
        """Judge taking the opposite side of ``wager``."""

    async def should_accept(self, wager: Wager, context: MarketContext) -> bool:
        our_side = wager.direction.opposite().label

        reason = await self.prefilter(wager, context)
        if reason:
            logger.debug("Skipping wager", extra={"wager_id": wager.id, "reason": reason})
            await self.deps.db.log_decision(Decision(
                challenge_id=wager.id,
                action=DecisionAction.SKIP,
                direction=our_side,
                reasoning=reason,
                price_at_decision=context.current_price,
            ))
            return False

        analysis = await self.evaluate_accept(wager, context)
        accept = analysis.accept and analysis.confidence >= self.limits.min_accept_confidence

        await self.deps.db.log_decision(Decision(
            challenge_id=wager.id,
            action=DecisionAction.ACCEPT if accept else DecisionAction.SKIP,
            direction=our_side,
            confidence=analysis.confidence,
            reasoning=analysis.reasoning,
            ai_provider=self.deps.predictor.provider,
            ai_model=analysis.model,
            price_at_decision=context.current_price,
        ))

        if accept:
            logger.info("Accepting wager", extra={
                "wager_id": wager.id,
                "our_side": our_side,
                "confidence": analysis.confidence,
            })
        return accept

    async def execute_accept(self, wager: Wager) -> None:
        balance = await self.deps.book.get_balance()
        available = available_balance(balance, self.config.MIN_BALANCE_RESERVE)
        if available < units_to_xpr(wager.stake):
            raise InsufficientFundsError(available, units_to_xpr(wager.stake))

        receipt = await self.deps.actions.accept_wager(wager.id, wager.stake)
        logger.info("Wager accepted", extra={
            "wager_id": wager.id,
            "tx_id": receipt.transaction_id,
            "stake": format_asset(wager.stake),
        })
