"""Resolves matured wagers for the resolver fee and clears expired ones."""
import asyncio
import logging

import httpx

from execution.performance import PerformanceLedger
from execution.wager_book import WagerBook
from ledger.actions import LedgerActions
from ledger.oracle import OracleReader
from shared.clock import now_seconds
from shared.constants import RESOLVER_FEE_BPS
from shared.errors import AgentError, StaleStateError
from shared.schemas import Decision, DecisionAction, ResolveResult, Wager, WagerStatus
from shared.units import format_asset, units_to_xpr
from storage.db import Database

logger = logging.getLogger(__name__)


def resolver_fee_units(stake_units: int) -> float:
    """Resolver share of the combined pot, in token units."""
    return stake_units * 2 * RESOLVER_FEE_BPS / 10_000


def summarize(results: list[ResolveResult]) -> dict:
    succeeded = sum(1 for r in results if r.success)
    return {"succeeded": succeeded, "failed": len(results) - succeeded}


class Resolver:
    """Batch resolve/expire executor.

    Ledger, oracle and transport failures on one wager are logged and
    returned as failed results, so a batch never stops on them. Anything
    else is a bug and propagates.
    """

    def __init__(
        self,
        actions: LedgerActions,
        book: WagerBook,
        oracle: OracleReader,
        db: Database,
        performance: PerformanceLedger,
        pacing_seconds: float = 1.0,
    ):
        self.actions = actions
        self.book = book
        self.oracle = oracle
        self.db = db
        self.performance = performance
        self.pacing_seconds = pacing_seconds

    @property
    def account(self) -> str:
        return self.book.account

    def _check_resolvable(self, wager: Wager, now: int) -> None:
        if wager.status != WagerStatus.ACTIVE:
            raise StaleStateError(
                f"Wager {wager.id} is not active (status {wager.status.name})", wager.id
            )
        if wager.ends_at is None or now < wager.ends_at:
            remaining = (wager.ends_at or now) - now
            raise StaleStateError(
                f"Wager {wager.id} not yet ended, ends in {remaining} seconds", wager.id
            )

    async def resolve_one(self, wager: Wager) -> ResolveResult:
        try:
            self._check_resolvable(wager, now_seconds())

            quote = await self.oracle.get_price(wager.oracle_feed)
            end_price = self.oracle.to_fixed(quote.price)

            logger.info("Resolving wager", extra={
                "wager_id": wager.id,
                "creator": wager.creator,
                "opponent": wager.opponent,
                "start_price": wager.start_price,
                "end_price": end_price,
                "price_usd": quote.price,
            })
            receipt = await self.actions.resolve_wager(wager.id, end_price)

            reward = units_to_xpr(resolver_fee_units(wager.stake))
            await self.performance.record_resolver_earnings(reward)
            await self.db.log_decision(Decision(
                challenge_id=wager.id,
                action=DecisionAction.RESOLVE,
                price_at_decision=quote.price,
            ))

            logger.info("Wager resolved", extra={
                "wager_id": wager.id,
                "tx_id": receipt.transaction_id,
                "resolver_reward": format_asset(int(resolver_fee_units(wager.stake))),
            })
            return ResolveResult(
                challenge_id=wager.id,
                success=True,
                tx_id=receipt.transaction_id,
                resolver_reward=reward,
            )
        except (AgentError, httpx.HTTPError) as e:
            logger.error("Failed to resolve wager", extra={
                "wager_id": wager.id,
                "error": str(e),
                "error_type": type(e).__name__,
            })
            return ResolveResult(
                challenge_id=wager.id,
                success=False,
                error=str(e),
                error_type=type(e).__name__,
            )

    async def expire_one(self, wager: Wager) -> ResolveResult:
        """Cancel our own expired wager, or expire someone else's."""
        try:
            if not wager.is_expired(now_seconds()):
                raise StaleStateError(f"Wager {wager.id} is not an expired open wager", wager.id)
            if wager.creator == self.account:
                receipt = await self.actions.cancel_wager(wager.id)
            else:
                receipt = await self.actions.expire_wager(wager.id)
            logger.info("Expired wager", extra={
                "wager_id": wager.id,
                "tx_id": receipt.transaction_id,
            })
            return ResolveResult(challenge_id=wager.id, success=True, tx_id=receipt.transaction_id)
        except (AgentError, httpx.HTTPError) as e:
            logger.error("Failed to expire wager", extra={
                "wager_id": wager.id,
                "error": str(e),
                "error_type": type(e).__name__,
            })
            return ResolveResult(
                challenge_id=wager.id,
                success=False,
                error=str(e),
                error_type=type(e).__name__,
            )

    async def _run_paced(self, wagers: list[Wager], handler) -> list[ResolveResult]:
        results = []
        for i, wager in enumerate(wagers):
            results.append(await handler(wager))
            if i < len(wagers) - 1 and self.pacing_seconds > 0:
                await asyncio.sleep(self.pacing_seconds)
        return results

    async def resolve_all(self) -> list[ResolveResult]:
        resolvable = await self.book.get_resolvable()
        logger.info("Checking for resolvable wagers", extra={"found": len(resolvable)})
        results = await self._run_paced(resolvable, self.resolve_one)
        if results:
            logger.info("Resolve pass complete", extra=summarize(results))
        return results

    async def expire_all(self) -> list[ResolveResult]:
        expired = await self.book.get_expired()
        logger.info("Checking for expired wagers", extra={"found": len(expired)})
        results = await self._run_paced(expired, self.expire_one)
        if results:
            logger.info("Expire pass complete", extra=summarize(results))
        return results
