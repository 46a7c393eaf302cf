"""Turns our settled wagers into performance-ledger outcomes."""
import logging

from execution.performance import PerformanceLedger
from execution.resolver import resolver_fee_units
from shared.schemas import Wager, WagerStatus
from shared.units import units_to_xpr
from storage.db import Database

logger = logging.getLogger(__name__)


class OutcomeRecorder:
    """Records each of our terminal wagers exactly once.

    The mirror row's ``outcome_recorded`` flag is claimed atomically before
    anything is written, so two overlapping ticks cannot double count.
    """

    def __init__(self, db: Database, performance: PerformanceLedger, account: str):
        self.db = db
        self.performance = performance
        self.account = account

    def _net_win(self, wager: Wager) -> float:
        # pot minus resolver fee minus our own stake
        return units_to_xpr(wager.stake * 2 - resolver_fee_units(wager.stake) - wager.stake)

    async def record_settled(self) -> dict:
        counts = {"win": 0, "loss": 0, "tie": 0, "refund": 0}

        for wager, role in await self.db.get_unrecorded_outcomes():
            if not await self.db.claim_outcome(wager.id):
                continue

            if wager.status in (WagerStatus.CANCELLED, WagerStatus.EXPIRED):
                counts["refund"] += 1
                continue

            confidence = await self.db.get_decision_confidence(wager.id)

            if wager.status == WagerStatus.TIE or not wager.winner:
                await self.performance.record_tie(confidence)
                counts["tie"] += 1
            elif wager.winner == self.account:
                await self.performance.record_win(self._net_win(wager), confidence)
                counts["win"] += 1
            else:
                await self.performance.record_loss(units_to_xpr(wager.stake), confidence)
                counts["loss"] += 1

            logger.info("Recorded wager outcome", extra={
                "wager_id": wager.id,
                "role": role,
                "status": wager.status.name,
                "winner": wager.winner,
            })

        return counts
