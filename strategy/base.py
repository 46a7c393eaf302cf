"""Strategy interface and the collaborators every policy is built from."""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from council.predictor import Predictor
from execution.performance import PerformanceLedger
from execution.resolver import Resolver
from execution.settlement import OutcomeRecorder
from execution.wager_book import WagerBook
from feeds.market_data import MarketDataFeed
from ledger.actions import LedgerActions
from ledger.oracle import OracleReader
from shared.config import Config
from shared.schemas import CreatePlan, MarketContext, ResolveResult, Wager
from storage.db import Database

logger = logging.getLogger(__name__)


@dataclass
class StrategyDeps:
    config: Config
    db: Database
    book: WagerBook
    oracle: OracleReader
    actions: LedgerActions
    resolver: Resolver
    performance: PerformanceLedger
    outcomes: OutcomeRecorder
    predictor: Optional[Predictor] = None
    market_feed: Optional[MarketDataFeed] = None


class BaseStrategy(ABC):
    """One tick policy. Every tick resolves and expires before anything else."""

    name = "Base"
    mode = ""

    def __init__(self, deps: StrategyDeps):
        self.deps = deps
        self.config = deps.config

    @abstractmethod
    async def tick(self) -> None:
        ...

    @abstractmethod
    async def should_create(self, context: MarketContext) -> Optional[CreatePlan]:
        ...

    @abstractmethod
    async def should_accept(self, wager: Wager, context: MarketContext) -> bool:
        ...

    async def resolve_expired(self) -> list[ResolveResult]:
        return await self.deps.resolver.resolve_all()

    async def expire_expired(self) -> list[ResolveResult]:
        return await self.deps.resolver.expire_all()
