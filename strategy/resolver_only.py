"""Resolve-only policy: settles matured wagers, never trades."""
from typing import Optional

from shared.schemas import CreatePlan, MarketContext, Wager
from strategy.base import BaseStrategy


class ResolverOnlyStrategy(BaseStrategy):
    name = "Resolver"
    mode = "resolver"

    async def tick(self) -> None:
        await self.resolve_expired()
        await self.expire_expired()

    async def should_create(self, context: MarketContext) -> Optional[CreatePlan]:
        return None

    async def should_accept(self, wager: Wager, context: MarketContext) -> bool:
        return False
