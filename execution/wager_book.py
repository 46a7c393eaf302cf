"""Mirrors the pricebattle wager table and answers lifecycle queries."""
import logging
from typing import Optional

from ledger.rpc import FailoverRpcClient
from shared.clock import now_seconds
from shared.constants import CONTRACT_ACCOUNT, TOKEN_CONTRACT, TOKEN_SYMBOL, WAGER_PAGE_SIZE
from shared.schemas import ContractConfig, Wager, WagerStatus
from shared.units import parse_amount, units_to_xpr
from storage.db import Database

logger = logging.getLogger(__name__)

WAGER_TABLE = "challenges"
CONFIG_TABLE = "config"


# Pure filters: no remote calls, no side effects.

def open_wagers(wagers: list[Wager]) -> list[Wager]:
    return [w for w in wagers if w.status == WagerStatus.OPEN]


def active_wagers(wagers: list[Wager]) -> list[Wager]:
    return [w for w in wagers if w.status == WagerStatus.ACTIVE]


def resolvable_wagers(wagers: list[Wager], now: int) -> list[Wager]:
    """Active wagers whose duration has elapsed."""
    return [w for w in active_wagers(wagers) if w.is_resolvable(now)]


def expired_wagers(wagers: list[Wager], now: int) -> list[Wager]:
    """Open (never accepted) wagers past their expiry."""
    return [w for w in open_wagers(wagers) if w.is_expired(now)]


def our_wagers(wagers: list[Wager], account: str) -> list[Wager]:
    return [w for w in wagers if w.role_of(account) is not None]


def acceptable_wagers(wagers: list[Wager], account: str) -> list[Wager]:
    return [w for w in open_wagers(wagers) if w.creator != account]


def pending_count(wagers: list[Wager], account: str) -> int:
    """Our wagers still tying up stake (open or active)."""
    return sum(
        1 for w in our_wagers(wagers, account)
        if w.status in (WagerStatus.OPEN, WagerStatus.ACTIVE)
    )


class WagerBook:
    """Sync-then-filter access to the ledger's wager table.

    Every ``get_*`` query pulls a fresh page from the ledger and refreshes the
    local mirror before filtering, so each call is consistent with one pull.
    """

    def __init__(self, rpc: FailoverRpcClient, db: Database, account: str):
        self.rpc = rpc
        self.db = db
        self.account = account

    async def fetch_all(self, limit: int = WAGER_PAGE_SIZE) -> list[Wager]:
        """One page of wagers, most recent first. Rows that fail to parse are skipped."""
        rows = await self.rpc.get_table_rows(
            CONTRACT_ACCOUNT, CONTRACT_ACCOUNT, WAGER_TABLE, limit=limit, reverse=True
        )
        wagers = []
        for row in rows:
            try:
                wagers.append(Wager.model_validate(row))
            except ValueError as e:
                logger.warning("Skipping malformed wager row", extra={
                    "row_id": row.get("id"),
                    "error": str(e),
                })
        return wagers

    async def sync_all(self) -> list[Wager]:
        """Pull the latest page and upsert it into the local mirror."""
        wagers = await self.fetch_all()
        rows = []
        for wager in wagers:
            role = wager.role_of(self.account)
            rows.append((wager, role.value if role else None))
        await self.db.upsert_wagers(rows)
        logger.debug("Synced wagers", extra={"count": len(wagers)})
        return wagers

    async def get_open(self) -> list[Wager]:
        return open_wagers(await self.sync_all())

    async def get_active(self) -> list[Wager]:
        return active_wagers(await self.sync_all())

    async def get_resolvable(self) -> list[Wager]:
        return resolvable_wagers(await self.sync_all(), now_seconds())

    async def get_expired(self) -> list[Wager]:
        return expired_wagers(await self.sync_all(), now_seconds())

    async def get_ours(self) -> list[Wager]:
        return our_wagers(await self.sync_all(), self.account)

    async def get_acceptable(self) -> list[Wager]:
        return acceptable_wagers(await self.sync_all(), self.account)

    async def count_our_pending(self) -> int:
        return pending_count(await self.sync_all(), self.account)

    async def get_wager(self, wager_id: int) -> Optional[Wager]:
        """Live lookup of a single wager by id."""
        rows = await self.rpc.get_table_rows(
            CONTRACT_ACCOUNT, CONTRACT_ACCOUNT, WAGER_TABLE,
            lower_bound=wager_id, upper_bound=wager_id, limit=1,
        )
        if not rows:
            return None
        wager = Wager.model_validate(rows[0])
        return wager if wager.id == wager_id else None

    async def get_contract_config(self) -> Optional[ContractConfig]:
        rows = await self.rpc.get_table_rows(
            CONTRACT_ACCOUNT, CONTRACT_ACCOUNT, CONFIG_TABLE, limit=1
        )
        return ContractConfig.model_validate(rows[0]) if rows else None

    async def is_paused(self) -> bool:
        config = await self.get_contract_config()
        return config.paused if config else False

    async def get_balance(self) -> float:
        """Liquid token balance in XPR."""
        balances = await self.rpc.get_currency_balance(TOKEN_CONTRACT, self.account, TOKEN_SYMBOL)
        if not balances:
            return 0.0
        return units_to_xpr(parse_amount(balances[0]))
