"""Reads aggregated prices from the on-chain oracle table."""
import logging

from ledger.rpc import FailoverRpcClient
from shared.clock import now_seconds
from shared.constants import FEED_BTC_USD, ORACLE_CONTRACT, ORACLE_TABLE
from shared.errors import OracleFeedNotFound, OracleMissingAggregate
from shared.schemas import OraclePrice
from shared.units import fixed_to_price, price_to_fixed

logger = logging.getLogger(__name__)


class OracleReader:
    """Single-feed price lookups through the failover RPC client."""

    def __init__(self, rpc: FailoverRpcClient):
        self.rpc = rpc

    async def get_price(self, feed_id: int) -> OraclePrice:
        rows = await self.rpc.get_table_rows(
            ORACLE_CONTRACT,
            ORACLE_CONTRACT,
            ORACLE_TABLE,
            lower_bound=feed_id,
            upper_bound=feed_id,
            limit=1,
        )
        if not rows:
            raise OracleFeedNotFound(f"Oracle feed {feed_id} not found", feed_id)

        aggregate = rows[0].get("aggregate") or {}
        raw = aggregate.get("d_double")
        if not raw:
            raise OracleMissingAggregate(
                f"Oracle feed {feed_id} has no aggregate value", feed_id
            )

        price = float(raw)
        logger.debug("Fetched oracle price", extra={"feed_id": feed_id, "price": price})
        return OraclePrice(price=price, timestamp=now_seconds(), feed_id=feed_id)

    async def get_btc_price(self) -> OraclePrice:
        return await self.get_price(FEED_BTC_USD)

    @staticmethod
    def to_fixed(price: float) -> int:
        return price_to_fixed(price)

    @staticmethod
    def from_fixed(value: int | str) -> float:
        return fixed_to_price(value)
