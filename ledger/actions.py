"""Builds, signs and submits the pricebattle contract actions."""
import logging
import time

from ledger.rpc import FailoverRpcClient
from shared.clock import utcnow
from shared.constants import (
    CONTRACT_ACCOUNT,
    FEED_BTC_USD,
    STAKE_MEMO,
    TOKEN_CONTRACT,
    TRANSACTION_EXPIRE_SECONDS,
)
from shared.schemas import Direction, TransactReceipt
from shared.units import format_asset

logger = logging.getLogger(__name__)


def dry_run_receipt() -> TransactReceipt:
    """Synthetic receipt shaped like a real push_transaction response."""
    tx_id = "dry_run_" + format(int(time.time() * 1000), "x")
    return TransactReceipt(
        transaction_id=tx_id,
        processed={
            "id": tx_id,
            "block_num": 0,
            "block_time": utcnow().isoformat(),
            "receipt": None,
            "elapsed": 0,
            "net_usage": 0,
            "scheduled": False,
            "action_traces": [],
        },
    )


class LedgerActions:
    """One method per contract operation; each submits a single atomic transaction.

    Create and accept bundle the stake transfer with the contract call so
    the ledger applies both or neither. In dry-run mode nothing is sent and
    a synthetic receipt comes back instead.
    """

    def __init__(
        self,
        rpc: FailoverRpcClient,
        account: str,
        permission: str = "active",
        dry_run: bool = False,
        expire_seconds: int = TRANSACTION_EXPIRE_SECONDS,
    ):
        self.rpc = rpc
        self.account = account
        self.permission = permission
        self.dry_run = dry_run
        self.expire_seconds = expire_seconds

    @property
    def authorization(self) -> list[dict]:
        return [{"actor": self.account, "permission": self.permission}]

    def _action(self, account: str, name: str, data: dict) -> dict:
        return {
            "account": account,
            "name": name,
            "authorization": self.authorization,
            "data": data,
        }

    def _stake_transfer(self, stake_units: int) -> dict:
        return self._action(TOKEN_CONTRACT, "transfer", {
            "from": self.account,
            "to": CONTRACT_ACCOUNT,
            "quantity": format_asset(stake_units),
            "memo": STAKE_MEMO,
        })

    async def transact(self, actions: list[dict]) -> TransactReceipt:
        names = [f"{a['account']}::{a['name']}" for a in actions]

        if self.dry_run:
            logger.info("[DRY RUN] Would execute transaction", extra={"actions": names})
            return dry_run_receipt()

        try:
            result = await self.rpc.write(actions, self.expire_seconds)
        except Exception as e:
            logger.error("Transaction failed", extra={"actions": names, "error": str(e)})
            raise

        receipt = TransactReceipt.model_validate(result)
        logger.info(
            "Transaction successful",
            extra={"tx_id": receipt.transaction_id, "actions": names},
        )
        return receipt

    async def create_wager(
        self,
        stake_units: int,
        direction: Direction,
        duration: int,
        oracle_feed: int = FEED_BTC_USD,
    ) -> TransactReceipt:
        logger.info("Creating wager", extra={
            "stake": format_asset(stake_units),
            "direction": direction.label,
            "duration": duration,
        })
        return await self.transact([
            self._stake_transfer(stake_units),
            self._action(CONTRACT_ACCOUNT, "create", {
                "creator": self.account,
                "amount": format_asset(stake_units),
                "direction": int(direction),
                "oracle_index": oracle_feed,
                "duration": duration,
            }),
        ])

    async def accept_wager(self, wager_id: int, stake_units: int) -> TransactReceipt:
        """Match an open wager; the contract reads the start price from the oracle."""
        logger.info("Accepting wager", extra={
            "wager_id": wager_id,
            "stake": format_asset(stake_units),
        })
        return await self.transact([
            self._stake_transfer(stake_units),
            self._action(CONTRACT_ACCOUNT, "accept", {
                "opponent": self.account,
                "challenge_id": wager_id,
            }),
        ])

    async def cancel_wager(self, wager_id: int) -> TransactReceipt:
        """Cancel our own open wager (creator only)."""
        logger.info("Cancelling wager", extra={"wager_id": wager_id})
        return await self.transact([
            self._action(CONTRACT_ACCOUNT, "cancel", {
                "creator": self.account,
                "challenge_id": wager_id,
            }),
        ])

    async def expire_wager(self, wager_id: int) -> TransactReceipt:
        """Expire an unaccepted wager past its expiry (anyone may call)."""
        logger.info("Expiring wager", extra={"wager_id": wager_id})
        return await self.transact([
            self._action(CONTRACT_ACCOUNT, "expire", {"challenge_id": wager_id}),
        ])

    async def resolve_wager(self, wager_id: int, end_price: int) -> TransactReceipt:
        """Settle a matured wager; the resolver collects the fee.

        The contract reads the settlement price from the oracle itself;
        ``end_price`` is the price this agent observed and is only logged.
        """
        logger.info("Resolving wager", extra={"wager_id": wager_id, "end_price": end_price})
        return await self.transact([
            self._action(CONTRACT_ACCOUNT, "resolve", {
                "challenge_id": wager_id,
                "resolver": self.account,
            }),
        ])
