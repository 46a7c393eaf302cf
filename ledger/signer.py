"""Transaction signing and push via aioeos."""
import asyncio
import logging
from datetime import datetime, timedelta

import aiohttp
import base58
from aioeos import EosAccount, EosJsonRpc, types
from aioeos.exceptions import EosRpcException

from shared.config import PRIVATE_KEY_PREFIX
from shared.errors import TransportError

logger = logging.getLogger(__name__)


def to_legacy_wif(private_key: str) -> str:
    """Convert a PVT_K1_ key to the legacy WIF format aioeos expects.

    PVT_K1_ encodes base58(key32 + ripemd160 checksum); WIF is
    base58check(0x80 + key32). The K1 checksum is not re-verified here.
    Keys already in WIF format pass through unchanged.
    """
    if not private_key.startswith(PRIVATE_KEY_PREFIX):
        return private_key
    raw = base58.b58decode(private_key[len(PRIVATE_KEY_PREFIX):])[:32]
    return base58.b58encode_check(b"\x80" + raw).decode()


class AioeosPusher:
    """Signs an action bundle with the agent key and pushes it to an endpoint."""

    def __init__(self, account: str, private_key: str):
        self.account = EosAccount(name=account, private_key=to_legacy_wif(private_key))

    def _to_action(self, action: dict) -> types.EosAction:
        return types.EosAction(
            account=action["account"],
            name=action["name"],
            authorization=[
                self.account.authorization(auth["permission"])
                for auth in action["authorization"]
            ],
            data=action["data"],
        )

    async def push(self, endpoint: str, actions: list[dict], expire_seconds: int) -> dict:
        """Sign and push; node rejections and network failures raise TransportError."""
        try:
            return await self._push(endpoint, actions, expire_seconds)
        except EosRpcException as e:
            raise TransportError(f"{endpoint} rejected transaction: {e}", endpoint=endpoint) from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransportError(f"{endpoint} unreachable: {e}", endpoint=endpoint) from e

    async def _push(self, endpoint: str, actions: list[dict], expire_seconds: int) -> dict:
        rpc = EosJsonRpc(url=endpoint)
        block = await rpc.get_head_block()
        transaction = types.EosTransaction(
            expiration=datetime.now() + timedelta(seconds=expire_seconds),
            ref_block_num=block["block_num"] & 65535,
            ref_block_prefix=block["ref_block_prefix"],
            actions=[self._to_action(a) for a in actions],
        )
        logger.debug("Pushing transaction", extra={
            "endpoint": endpoint,
            "actions": [f"{a['account']}::{a['name']}" for a in actions],
        })
        return await rpc.sign_and_push_transaction(transaction, keys=[self.account.key])
