"""Tests for ledger.signer."""
import asyncio
from unittest.mock import AsyncMock

import aiohttp
import base58
import pytest

from ledger.signer import AioeosPusher, to_legacy_wif
from shared.errors import TransportError

PVT_KEY = "PVT_K1_2bfGi9rYsXQSXXTvJbDAPhHLQUojjaNLomdm3cEJ1XTzMqUt3V"


def test_legacy_wif_passes_through():
    wif = "5KQwrPbwdL6PhXujxW37FSSQZ1JiwsST4cqQzDeyXtP79zkvFD3"
    assert to_legacy_wif(wif) == wif


def test_k1_key_converted_to_wif():
    wif = to_legacy_wif(PVT_KEY)
    payload = base58.b58decode_check(wif)
    assert payload[0] == 0x80
    assert payload[1:] == base58.b58decode(PVT_KEY[len("PVT_K1_"):])[:32]
    assert wif.startswith("5")


def _pusher(side_effect):
    pusher = AioeosPusher.__new__(AioeosPusher)
    pusher._push = AsyncMock(side_effect=side_effect)
    return pusher


@pytest.mark.asyncio
async def test_push_network_failures_become_transport_errors():
    for error in (aiohttp.ClientConnectionError("refused"), asyncio.TimeoutError()):
        with pytest.raises(TransportError) as exc:
            await _pusher(error).push("https://a.example", [], 300)
        assert exc.value.endpoint == "https://a.example"


@pytest.mark.asyncio
async def test_push_other_errors_propagate():
    with pytest.raises(KeyError):
        await _pusher(KeyError("block_num")).push("https://a.example", [], 300)
