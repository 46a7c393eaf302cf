"""Tests for feeds.market_data."""
import httpx
import pytest

from feeds import market_data
from feeds.market_data import MarketDataFeed

COIN = {
    "market_data": {
        "current_price": {"usd": 95_000.0},
        "high_24h": {"usd": 96_000.0},
        "low_24h": {"usd": 94_000.0},
        "total_volume": {"usd": 3.2e10},
        "price_change_percentage_1h_in_currency": {"usd": 0.4},
        "price_change_percentage_24h": 1.2,
        "price_change_percentage_7d": -2.0,
        "price_change_percentage_30d": None,
    }
}
OHLC = [[1_700_000_000_000 + i * 1_800_000, 94_000 + i, 94_050 + i, 93_950 + i, 94_010 + i] for i in range(48)]


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    async def fake_sleep(seconds):
        return None

    monkeypatch.setattr(market_data.asyncio, "sleep", fake_sleep)


def _transport(calls, fail=False, rate_limited=0):
    state = {"limited": rate_limited}

    def handler(request):
        calls.append(request.url.path)
        if fail:
            return httpx.Response(500)
        if state["limited"] > 0:
            state["limited"] -= 1
            return httpx.Response(429, headers={"Retry-After": "1"})
        if request.url.path.endswith("/ohlc"):
            return httpx.Response(200, json=OHLC)
        return httpx.Response(200, json=COIN)

    return httpx.MockTransport(handler)


@pytest.mark.asyncio
async def test_snapshot_built_from_both_endpoints():
    calls = []
    feed = MarketDataFeed(transport=_transport(calls), request_spacing=0)
    snap = await feed.get_snapshot()

    assert calls == ["/api/v3/coins/bitcoin", "/api/v3/coins/bitcoin/ohlc"]
    assert snap.price == 95_000.0
    assert snap.change_1h == 0.4
    assert snap.change_30d == 0.0
    assert snap.volatility_24h == pytest.approx(2000 / 95_000 * 100)
    assert snap.price_position == pytest.approx(50.0)
    assert snap.sma20 > 0
    assert snap.trend_24h == "neutral"


@pytest.mark.asyncio
async def test_snapshot_is_cached():
    calls = []
    feed = MarketDataFeed(transport=_transport(calls), request_spacing=0)
    first = await feed.get_snapshot()
    second = await feed.get_snapshot()
    assert first is second
    assert len(calls) == 2


@pytest.mark.asyncio
async def test_stale_cache_served_on_failure():
    calls = []
    feed = MarketDataFeed(transport=_transport(calls), request_spacing=0)
    cached = await feed.get_snapshot()

    feed.transport = _transport(calls, fail=True)
    feed._cache_expiry = 0.0
    feed._last_api_call = 0.0
    assert await feed.get_snapshot() is cached


@pytest.mark.asyncio
async def test_failure_without_cache_raises():
    feed = MarketDataFeed(transport=_transport([], fail=True), request_spacing=0)
    with pytest.raises(httpx.HTTPError):
        await feed.get_snapshot()


@pytest.mark.asyncio
async def test_rate_limit_is_retried():
    calls = []
    feed = MarketDataFeed(transport=_transport(calls, rate_limited=2), request_spacing=0)
    snap = await feed.get_snapshot()
    assert snap.price == 95_000.0
    assert calls.count("/api/v3/coins/bitcoin") == 3


def test_api_key_header():
    assert MarketDataFeed(api_key="k")._headers == {"x-cg-demo-api-key": "k"}
    assert MarketDataFeed()._headers == {}
