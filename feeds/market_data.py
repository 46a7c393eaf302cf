"""BTC market data and indicators from CoinGecko, cached and rate limited."""
import asyncio
import logging
import time
from typing import Optional

import httpx

from feeds.indicators import Candle, aggregate_candles, ema, momentum, rsi, sma, trend
from shared.schemas import MarketSnapshot

logger = logging.getLogger(__name__)

COINGECKO_BASE = "https://api.coingecko.com/api/v3"

CACHE_TTL = 600.0
MIN_API_INTERVAL = 300.0
REQUEST_SPACING = 2.0
MAX_RATE_LIMIT_RETRIES = 3


class MarketDataFeed:
    """Fetches current BTC data plus hourly candles and derives indicators.

    Results are cached for ten minutes, the API is not called again within
    five minutes of the last fetch while a cache exists, and on failure the
    stale cache is served when there is one.
    """

    def __init__(
        self,
        api_key: str = "",
        transport: Optional[httpx.AsyncBaseTransport] = None,
        request_spacing: float = REQUEST_SPACING,
    ):
        self.api_key = api_key
        self.transport = transport
        self.request_spacing = request_spacing
        self._cache: Optional[MarketSnapshot] = None
        self._cache_expiry = 0.0
        self._last_api_call = 0.0

    @property
    def _headers(self) -> dict:
        return {"x-cg-demo-api-key": self.api_key} if self.api_key else {}

    async def get_snapshot(self) -> MarketSnapshot:
        now = time.monotonic()
        if self._cache and now < self._cache_expiry:
            return self._cache
        if self._cache and now - self._last_api_call < MIN_API_INTERVAL:
            logger.debug("Using cached market data to avoid rate limiting")
            return self._cache

        try:
            async with httpx.AsyncClient(
                timeout=30.0, headers=self._headers, transport=self.transport
            ) as client:
                current = await self._fetch_current(client)
                await asyncio.sleep(self.request_spacing)
                candles = await self._fetch_hourly_candles(client)
            self._last_api_call = time.monotonic()
        except (httpx.HTTPError, KeyError, TypeError, ValueError) as e:
            logger.error(f"Failed to fetch market data: {e}")
            if self._cache:
                logger.warning("Using stale cached market data")
                return self._cache
            raise

        snapshot = self._build_snapshot(current, candles)
        self._cache = snapshot
        self._cache_expiry = time.monotonic() + CACHE_TTL
        logger.debug("Fetched market data", extra={
            "price": snapshot.price,
            "change_1h": snapshot.change_1h,
            "rsi14": round(snapshot.rsi14, 1),
            "momentum": snapshot.momentum,
        })
        return snapshot

    async def _get(self, client: httpx.AsyncClient, path: str, params: dict):
        for attempt in range(1, MAX_RATE_LIMIT_RETRIES + 1):
            resp = await client.get(f"{COINGECKO_BASE}{path}", params=params)
            if resp.status_code == 429:
                retry_after = int(resp.headers.get("Retry-After", "60"))
                logger.warning("CoinGecko rate limited, waiting", extra={
                    "retry_after": retry_after,
                    "attempt": attempt,
                })
                await asyncio.sleep(retry_after)
                continue
            resp.raise_for_status()
            return resp.json()
        raise httpx.HTTPError("CoinGecko rate limit exceeded after retries")

    async def _fetch_current(self, client: httpx.AsyncClient) -> dict:
        data = await self._get(client, "/coins/bitcoin", {
            "localization": "false",
            "tickers": "false",
            "community_data": "false",
            "developer_data": "false",
            "sparkline": "false",
        })
        market = data["market_data"]
        return {
            "price": market["current_price"]["usd"],
            "high_24h": market["high_24h"]["usd"],
            "low_24h": market["low_24h"]["usd"],
            "volume_24h": market["total_volume"]["usd"],
            "change_1h": (market.get("price_change_percentage_1h_in_currency") or {}).get("usd") or 0.0,
            "change_24h": market.get("price_change_percentage_24h") or 0.0,
            "change_7d": market.get("price_change_percentage_7d") or 0.0,
            "change_30d": market.get("price_change_percentage_30d") or 0.0,
        }

    async def _fetch_hourly_candles(self, client: httpx.AsyncClient) -> list[Candle]:
        # days=1 yields 30-minute candles; pair them into hourly ones
        rows = await self._get(client, "/coins/bitcoin/ohlc", {"vs_currency": "usd", "days": 1})
        candles = [Candle(int(r[0]), r[1], r[2], r[3], r[4]) for r in rows]
        return aggregate_candles(candles, 2)

    @staticmethod
    def _build_snapshot(current: dict, candles: list[Candle]) -> MarketSnapshot:
        price = current["price"]
        high, low = current["high_24h"], current["low_24h"]
        closes = [c.close for c in candles]

        sma20 = sma(closes, 20)
        ema12 = ema(closes, 12)
        ema26 = ema(closes, 26)
        rsi14 = rsi(closes, 14)

        return MarketSnapshot(
            **current,
            volatility_24h=(high - low) / price * 100 if price else 0.0,
            price_position=(price - low) / (high - low) * 100 if high > low else 50.0,
            sma20=sma20,
            sma50=sma(closes, 50),
            ema12=ema12,
            ema26=ema26,
            rsi14=rsi14,
            trend_1h=trend(candles[-6:]),
            trend_24h=trend(candles),
            momentum=momentum(price, sma20, ema12, ema26, rsi14),
        )
