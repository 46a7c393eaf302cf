"""Technical indicators over candle close prices."""
from dataclasses import dataclass


@dataclass
class Candle:
    timestamp: int  # ms
    open: float
    high: float
    low: float
    close: float


def aggregate_candles(candles: list[Candle], factor: int) -> list[Candle]:
    """Merge every ``factor`` consecutive candles into one."""
    result = []
    for i in range(0, len(candles), factor):
        group = candles[i:i + factor]
        if not group:
            continue
        result.append(Candle(
            timestamp=group[0].timestamp,
            open=group[0].open,
            high=max(c.high for c in group),
            low=min(c.low for c in group),
            close=group[-1].close,
        ))
    return result


def sma(prices: list[float], period: int) -> float:
    """Simple moving average; the last price when history is too short."""
    if not prices:
        return 0.0
    if len(prices) < period:
        return prices[-1]
    window = prices[-period:]
    return sum(window) / period


def ema(prices: list[float], period: int) -> float:
    """Exponential moving average seeded with the SMA of the first ``period`` prices."""
    if not prices:
        return 0.0
    if len(prices) < period:
        return sum(prices) / len(prices)
    multiplier = 2 / (period + 1)
    value = sum(prices[:period]) / period
    for price in prices[period:]:
        value = (price - value) * multiplier + value
    return value


def rsi(prices: list[float], period: int = 14) -> float:
    """Relative strength index over the last ``period`` changes (50 if too short)."""
    if len(prices) < period + 1:
        return 50.0
    changes = [b - a for a, b in zip(prices, prices[1:])][-period:]
    gains = sum(c for c in changes if c > 0)
    losses = sum(-c for c in changes if c < 0)
    avg_gain = gains / period
    avg_loss = losses / period
    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return 100 - (100 / (1 + rs))


def trend(candles: list[Candle]) -> str:
    """bullish/bearish when net change exceeds 0.5% and candle colour agrees."""
    if len(candles) < 2:
        return "neutral"
    first, last = candles[0], candles[-1]
    change = (last.close - first.open) / first.open * 100
    bullish = sum(1 for c in candles if c.close > c.open)
    bearish = sum(1 for c in candles if c.close < c.open)
    if change > 0.5 and bullish > bearish:
        return "bullish"
    if change < -0.5 and bearish > bullish:
        return "bearish"
    return "neutral"


def momentum(price: float, sma20: float, ema12: float, ema26: float, rsi14: float) -> str:
    """Score price vs SMA20, EMA crossover and RSI into a five-level label."""
    score = 0

    if price > sma20 * 1.02:
        score += 2
    elif price > sma20:
        score += 1
    elif price < sma20 * 0.98:
        score -= 2
    elif price < sma20:
        score -= 1

    if ema12 > ema26 * 1.01:
        score += 2
    elif ema12 > ema26:
        score += 1
    elif ema12 < ema26 * 0.99:
        score -= 2
    elif ema12 < ema26:
        score -= 1

    # extremes still count as momentum, just weaker
    if rsi14 > 70:
        score += 1
    elif rsi14 > 60:
        score += 2
    elif rsi14 > 50:
        score += 1
    elif rsi14 < 30:
        score -= 1
    elif rsi14 < 40:
        score -= 2
    elif rsi14 < 50:
        score -= 1

    if score >= 4:
        return "strong_up"
    if score >= 2:
        return "up"
    if score <= -4:
        return "strong_down"
    if score <= -2:
        return "down"
    return "neutral"
