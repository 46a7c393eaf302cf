"""Prompt templates for the prediction council."""
from datetime import datetime, timezone

from shared.clock import now_seconds
from shared.schemas import MarketContext, PricePoint, Wager
from shared.units import format_asset, format_duration, format_usd

PREDICTION_PROMPT = """You are a BTC price movement analyst for a price prediction game on XPR Network.

CURRENT MARKET DATA:
- Current BTC Price: {price}
{market_section}
RECENT PRICE HISTORY (last {history_len} data points, 1-min intervals):
{history}

BOT PERFORMANCE (cumulative):
- Wins: {wins}
- Losses: {losses}
- Ties: {ties}
- Win Rate: {win_rate:.1f}%

AVAILABLE DURATIONS:
- 30 minutes (1800s) - PREFERRED: Good balance of time for price movement
- 1 hour (3600s) - PREFERRED: Standard, for established trends
- 4 hours (14400s) - Long term, for major moves
- 24 hours (86400s) - Very long term

ANALYSIS GUIDELINES:
1. Use RSI to identify overbought (>70) or oversold (<30) conditions
2. Check if price is above/below key moving averages (SMA20, SMA50)
3. Look at MACD signal (EMA12 vs EMA26) for momentum
4. Consider the 1h and 24h trend alignment
5. PREFER 30-60 minute durations

TASK:
Predict whether BTC will go UP or DOWN from the current price.
Only recommend trading when multiple signals align. Say NEUTRAL if signals are mixed.

IMPORTANT: Respond with ONLY a valid JSON object, no other text:
{{
  "direction": "UP" | "DOWN" | "NEUTRAL",
  "confidence": <0-100>,
  "reasoning": "<2-3 sentences>",
  "duration_seconds": <1800, 3600, 14400 or 86400>,
  "stake_percent": <1-10, percentage of available funds to risk>
}}
"""

ACCEPT_PROMPT = """You are evaluating whether to accept a price battle challenge on XPR Network.

CHALLENGE DETAILS:
- Challenge ID: {wager_id}
- Creator: {creator}
- Creator bets: {creator_direction} (BTC will go {creator_direction_lower})
- If you accept, you bet: {our_direction} (BTC will go {our_direction_lower})
- Stake Amount: {stake} each
- Battle Duration: {duration}
- Time Until Expiry: {time_left}

CURRENT MARKET DATA:
- Current BTC Price: {price}
{change_line}
RECENT PRICE HISTORY (last {history_len} data points):
{history}

TASK:
Decide if you should accept this challenge. You would be betting that BTC goes {our_direction}.
Only accept if you have a genuine edge against the creator's prediction.

IMPORTANT: Respond with ONLY a valid JSON object, no other text:
{{
  "accept": true | false,
  "confidence": <0-100>,
  "reasoning": "<brief 1-2 sentence explanation>"
}}
"""


def _history_lines(history: list[PricePoint]) -> str:
    return "\n".join(
        f"  {datetime.fromtimestamp(p.timestamp, tz=timezone.utc):%H:%M:%S}: {format_usd(p.price)}"
        for p in history
    )


def _signed(value: float) -> str:
    return f"{value:+.2f}%"


def _market_section(context: MarketContext) -> str:
    m = context.market
    if m is None:
        return ""
    price = context.current_price
    if m.rsi14 > 70:
        rsi_note = "(OVERBOUGHT)"
    elif m.rsi14 < 30:
        rsi_note = "(OVERSOLD)"
    else:
        rsi_note = "(NEUTRAL)"
    macd = "BULLISH (EMA12 > EMA26)" if m.ema12 > m.ema26 else "BEARISH (EMA12 < EMA26)"
    lines = [
        f"- 24h High: {format_usd(m.high_24h)}",
        f"- 24h Low: {format_usd(m.low_24h)}",
        f"- 1h Change: {_signed(m.change_1h)}",
        f"- 24h Change: {_signed(m.change_24h)}",
        f"- 7d Change: {_signed(m.change_7d)}",
        f"- 30d Change: {_signed(m.change_30d)}",
        f"- 24h Volatility: {m.volatility_24h:.2f}%",
        f"- Price Position in Range: {m.price_position:.0f}% (0%=at low, 100%=at high)",
        "",
        "TECHNICAL INDICATORS:",
        f"- SMA(20): {format_usd(m.sma20)} {'(price above)' if price > m.sma20 else '(price below)'}",
        f"- SMA(50): {format_usd(m.sma50)} {'(price above)' if price > m.sma50 else '(price below)'}",
        f"- EMA(12): {format_usd(m.ema12)}",
        f"- EMA(26): {format_usd(m.ema26)}",
        f"- MACD Signal: {macd}",
        f"- RSI(14): {m.rsi14:.1f} {rsi_note}",
        f"- 1h Trend: {m.trend_1h.upper()}",
        f"- 24h Trend: {m.trend_24h.upper()}",
        f"- Momentum: {m.momentum.upper().replace('_', ' ')}",
    ]
    return "\n".join(lines) + "\n"


def build_prediction_prompt(context: MarketContext) -> str:
    history = context.price_history[-30:]
    perf = context.performance
    return PREDICTION_PROMPT.format(
        price=format_usd(context.current_price),
        market_section=_market_section(context),
        history_len=len(history),
        history=_history_lines(history),
        wins=perf.wins,
        losses=perf.losses,
        ties=perf.ties,
        win_rate=perf.win_rate,
    )


def build_accept_prompt(wager: Wager, context: MarketContext) -> str:
    history = context.price_history[-15:]
    creator_direction = wager.direction.label
    our_direction = wager.direction.opposite().label
    time_left = (wager.expires_at - now_seconds()) if wager.expires_at else -1
    change_line = ""
    if context.market is not None:
        change_line = f"- 1h Change: {_signed(context.market.change_1h)}\n"
    return ACCEPT_PROMPT.format(
        wager_id=wager.id,
        creator=wager.creator,
        creator_direction=creator_direction,
        creator_direction_lower=creator_direction.lower(),
        our_direction=our_direction,
        our_direction_lower=our_direction.lower(),
        stake=format_asset(wager.stake),
        duration=format_duration(wager.duration),
        time_left=format_duration(time_left) if time_left > 0 else "Expired",
        price=format_usd(context.current_price),
        change_line=change_line,
        history_len=len(history),
        history=_history_lines(history),
    )
