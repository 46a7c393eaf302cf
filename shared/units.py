"""Conversions between display values and ledger fixed-point integers."""
from decimal import Decimal, ROUND_FLOOR, ROUND_HALF_UP

from shared.constants import (
    ORACLE_MULTIPLIER,
    TOKEN_DECIMALS,
    TOKEN_MULTIPLIER,
    TOKEN_SYMBOL,
)


def price_to_fixed(price: float) -> int:
    """Convert a price to the oracle's 8-decimal integer encoding.

    Rounds to the nearest integer (halves away from zero), e.g.
    95300.5 -> 9530050000000.
    """
    scaled = Decimal(repr(price)) * ORACLE_MULTIPLIER
    return int(scaled.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def fixed_to_price(value: int | str) -> float:
    """Inverse of price_to_fixed: 9530050000000 -> 95300.5."""
    return float(Decimal(int(value)) / ORACLE_MULTIPLIER)


def format_amount(units: int | str) -> str:
    """Token units to a 4-decimal string: 10000 -> '1.0000'."""
    return f"{Decimal(int(units)) / TOKEN_MULTIPLIER:.{TOKEN_DECIMALS}f}"


def format_asset(units: int | str) -> str:
    """Token units to an asset string: 10000 -> '1.0000 XPR'."""
    return f"{format_amount(units)} {TOKEN_SYMBOL}"


def parse_amount(amount: str | float) -> int:
    """Parse '1.0000', '1.0000 XPR' or 1.0 into token units (floored)."""
    text = str(amount).strip().split(" ")[0]
    return int((Decimal(text) * TOKEN_MULTIPLIER).to_integral_value(rounding=ROUND_FLOOR))


def units_to_xpr(units: int | float) -> float:
    return units / TOKEN_MULTIPLIER


def percent_change(old: float, new: float) -> float:
    if old == 0:
        return 0.0
    return (new - old) / old * 100


def format_usd(price: float) -> str:
    return f"${price:,.2f}"


def format_duration(seconds: int) -> str:
    """Human readable duration, e.g. 5400 -> '1h 30m'."""
    if seconds < 0:
        return "Ended"
    if seconds < 60:
        return f"{seconds}s"
    if seconds < 3600:
        mins, secs = divmod(seconds, 60)
        return f"{mins}m {secs}s" if secs else f"{mins}m"
    if seconds < 86400:
        hours, rem = divmod(seconds, 3600)
        mins = rem // 60
        return f"{hours}h {mins}m" if mins else f"{hours}h"
    days, rem = divmod(seconds, 86400)
    hours = rem // 3600
    return f"{days}d {hours}h" if hours else f"{days}d"
