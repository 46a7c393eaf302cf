"""Stake sizing for wager creation."""
import math

from shared.constants import MIN_STAKE, STAKE_LOT
from shared.errors import InsufficientFundsError


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(value, high))


def available_balance(balance: float, reserve: float) -> float:
    return max(0.0, balance - reserve)


def compute_stake(balance: float, reserve: float, stake_percent: float) -> int:
    """Whole-XPR stake for a new wager.

    ``stake_percent`` of the balance above the reserve, floored to the lot
    size and raised to the minimum stake. Raises InsufficientFundsError when
    the balance above the reserve cannot cover the minimum stake.
    """
    available = available_balance(balance, reserve)
    if available < MIN_STAKE:
        raise InsufficientFundsError(available, MIN_STAKE)
    stake = math.floor(available * stake_percent / 100)
    stake = (stake // STAKE_LOT) * STAKE_LOT
    return max(stake, MIN_STAKE)
