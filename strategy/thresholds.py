"""Policy limits for the trading strategies."""
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class PolicyLimits:
    name: str
    mode: str
    min_create_confidence: float
    min_accept_confidence: float
    min_stake_percent: float
    # None means "up to MAX_PERCENT_PER_CHALLENGE"
    max_stake_percent: Optional[float]
    min_duration: int
    max_duration: int
    create_cooldown: float  # seconds
    max_accept_stake: Optional[float] = None  # XPR
    max_price_drift_pct: Optional[float] = None
    # only create while none of our own wagers are waiting for an opponent
    wait_for_open: bool = False


CONSERVATIVE = PolicyLimits(
    name="Conservative Trader",
    mode="passive",
    min_create_confidence=75.0,
    min_accept_confidence=75.0,
    min_stake_percent=1.0,
    max_stake_percent=3.0,
    min_duration=1800,
    max_duration=14400,
    create_cooldown=1800.0,
    max_price_drift_pct=0.1,
)

ACTIVE = PolicyLimits(
    name="Active Trader",
    mode="aggressive",
    min_create_confidence=50.0,
    min_accept_confidence=50.0,
    min_stake_percent=1.0,
    max_stake_percent=None,
    # sub-30-minute wagers have a poor track record
    min_duration=1800,
    max_duration=3600,
    create_cooldown=600.0,
    max_accept_stake=250.0,
    wait_for_open=True,
)

# Price points fed to the prediction council per decision
PRICE_HISTORY_LEN = 60
