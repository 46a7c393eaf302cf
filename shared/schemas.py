"""Pydantic models for all data flowing through the agent."""
from datetime import datetime
from enum import Enum, IntEnum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator

from shared.clock import utcnow
from shared.constants import FEED_BTC_USD
from shared.units import parse_amount


class WagerStatus(IntEnum):
    OPEN = 0
    ACTIVE = 1
    RESOLVED = 2
    CANCELLED = 3
    EXPIRED = 4
    TIE = 5

    @property
    def is_terminal(self) -> bool:
        return self not in (WagerStatus.OPEN, WagerStatus.ACTIVE)


class Direction(IntEnum):
    UP = 1
    DOWN = 2

    @property
    def label(self) -> str:
        return self.name

    def opposite(self) -> "Direction":
        return Direction.DOWN if self == Direction.UP else Direction.UP


class WagerRole(str, Enum):
    CREATOR = "creator"
    OPPONENT = "opponent"


class Wager(BaseModel):
    """A wager row mirrored from the pricebattle `challenges` table.

    Accepts the ledger's field names (`amount`, `oracle_index`) as aliases.
    Prices are 8-decimal fixed-point integers, stake is in token units.
    """
    model_config = ConfigDict(populate_by_name=True)

    id: int
    creator: str
    opponent: Optional[str] = None
    stake: int = Field(alias="amount")
    direction: Direction
    oracle_feed: int = Field(default=FEED_BTC_USD, alias="oracle_index")
    duration: int
    start_price: Optional[int] = None
    end_price: Optional[int] = None
    created_at: int
    started_at: Optional[int] = None
    expires_at: Optional[int] = None
    status: WagerStatus
    winner: Optional[str] = None

    @field_validator("opponent", "winner", mode="before")
    @classmethod
    def _blank_name(cls, v: Any) -> Any:
        if v in ("", None):
            return None
        return v

    @field_validator("start_price", "end_price", "started_at", "expires_at", mode="before")
    @classmethod
    def _unset_number(cls, v: Any) -> Any:
        if v in ("", None, 0, "0"):
            return None
        return int(v)

    @field_validator("stake", mode="before")
    @classmethod
    def _parse_stake(cls, v: Any) -> Any:
        if isinstance(v, str) and " " in v.strip():
            return parse_amount(v)
        return int(v)

    @property
    def ends_at(self) -> Optional[int]:
        if self.started_at is None:
            return None
        return self.started_at + self.duration

    def is_resolvable(self, now: int) -> bool:
        return (
            self.status == WagerStatus.ACTIVE
            and self.ends_at is not None
            and self.ends_at <= now
        )

    def is_expired(self, now: int) -> bool:
        return (
            self.status == WagerStatus.OPEN
            and self.expires_at is not None
            and self.expires_at <= now
        )

    def role_of(self, account: str) -> Optional[WagerRole]:
        if self.creator == account:
            return WagerRole.CREATOR
        if self.opponent == account:
            return WagerRole.OPPONENT
        return None


class DecisionAction(str, Enum):
    ANALYZE_CREATE = "analyze_create"
    CREATE = "create"
    ACCEPT = "accept"
    SKIP = "skip"
    RESOLVE = "resolve"


def confidence_bucket(confidence: Optional[float]) -> Optional[str]:
    """Map a 0-100 confidence to its performance bucket."""
    if confidence is None:
        return None
    if confidence < 60:
        return "low"
    if confidence < 75:
        return "medium"
    if confidence < 90:
        return "high"
    return "very_high"


CONFIDENCE_BUCKETS = ("low", "medium", "high", "very_high")


class Decision(BaseModel):
    """Append-only record of one decision point."""
    id: Optional[int] = None
    challenge_id: Optional[int] = None
    action: DecisionAction
    direction: Optional[str] = None
    confidence: Optional[float] = Field(default=None, ge=0.0, le=100.0)
    confidence_bucket: Optional[str] = None
    reasoning: str = ""
    ai_provider: Optional[str] = None
    ai_model: Optional[str] = None
    price_at_decision: Optional[float] = None
    created_at: datetime = Field(default_factory=utcnow)

    @model_validator(mode="after")
    def _derive_bucket(self) -> "Decision":
        self.confidence_bucket = confidence_bucket(self.confidence)
        return self


class PerformanceStats(BaseModel):
    wins: int = 0
    losses: int = 0
    ties: int = 0
    total_won: float = 0.0
    total_lost: float = 0.0
    resolver_earnings: float = 0.0
    current_streak: int = 0
    best_win_streak: int = 0
    worst_loss_streak: int = 0

    @computed_field
    @property
    def win_rate(self) -> float:
        total = self.wins + self.losses + self.ties
        return self.wins / total * 100 if total > 0 else 0.0

    @property
    def net_pnl(self) -> float:
        return self.total_won - self.total_lost


class DailyPerformance(PerformanceStats):
    date: str


class TotalPerformance(PerformanceStats):
    pass


class ConfidencePerformance(BaseModel):
    bucket: str
    wins: int = 0
    losses: int = 0
    ties: int = 0
    total_won: float = 0.0
    total_lost: float = 0.0

    @computed_field
    @property
    def win_rate(self) -> float:
        total = self.wins + self.losses + self.ties
        return self.wins / total * 100 if total > 0 else 0.0


class PricePoint(BaseModel):
    price: float
    timestamp: int


class OraclePrice(BaseModel):
    price: float
    timestamp: int
    feed_id: int


class TransactReceipt(BaseModel):
    """Result of a pushed (or dry-run) transaction."""
    model_config = ConfigDict(extra="allow")

    transaction_id: str
    processed: dict = Field(default_factory=dict)


class ResolveResult(BaseModel):
    challenge_id: int
    success: bool
    tx_id: Optional[str] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    resolver_reward: Optional[float] = None


class ContractConfig(BaseModel):
    """The pricebattle `config` table row."""
    model_config = ConfigDict(extra="ignore")

    paused: bool = False
    fee_percent: int = 0
    resolver_percent: int = 0
    min_stake: str = ""
    max_stake: str = ""
    min_duration: int = 0
    max_duration: int = 0
    challenge_expiry: int = 0

    @field_validator("paused", mode="before")
    @classmethod
    def _int_bool(cls, v: Any) -> Any:
        if isinstance(v, int):
            return bool(v)
        return v


class PredictedDirection(str, Enum):
    UP = "UP"
    DOWN = "DOWN"
    NEUTRAL = "NEUTRAL"


class PredictionResult(BaseModel):
    """Creation recommendation from the prediction council."""
    direction: PredictedDirection
    confidence: float = Field(ge=0.0, le=100.0)
    reasoning: str = ""
    duration_seconds: int = 3600
    stake_percent: float = 3.0
    model: str = ""
    latency_ms: float = 0.0


class AcceptAnalysis(BaseModel):
    """Accept/reject judgment for one open wager."""
    accept: bool
    confidence: float = Field(ge=0.0, le=100.0)
    reasoning: str = ""
    model: str = ""
    latency_ms: float = 0.0


class CreatePlan(BaseModel):
    """A creation decision that cleared the policy gate."""
    direction: Direction
    duration: int
    stake_percent: float
    confidence: float
    reasoning: str = ""


class MarketSnapshot(BaseModel):
    """Indicator bundle from the market data feed."""
    price: float
    high_24h: float = 0.0
    low_24h: float = 0.0
    volume_24h: float = 0.0
    change_1h: float = 0.0
    change_24h: float = 0.0
    change_7d: float = 0.0
    change_30d: float = 0.0
    volatility_24h: float = 0.0
    price_position: float = 50.0
    sma20: float = 0.0
    sma50: float = 0.0
    ema12: float = 0.0
    ema26: float = 0.0
    rsi14: float = 50.0
    trend_1h: str = "neutral"
    trend_24h: str = "neutral"
    momentum: str = "neutral"
    timestamp: datetime = Field(default_factory=utcnow)


class MarketContext(BaseModel):
    """Everything the prediction council sees at one decision point."""
    current_price: float
    price_history: list[PricePoint] = Field(default_factory=list)
    performance: PerformanceStats = Field(default_factory=PerformanceStats)
    market: Optional[MarketSnapshot] = None
