"""Signal state dataclasses and enums.

Defines the indicator judgments consumed by the scorer and the persistent
signal record tracked by the lifecycle manager.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional, Tuple


class IndicatorDirection(str, Enum):
    """Directional judgment of a single indicator."""

    BULLISH = "bullish"
    BEARISH = "bearish"
    NEUTRAL = "neutral"


class IndicatorConfidence(str, Enum):
    """Confidence tier of a single indicator reading."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class SignalDirection(str, Enum):
    """Trade direction of an emitted signal."""

    BUY = "buy"
    SELL = "sell"


class SignalConfidence(str, Enum):
    """Confidence tier of an emitted signal."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    VERY_HIGH = "very_high"


class SignalStatus(str, Enum):
    """Lifecycle state of a signal."""

    PENDING = "pending"
    WON = "won"
    LOST = "lost"
    BREAKEVEN = "breakeven"


class TrendDirection(str, Enum):
    """Trend classification derived from price structure."""

    UPTREND = "uptrend"
    DOWNTREND = "downtrend"
    RANGE = "range"


class MarketStructure(str, Enum):
    """Structure label paired with the trend classification."""

    BULLISH_STRUCTURE = "bullish_structure"
    BEARISH_STRUCTURE = "bearish_structure"
    CONSOLIDATION = "consolidation"


@dataclass(frozen=True)
class Indicator:
    """Single indicator judgment.

    Attributes:
        name: Identifier (e.g. 'RSI (14)')
        value: Human-readable description of the reading
        direction: Bullish, bearish or neutral
        weight: Positive integer weight, fixed per indicator kind
        confidence: High, medium or low
    """

    name: str
    value: str
    direction: IndicatorDirection
    weight: int
    confidence: IndicatorConfidence

    def __post_init__(self):
        if isinstance(self.weight, bool) or not isinstance(self.weight, int) or self.weight <= 0:
            raise ValueError(f"Indicator weight must be a positive integer, got {self.weight!r}")
        # Accept raw strings from fixtures and storage
        object.__setattr__(self, "direction", IndicatorDirection(self.direction))
        object.__setattr__(self, "confidence", IndicatorConfidence(self.confidence))

    @property
    def is_bullish(self) -> bool:
        return self.direction == IndicatorDirection.BULLISH

    @property
    def is_bearish(self) -> bool:
        return self.direction == IndicatorDirection.BEARISH

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "value": self.value,
            "direction": self.direction.value,
            "weight": self.weight,
            "confidence": self.confidence.value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Indicator":
        return cls(
            name=data["name"],
            value=data["value"],
            direction=IndicatorDirection(data["direction"]),
            weight=int(data["weight"]),
            confidence=IndicatorConfidence(data["confidence"]),
        )


@dataclass(frozen=True)
class IndicatorSet:
    """Indicators for one symbol at one evaluation, plus trend judgments.

    Attributes:
        indicators: Ordered indicator judgments
        higher_highs_lows: Price is making higher highs and higher lows
        lower_highs_lows: Price is making lower highs and lower lows
    """

    indicators: Tuple[Indicator, ...] = ()
    higher_highs_lows: bool = False
    lower_highs_lows: bool = False

    def __post_init__(self):
        object.__setattr__(self, "indicators", tuple(self.indicators))

    def __len__(self) -> int:
        return len(self.indicators)

    @property
    def bullish(self) -> Tuple[Indicator, ...]:
        return tuple(i for i in self.indicators if i.is_bullish)

    @property
    def bearish(self) -> Tuple[Indicator, ...]:
        return tuple(i for i in self.indicators if i.is_bearish)


@dataclass(frozen=True)
class Resolution:
    """Outcome applied to a pending signal."""

    status: SignalStatus
    result_price: float
    profit_loss_pct: float


@dataclass
class Signal:
    """Emitted trade signal with full lifecycle state.

    Creation fields are written once by the synthesizer. Resolution fields
    (status, result_price, profit_loss_pct, resolved_at) are written once
    by the lifecycle manager.

    Attributes:
        signal_id: Unique identifier
        symbol: Instrument symbol
        direction: BUY or SELL
        strength: Confluence strength 0-100
        confidence: Confidence tier
        entry_price: Price at emission
        stop_loss: Stop level
        take_profit: Target level
        risk_reward: Formatted ratio, e.g. '2.20:1'
        indicators: Indicator snapshot used to produce the signal
        reasoning: Generated justification text
        trend_direction: Uptrend, downtrend or range
        market_structure: Structure label
        created_at: Emission timestamp
        status: Lifecycle state
        result_price: Price at resolution
        profit_loss_pct: Realized P/L in percent of entry
        resolved_at: Resolution timestamp
    """

    signal_id: str
    symbol: str
    direction: SignalDirection
    strength: int
    confidence: SignalConfidence
    entry_price: float
    stop_loss: float
    take_profit: float
    risk_reward: str
    indicators: Tuple[Indicator, ...]
    reasoning: str
    trend_direction: TrendDirection
    market_structure: MarketStructure
    created_at: datetime

    status: SignalStatus = SignalStatus.PENDING
    result_price: Optional[float] = None
    profit_loss_pct: Optional[float] = None
    resolved_at: Optional[datetime] = None

    def __post_init__(self):
        self.indicators = tuple(self.indicators)

    @property
    def is_pending(self) -> bool:
        return self.status == SignalStatus.PENDING

    @property
    def is_resolved(self) -> bool:
        return not self.is_pending

    def age(self, now: datetime) -> timedelta:
        """Time elapsed since the signal was created."""
        return now - self.created_at

    def apply_resolution(self, resolution: Resolution, resolved_at: datetime) -> bool:
        """Apply a resolution once.

        Returns:
            True if the signal transitioned, False if it was already resolved.
        """
        if self.is_resolved:
            return False
        if resolution.status == SignalStatus.PENDING:
            raise ValueError("Cannot resolve a signal to PENDING")

        self.status = resolution.status
        self.result_price = resolution.result_price
        self.profit_loss_pct = resolution.profit_loss_pct
        self.resolved_at = resolved_at
        return True

    def to_dict(self) -> dict:
        return {
            "signal_id": self.signal_id,
            "symbol": self.symbol,
            "direction": self.direction.value,
            "strength": self.strength,
            "confidence": self.confidence.value,
            "entry_price": self.entry_price,
            "stop_loss": self.stop_loss,
            "take_profit": self.take_profit,
            "risk_reward": self.risk_reward,
            "indicators": [i.to_dict() for i in self.indicators],
            "reasoning": self.reasoning,
            "trend_direction": self.trend_direction.value,
            "market_structure": self.market_structure.value,
            "status": self.status.value,
            "result_price": self.result_price,
            "profit_loss_pct": self.profit_loss_pct,
            "created_at": self.created_at.isoformat(),
            "resolved_at": self.resolved_at.isoformat() if self.resolved_at else None,
        }

    def __repr__(self) -> str:
        return (
            f"Signal({self.signal_id} {self.direction.value.upper()} {self.symbol} "
            f"@ {self.entry_price:.2f}, sl={self.stop_loss:.2f}, tp={self.take_profit:.2f}, "
            f"{self.status.value.upper()})"
        )
