"""Signal synthesis: entry, stop and target levels plus the signal record.

Turns a fired confluence verdict and the current price into a complete
pending Signal.
"""

import zlib
from datetime import datetime
from typing import Optional, Sequence, Tuple

import numpy as np
from loguru import logger

from ..utils.ids import generate_signal_id
from .scoring import ConfluenceScore
from .signal_state import Indicator, IndicatorConfidence, Signal, SignalDirection, SignalStatus


def compute_levels(
    direction: SignalDirection,
    entry_price: float,
    stop_loss_pct: float,
    take_profit_pct: float,
) -> Tuple[float, float]:
    """Compute stop-loss and take-profit prices.

    Args:
        direction: BUY or SELL.
        entry_price: Entry price (> 0).
        stop_loss_pct: Stop distance in percent of entry (> 0).
        take_profit_pct: Target distance in percent of entry (> 0).

    Returns:
        Tuple of (stop_loss, take_profit).

    Examples:
        >>> compute_levels(SignalDirection.BUY, 100.0, 2.0, 4.0)
        (98.0, 104.0)
        >>> compute_levels(SignalDirection.SELL, 100.0, 2.0, 4.0)
        (102.0, 96.0)
    """
    if entry_price <= 0:
        raise ValueError(f"Entry price must be positive, got {entry_price}")
    if stop_loss_pct <= 0 or take_profit_pct <= 0:
        raise ValueError(
            f"Level distances must be positive, got sl={stop_loss_pct}, tp={take_profit_pct}"
        )

    if direction == SignalDirection.BUY:
        stop_loss = entry_price * (1 - stop_loss_pct / 100)
        take_profit = entry_price * (1 + take_profit_pct / 100)
    else:
        stop_loss = entry_price * (1 + stop_loss_pct / 100)
        take_profit = entry_price * (1 - take_profit_pct / 100)

    return stop_loss, take_profit


def format_risk_reward(stop_loss_pct: float, take_profit_pct: float) -> str:
    """Format the reward:risk ratio as 'X.XX:1'."""
    return f"{take_profit_pct / stop_loss_pct:.2f}:1"


_STRUCTURE_LABELS = {
    "bullish_structure": "Bullish Structure",
    "bearish_structure": "Bearish Structure",
    "consolidation": "Consolidation Range",
}

_CONFIDENCE_LABELS = {
    "low": "Low",
    "medium": "Medium",
    "high": "High",
    "very_high": "Very High",
}


def build_reasoning(score: ConfluenceScore) -> str:
    """Human-readable justification for a fired verdict."""
    if not score.fired:
        raise ValueError("Cannot build reasoning for a verdict without direction")

    side = "bullish" if score.direction == SignalDirection.BUY else "bearish"
    winning = score.indicators
    high_conf = sum(
        1
        for i in winning
        if i.direction.value == side and i.confidence == IndicatorConfidence.HIGH
    )
    confluence_pct = score.winning_weight / score.total_weight * 100

    return (
        f"STRONG {score.direction.value.upper()} SIGNAL "
        f"({_CONFIDENCE_LABELS[score.confidence.value]} Confidence)\n\n"
        f"{score.winning_confluence}/{score.indicator_count} indicators align {side}\n"
        f"{high_conf} high-confidence {side} signals\n"
        f"Market Structure: {_STRUCTURE_LABELS[score.market_structure.value]}\n"
        f"Trend: {score.trend_direction.value.capitalize()}\n"
        f"Confluence Score: {confluence_pct:.0f}%"
    )


def synthesize_signal(
    symbol: str,
    score: ConfluenceScore,
    entry_price: float,
    stop_loss_pct: float,
    take_profit_pct: float,
    created_at: datetime,
    signal_id: Optional[str] = None,
) -> Signal:
    """Assemble a pending Signal from a fired verdict.

    Pure apart from ID generation when ``signal_id`` is not supplied.

    Raises:
        ValueError: If the verdict did not fire or the price is not positive.
    """
    if not score.fired:
        raise ValueError(f"No signal direction for {symbol}: confluence insufficient")

    stop_loss, take_profit = compute_levels(
        score.direction, entry_price, stop_loss_pct, take_profit_pct
    )

    return Signal(
        signal_id=signal_id or generate_signal_id(symbol, created_at),
        symbol=symbol,
        direction=score.direction,
        strength=score.strength,
        confidence=score.confidence,
        entry_price=entry_price,
        stop_loss=stop_loss,
        take_profit=take_profit,
        risk_reward=format_risk_reward(stop_loss_pct, take_profit_pct),
        indicators=score.indicators,
        reasoning=build_reasoning(score),
        trend_direction=score.trend_direction,
        market_structure=score.market_structure,
        created_at=created_at,
        status=SignalStatus.PENDING,
    )


class SignalSynthesizer:
    """Draws level distances from configured ranges and builds signals.

    Each draw uses a generator seeded from the synthesizer seed and the
    inputs (symbol, entry price, indicator snapshot), so the same inputs
    always give the same levels.

    Example:
        >>> synth = SignalSynthesizer(stop_loss_pct=(1.5, 2.5), take_profit_pct=(3.5, 5.5), seed=42)
        >>> signal = synth.synthesize('BTC', score, 65000.0, now)
    """

    def __init__(
        self,
        stop_loss_pct: Tuple[float, float] = (1.5, 2.5),
        take_profit_pct: Tuple[float, float] = (3.5, 5.5),
        seed: int = 0,
    ):
        for label, (low, high) in (("stop_loss_pct", stop_loss_pct), ("take_profit_pct", take_profit_pct)):
            if low <= 0 or high < low:
                raise ValueError(f"Invalid {label} range: ({low}, {high})")

        self.stop_loss_pct = stop_loss_pct
        self.take_profit_pct = take_profit_pct
        self.seed = seed

    def _generator(
        self, symbol: str, entry_price: float, indicators: Sequence[Indicator]
    ) -> np.random.Generator:
        snapshot = ";".join(
            f"{i.name}|{i.value}|{i.direction.value}|{i.weight}|{i.confidence.value}" for i in indicators
        )
        key = f"{symbol.upper()}|{entry_price!r}|{snapshot}"
        return np.random.default_rng([self.seed, zlib.crc32(key.encode("utf-8"))])

    @staticmethod
    def _draw(rng: np.random.Generator, bounds: Tuple[float, float]) -> float:
        low, high = bounds
        if low == high:
            return float(low)
        return float(rng.uniform(low, high))

    def draw_distances(
        self,
        symbol: str,
        entry_price: float,
        indicators: Sequence[Indicator] = (),
    ) -> Tuple[float, float]:
        """Draw (stop_loss_pct, take_profit_pct) for the given inputs."""
        rng = self._generator(symbol, entry_price, indicators)
        return self._draw(rng, self.stop_loss_pct), self._draw(rng, self.take_profit_pct)

    def synthesize(
        self,
        symbol: str,
        score: ConfluenceScore,
        entry_price: float,
        created_at: datetime,
    ) -> Signal:
        """Build a pending signal for a fired verdict."""
        sl_pct, tp_pct = self.draw_distances(symbol, entry_price, score.indicators)
        signal = synthesize_signal(symbol, score, entry_price, sl_pct, tp_pct, created_at)

        logger.debug(
            f"Synthesized {signal.direction.value.upper()} {symbol}: entry={entry_price:.2f}, "
            f"sl={signal.stop_loss:.2f} ({sl_pct:.2f}%), tp={signal.take_profit:.2f} ({tp_pct:.2f}%)"
        )

        return signal
