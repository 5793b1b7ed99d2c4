"""Pytest configuration and fixtures."""

from datetime import datetime, timedelta, timezone

import pytest

from confluence_signals.storage import InMemorySignalStore, SQLiteSignalStore
from confluence_signals.strategy.signal_state import (
    Indicator,
    IndicatorSet,
    MarketStructure,
    Signal,
    SignalConfidence,
    SignalDirection,
    TrendDirection,
)


T0 = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def t0():
    return T0


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_indicator():
    """Factory for single indicator judgments."""
    counter = {"n": 0}

    def _make(direction="bullish", weight=10, confidence="medium", name=None):
        counter["n"] += 1
        return Indicator(
            name=name or f"Indicator {counter['n']}",
            value=f"{direction} reading",
            direction=direction,
            weight=weight,
            confidence=confidence,
        )

    return _make


@pytest.fixture
def make_set(make_indicator):
    """Factory for indicator sets from (direction, weight, confidence) specs."""

    def _make(*specs, higher_highs_lows=False, lower_highs_lows=False):
        indicators = [make_indicator(*spec) for spec in specs]
        return IndicatorSet(
            indicators=tuple(indicators),
            higher_highs_lows=higher_highs_lows,
            lower_highs_lows=lower_highs_lows,
        )

    return _make


@pytest.fixture
def bullish_set(make_set):
    """Five bullish high-confidence indicators, nothing bearish."""
    return make_set(*[("bullish", 20, "high")] * 5, higher_highs_lows=True)


@pytest.fixture
def bearish_set(make_set):
    """Five bearish high-confidence indicators, nothing bullish."""
    return make_set(*[("bearish", 20, "high")] * 5, lower_highs_lows=True)


@pytest.fixture
def neutral_set(make_set):
    return make_set(*[("neutral", 20, "medium")] * 6)


@pytest.fixture
def make_signal():
    """Factory for pending signals with explicit levels."""
    counter = {"n": 0}

    def _make(
        symbol="BTC",
        direction=SignalDirection.BUY,
        entry=100.0,
        stop_loss=None,
        take_profit=None,
        created_at=T0,
        signal_id=None,
    ):
        counter["n"] += 1
        if stop_loss is None:
            stop_loss = entry * (0.98 if direction == SignalDirection.BUY else 1.02)
        if take_profit is None:
            take_profit = entry * (1.04 if direction == SignalDirection.BUY else 0.96)
        return Signal(
            signal_id=signal_id or f"{symbol}_test_{counter['n']:04d}",
            symbol=symbol,
            direction=direction,
            strength=80,
            confidence=SignalConfidence.HIGH,
            entry_price=entry,
            stop_loss=stop_loss,
            take_profit=take_profit,
            risk_reward="2.00:1",
            indicators=(Indicator("RSI (14)", "28.0 (Oversold)", "bullish", 20, "high"),),
            reasoning="test signal",
            trend_direction=TrendDirection.UPTREND,
            market_structure=MarketStructure.BULLISH_STRUCTURE,
            created_at=created_at,
        )

    return _make


@pytest.fixture
def memory_store():
    return InMemorySignalStore()


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    """Each store backend in turn."""
    if request.param == "memory":
        backend = InMemorySignalStore()
    else:
        backend = SQLiteSignalStore(tmp_path / "signals.db")
    yield backend
    backend.close()
