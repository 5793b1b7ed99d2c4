"""Technical indicator battery computed from OHLCV history.

Each indicator produces one weighted judgment. Weights are fixed per
indicator kind:

    RSI (14)            20
    MACD                20
    EMA Alignment       18
    Market Structure    15
    Volume              12
    Divergence           8   (only when present)
    Key Levels           7   (only near support or resistance)
    Liquidity            5   (only on a sweep)
"""

from typing import List, Tuple

import numpy as np
import pandas as pd
from loguru import logger

from ..data.base import HistoryProvider
from ..errors import IndicatorError, PriceFetchError
from ..strategy.signal_state import (
    Indicator,
    IndicatorConfidence,
    IndicatorDirection,
    IndicatorSet,
)
from .base import IndicatorSource

BULLISH = IndicatorDirection.BULLISH
BEARISH = IndicatorDirection.BEARISH
NEUTRAL = IndicatorDirection.NEUTRAL

HIGH = IndicatorConfidence.HIGH
MEDIUM = IndicatorConfidence.MEDIUM
LOW = IndicatorConfidence.LOW


def rsi(close: pd.Series, period: int = 14) -> pd.Series:
    """Relative Strength Index with Wilder's smoothing.

    Examples:
        >>> rsi(pd.Series(np.arange(1.0, 40.0))).iloc[-1]
        100.0
    """
    delta = close.diff()
    gain = delta.clip(lower=0.0)
    loss = -delta.clip(upper=0.0)

    avg_gain = gain.ewm(alpha=1 / period, adjust=False, min_periods=period).mean()
    avg_loss = loss.ewm(alpha=1 / period, adjust=False, min_periods=period).mean()

    rs = avg_gain / avg_loss.replace(0.0, np.nan)
    result = 100 - 100 / (1 + rs)
    # No losses in the window means maximum strength
    result = result.where(avg_loss != 0.0, 100.0)
    return result.where(avg_gain.notna())


def ema(values: pd.Series, period: int) -> pd.Series:
    """Exponential moving average."""
    return values.ewm(span=period, adjust=False).mean()


def macd(
    close: pd.Series,
    fast: int = 12,
    slow: int = 26,
    signal: int = 9,
) -> Tuple[pd.Series, pd.Series]:
    """MACD line and signal line."""
    line = ema(close, fast) - ema(close, slow)
    return line, ema(line, signal)


def detect_structure(
    highs: np.ndarray,
    lows: np.ndarray,
    window: int = 10,
) -> Tuple[bool, bool]:
    """Detect price structure (HH/HL for bullish, LH/LL for bearish).

    Compares the extremes of the most recent ``window`` bars with those of
    the ``window`` bars before it.

    Returns:
        Tuple of (higher_highs_lows, lower_highs_lows).

    Examples:
        >>> highs = np.array([100, 101, 102, 103])
        >>> lows = np.array([98, 99, 100, 101])
        >>> detect_structure(highs, lows, window=2)
        (True, False)
    """
    if len(highs) < 2 * window or len(lows) < 2 * window:
        return False, False

    recent_high = np.max(highs[-window:])
    recent_low = np.min(lows[-window:])
    prior_high = np.max(highs[-2 * window:-window])
    prior_low = np.min(lows[-2 * window:-window])

    bullish = bool(recent_high > prior_high and recent_low > prior_low)
    bearish = bool(recent_high < prior_high and recent_low < prior_low)

    return bullish, bearish


class TechnicalIndicatorSource(IndicatorSource):
    """Live indicator judgments computed from recent bars.

    Example:
        >>> source = TechnicalIndicatorSource(BinancePriceSource())
        >>> indicator_set = source.evaluate('BTC', 65000.0)
    """

    name = "technical"

    def __init__(
        self,
        history_provider: HistoryProvider,
        bars: int = 250,
        rsi_period: int = 14,
        ema_fast: int = 50,
        ema_slow: int = 200,
        volume_lookback: int = 20,
        volume_spike_mult: float = 1.2,
        structure_window: int = 10,
        levels_lookback: int = 50,
        level_proximity_pct: float = 1.0,
    ) -> None:
        if bars < ema_slow:
            raise ValueError(f"bars ({bars}) must cover the slow EMA period ({ema_slow})")
        self.history_provider = history_provider
        self.bars = bars
        self.rsi_period = rsi_period
        self.ema_fast = ema_fast
        self.ema_slow = ema_slow
        self.volume_lookback = volume_lookback
        self.volume_spike_mult = volume_spike_mult
        self.structure_window = structure_window
        self.levels_lookback = levels_lookback
        self.level_proximity_pct = level_proximity_pct

    def evaluate(self, symbol: str, price: float) -> IndicatorSet:
        try:
            df = self.history_provider.history(symbol, self.bars)
        except PriceFetchError as e:
            raise IndicatorError(f"History unavailable for {symbol}: {e}") from e

        if len(df) < self.ema_slow:
            raise IndicatorError(
                f"Insufficient history for {symbol}: {len(df)} bars < {self.ema_slow}"
            )

        return self.evaluate_frame(df, price)

    def evaluate_frame(self, df: pd.DataFrame, price: float) -> IndicatorSet:
        """Evaluate the battery on a bar frame (oldest first)."""
        close = df["close"].astype(float).reset_index(drop=True)
        high = df["high"].astype(float).to_numpy()
        low = df["low"].astype(float).to_numpy()
        volume = df["volume"].astype(float).to_numpy()

        rsi_series = rsi(close, self.rsi_period)
        rsi_value = float(rsi_series.iloc[-1])

        hh_hl, lh_ll = detect_structure(high, low, self.structure_window)

        indicators: List[Indicator] = [
            self._rsi_indicator(rsi_value),
            self._macd_indicator(close),
            self._ema_indicator(close),
            self._volume_indicator(volume),
            self._structure_indicator(hh_hl, lh_ll),
        ]

        optional = [
            self._divergence_indicator(close, rsi_series),
            self._key_levels_indicator(high, low, price),
            self._liquidity_indicator(df),
        ]
        indicators.extend(i for i in optional if i is not None)

        logger.debug(
            f"Technical indicators: RSI={rsi_value:.1f}, structure=({hh_hl}, {lh_ll}), "
            f"{len(indicators)} judgments"
        )

        return IndicatorSet(
            indicators=tuple(indicators),
            higher_highs_lows=hh_hl,
            lower_highs_lows=lh_ll,
        )

    def _rsi_indicator(self, value: float) -> Indicator:
        name = f"RSI ({self.rsi_period})"
        if value < 35:
            return Indicator(name, f"{value:.1f} (Oversold)", BULLISH, 20, HIGH if value < 30 else MEDIUM)
        if value > 65:
            return Indicator(name, f"{value:.1f} (Overbought)", BEARISH, 20, HIGH if value > 70 else MEDIUM)
        return Indicator(name, f"{value:.1f} (Neutral)", NEUTRAL, 20, MEDIUM)

    def _macd_indicator(self, close: pd.Series) -> Indicator:
        line, signal = macd(close)
        spread = line - signal
        above = spread.iloc[-1] > 0
        # Fresh cross within the last 3 bars
        crossed = bool((np.sign(spread.iloc[-4:]).diff().fillna(0) != 0).any())

        if above:
            label = "Bullish Crossover" if crossed else "Above Signal Line"
            return Indicator("MACD", label, BULLISH, 20, HIGH if crossed else MEDIUM)
        label = "Bearish Crossover" if crossed else "Below Signal Line"
        return Indicator("MACD", label, BEARISH, 20, HIGH if crossed else MEDIUM)

    def _ema_indicator(self, close: pd.Series) -> Indicator:
        fast = ema(close, self.ema_fast).iloc[-1]
        slow = ema(close, self.ema_slow).iloc[-1]
        if fast > slow:
            return Indicator(
                "EMA Alignment", f"Golden Cross ({self.ema_fast} > {self.ema_slow})", BULLISH, 18, HIGH
            )
        return Indicator(
            "EMA Alignment", f"Death Cross ({self.ema_fast} < {self.ema_slow})", BEARISH, 18, HIGH
        )

    def _volume_indicator(self, volume: np.ndarray) -> Indicator:
        average = float(np.mean(volume[-self.volume_lookback - 1:-1]))
        ratio = volume[-1] / average if average > 0 else 0.0
        if ratio >= self.volume_spike_mult:
            return Indicator("Volume", f"Above Average (+{(ratio - 1) * 100:.0f}%)", BULLISH, 12, MEDIUM)
        return Indicator("Volume", "Below Average", NEUTRAL, 12, MEDIUM)

    @staticmethod
    def _structure_indicator(hh_hl: bool, lh_ll: bool) -> Indicator:
        if hh_hl:
            return Indicator("Market Structure", "Higher Highs + Higher Lows", BULLISH, 15, HIGH)
        if lh_ll:
            return Indicator("Market Structure", "Lower Highs + Lower Lows", BEARISH, 15, HIGH)
        return Indicator("Market Structure", "Range / Consolidation", NEUTRAL, 15, LOW)

    def _divergence_indicator(self, close: pd.Series, rsi_series: pd.Series):
        window = self.structure_window
        if len(close) < 2 * window:
            return None

        recent_close, prior_close = close.iloc[-window:], close.iloc[-2 * window:-window]
        recent_rsi, prior_rsi = rsi_series.iloc[-window:], rsi_series.iloc[-2 * window:-window]
        current_rsi = rsi_series.iloc[-1]

        if current_rsi < 35 and recent_close.min() < prior_close.min() and recent_rsi.min() > prior_rsi.min():
            return Indicator("Divergence", "Bullish RSI Divergence", BULLISH, 8, HIGH)
        if current_rsi > 65 and recent_close.max() > prior_close.max() and recent_rsi.max() < prior_rsi.max():
            return Indicator("Divergence", "Bearish RSI Divergence", BEARISH, 8, HIGH)
        return None

    def _key_levels_indicator(self, high: np.ndarray, low: np.ndarray, price: float):
        support = float(np.min(low[-self.levels_lookback:]))
        resistance = float(np.max(high[-self.levels_lookback:]))
        if resistance <= support:
            return None

        band = self.level_proximity_pct / 100
        near_support = support <= price <= support * (1 + band)
        near_resistance = resistance * (1 - band) <= price <= resistance

        if near_support and not near_resistance:
            return Indicator("Key Levels", "Optimal Entry Zone", BULLISH, 7, HIGH)
        if near_resistance and not near_support:
            return Indicator("Key Levels", "Near Resistance", BEARISH, 7, MEDIUM)
        return None

    def _liquidity_indicator(self, df: pd.DataFrame):
        lookback = self.volume_lookback
        if len(df) < lookback + 1:
            return None

        prior = df.iloc[-lookback - 1:-1]
        last = df.iloc[-1]
        prior_low = prior["low"].min()
        prior_high = prior["high"].max()

        swept_low = last["low"] < prior_low and last["close"] > prior_low
        swept_high = last["high"] > prior_high and last["close"] < prior_high

        if swept_low and not swept_high:
            return Indicator("Liquidity", "Bullish Liquidity Sweep", BULLISH, 5, HIGH)
        if swept_high and not swept_low:
            return Indicator("Liquidity", "Bearish Liquidity Sweep", BEARISH, 5, HIGH)
        return None
