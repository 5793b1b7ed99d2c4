"""Synthetic market with deterministic, reproducible price paths."""

import zlib
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

import numpy as np
import pandas as pd
from loguru import logger

from .base import HistoryProvider, PriceSource


DEFAULT_BASE_PRICES = {
    "BTC": 65000.0,
    "ETH": 3200.0,
    "BNB": 580.0,
    "XRP": 0.55,
    "SOL": 150.0,
    "ADA": 0.45,
    "DOGE": 0.12,
    "DOT": 6.5,
    "AVAX": 28.0,
    "LINK": 14.0,
    "MATIC": 0.6,
    "LTC": 75.0,
    "UNI": 8.0,
    "ATOM": 7.5,
    "NEAR": 5.5,
}


class SyntheticMarket(PriceSource, HistoryProvider):
    """Random-walk market for demos, backtests and tests.

    Each symbol gets its own generator seeded from the market seed and the
    symbol name, so paths are identical across runs and independent of the
    order in which symbols are queried.

    Example:
        >>> market = SyntheticMarket(seed=42)
        >>> p0 = market.get_price('BTC')
        >>> market.advance()
        >>> bars = market.history('BTC', 100)
    """

    name = "synthetic"

    def __init__(
        self,
        seed: int = 42,
        base_prices: Optional[Dict[str, float]] = None,
        volatility: float = 0.01,
        warmup_bars: int = 300,
        bar_interval: timedelta = timedelta(hours=1),
        start: Optional[datetime] = None,
    ) -> None:
        """Initialize synthetic market.

        Args:
            seed: Market seed.
            base_prices: Starting price per symbol (unknown symbols start at 100).
            volatility: Per-bar standard deviation of log returns.
            warmup_bars: Bars generated before the first quote.
            bar_interval: Spacing between bars.
            start: Timestamp of the first bar (default 2024-01-01 UTC).
        """
        self.seed = seed
        self.base_prices = {k.upper(): v for k, v in (base_prices or DEFAULT_BASE_PRICES).items()}
        self.volatility = volatility
        self.warmup_bars = warmup_bars
        self.bar_interval = bar_interval
        self.start = start or datetime(2024, 1, 1, tzinfo=timezone.utc)

        self._rngs: Dict[str, np.random.Generator] = {}
        self._bars: Dict[str, pd.DataFrame] = {}
        self._clock_anchor: Optional[datetime] = None

    def _rng(self, symbol: str) -> np.random.Generator:
        if symbol not in self._rngs:
            self._rngs[symbol] = np.random.default_rng([self.seed, zlib.crc32(symbol.encode("utf-8"))])
        return self._rngs[symbol]

    def _generate(self, symbol: str, n_bars: int, last_close: float, first_ts: datetime) -> pd.DataFrame:
        rng = self._rng(symbol)

        returns = rng.normal(0.0, self.volatility, n_bars)
        closes = last_close * np.exp(np.cumsum(returns))
        opens = np.concatenate([[last_close], closes[:-1]])

        ranges = np.abs(rng.normal(self.volatility, self.volatility / 3, n_bars))
        highs = np.maximum(opens, closes) * (1 + ranges / 2)
        lows = np.minimum(opens, closes) * (1 - ranges / 2)

        volume = rng.lognormal(np.log(10000.0), 0.4, n_bars)

        timestamps = pd.date_range(start=first_ts, periods=n_bars, freq=self.bar_interval)

        return pd.DataFrame(
            {
                "timestamp_utc": timestamps,
                "open": opens,
                "high": highs,
                "low": lows,
                "close": closes,
                "volume": volume,
                "symbol": symbol,
                "source": self.name,
            }
        )

    def _ensure(self, symbol: str) -> pd.DataFrame:
        symbol = symbol.upper()
        if symbol not in self._bars:
            base = self.base_prices.get(symbol, 100.0)
            self._bars[symbol] = self._generate(symbol, self.warmup_bars, base, self.start)
            logger.debug(f"Generated {self.warmup_bars} synthetic bars for {symbol}")
        return self._bars[symbol]

    def get_price(self, symbol: str) -> Optional[float]:
        bars = self._ensure(symbol)
        return float(bars["close"].iloc[-1])

    def advance(self, steps: int = 1) -> None:
        """Append ``steps`` bars to every symbol generated so far."""
        for symbol, bars in list(self._bars.items()):
            next_ts = bars["timestamp_utc"].iloc[-1] + self.bar_interval
            new_bars = self._generate(symbol, steps, float(bars["close"].iloc[-1]), next_ts)
            self._bars[symbol] = pd.concat([bars, new_bars], ignore_index=True)

    def refresh(self, now: datetime) -> None:
        """Advance by the whole bar intervals elapsed since the last refresh.

        The first call only anchors the market clock.
        """
        if self._clock_anchor is None:
            self._clock_anchor = now
            return

        steps = int((now - self._clock_anchor) / self.bar_interval)
        if steps > 0:
            self.advance(steps)
            self._clock_anchor += steps * self.bar_interval
            logger.debug(f"Synthetic market advanced {steps} bars to {now.isoformat()}")

    def history(self, symbol: str, bars: int) -> pd.DataFrame:
        data = self._ensure(symbol)
        return data.iloc[-bars:].reset_index(drop=True)
