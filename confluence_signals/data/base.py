"""Price source interface."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

import pandas as pd


class PriceSource(ABC):
    """Provides the current price for a symbol.

    ``get_price`` returns None when the source has no data for the symbol
    and raises PriceFetchError on transport failure.
    """

    name: str = "base"

    @abstractmethod
    def get_price(self, symbol: str) -> Optional[float]:
        """Current price for symbol, or None if unavailable."""

    def refresh(self, now: datetime) -> None:
        """Called once at the start of every cycle. Live sources need nothing."""


class HistoryProvider(ABC):
    """Provides recent OHLCV bars for indicator computation."""

    @abstractmethod
    def history(self, symbol: str, bars: int) -> pd.DataFrame:
        """Most recent bars, oldest first.

        Returns:
            DataFrame with columns: timestamp_utc, open, high, low, close, volume.
        """
