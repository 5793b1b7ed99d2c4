"""Market data sources: current prices and OHLCV history."""

from .base import HistoryProvider, PriceSource
from .binance import BinancePriceSource
from .static import StaticPriceSource
from .synthetic import SyntheticMarket

__all__ = [
    "HistoryProvider",
    "PriceSource",
    "BinancePriceSource",
    "StaticPriceSource",
    "SyntheticMarket",
]
