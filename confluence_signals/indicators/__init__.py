"""Pluggable indicator sources."""

from .base import IndicatorSource
from .fixture import FixtureIndicatorSource
from .technical import TechnicalIndicatorSource, detect_structure, ema, macd, rsi

__all__ = [
    "IndicatorSource",
    "FixtureIndicatorSource",
    "TechnicalIndicatorSource",
    "detect_structure",
    "ema",
    "macd",
    "rsi",
]
