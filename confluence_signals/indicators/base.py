"""Indicator source interface."""

from abc import ABC, abstractmethod

from ..strategy.signal_state import IndicatorSet


class IndicatorSource(ABC):
    """Produces the indicator judgments for a symbol.

    The scorer and synthesizer only ever see the returned IndicatorSet.
    Implementations raise IndicatorError when a symbol cannot be evaluated.
    """

    name: str = "base"

    @abstractmethod
    def evaluate(self, symbol: str, price: float) -> IndicatorSet:
        """Evaluate indicators for symbol at the current price."""
