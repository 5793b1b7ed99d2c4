"""Fixed-price source for tests and manual runs."""

from typing import Dict, Optional

from loguru import logger

from .base import PriceSource


class StaticPriceSource(PriceSource):
    """Dict-backed price source.

    Example:
        >>> source = StaticPriceSource({'BTC': 65000.0})
        >>> source.get_price('BTC')
        65000.0
        >>> source.set_price('BTC', 66000.0)
    """

    name = "static"

    def __init__(self, prices: Optional[Dict[str, float]] = None) -> None:
        self._prices: Dict[str, float] = {k.upper(): v for k, v in (prices or {}).items()}

    def get_price(self, symbol: str) -> Optional[float]:
        return self._prices.get(symbol.upper())

    def set_price(self, symbol: str, price: Optional[float]) -> None:
        """Set or clear (None) the price for a symbol."""
        symbol = symbol.upper()
        if price is None:
            self._prices.pop(symbol, None)
        else:
            self._prices[symbol] = price
        logger.debug(f"Static price {symbol} = {price}")
