"""Binance public market data with retry logic."""

import time
from typing import Any, Callable, List, Optional

import pandas as pd
import requests
from loguru import logger

from ..errors import PriceFetchError
from .base import HistoryProvider, PriceSource


class BinancePriceSource(PriceSource, HistoryProvider):
    """Binance spot prices and klines for a base-asset symbol universe.

    Symbols are base assets ('BTC'); the quote asset is appended to form
    the trading pair ('BTCUSDT').

    Features:
    - Exponential backoff retry logic
    - Unknown pairs reported as "no data" instead of an error
    """

    name = "binance"

    _KLINE_COLUMNS = [
        "open_time",
        "open",
        "high",
        "low",
        "close",
        "volume",
        "close_time",
        "quote_volume",
        "trades",
        "taker_buy_base",
        "taker_buy_quote",
        "ignore",
    ]

    def __init__(
        self,
        quote_asset: str = "USDT",
        base_url: str = "https://api.binance.com",
        max_retries: int = 3,
        initial_retry_delay: float = 1.0,
        timeout: float = 10.0,
        interval: str = "1h",
        session: Optional[requests.Session] = None,
    ) -> None:
        """Initialize Binance source.

        Args:
            quote_asset: Quote currency appended to symbols.
            base_url: Binance API base URL.
            max_retries: Maximum number of attempts per request.
            initial_retry_delay: Initial delay between retries (seconds).
            timeout: HTTP timeout (seconds).
            interval: Kline interval used by ``history``.
            session: Optional requests session (injected in tests).
        """
        self.quote_asset = quote_asset.upper()
        self.base_url = base_url.rstrip("/")
        self.max_retries = max_retries
        self.initial_retry_delay = initial_retry_delay
        self.timeout = timeout
        self.interval = interval
        self.session = session or requests.Session()

    def pair(self, symbol: str) -> str:
        return f"{symbol.upper()}{self.quote_asset}"

    def _with_retry(self, description: str, call: Callable[[], Any]) -> Any:
        for attempt in range(self.max_retries):
            try:
                return call()
            except requests.RequestException as e:
                retry_delay = self.initial_retry_delay * (2**attempt)

                if attempt < self.max_retries - 1:
                    logger.warning(
                        f"Binance {description} failed (attempt {attempt + 1}/{self.max_retries}): {e}. "
                        f"Retrying in {retry_delay:.1f}s..."
                    )
                    time.sleep(retry_delay)
                else:
                    logger.error(f"Binance {description} failed after {self.max_retries} attempts: {e}")
                    raise PriceFetchError(f"Binance {description} failed: {e}") from e

    def _get(self, path: str, params: dict) -> Optional[Any]:
        """GET an endpoint; None when Binance reports an unknown symbol."""
        response = self.session.get(f"{self.base_url}{path}", params=params, timeout=self.timeout)
        if response.status_code == 400:
            return None
        response.raise_for_status()
        return response.json()

    def get_price(self, symbol: str) -> Optional[float]:
        """Latest traded price for symbol.

        Returns:
            Price, or None if the pair is not listed.

        Raises:
            PriceFetchError: If the request fails after all retries.
        """
        pair = self.pair(symbol)
        payload = self._with_retry(
            f"price {pair}",
            lambda: self._get("/api/v3/ticker/price", {"symbol": pair}),
        )
        if payload is None:
            logger.warning(f"Binance has no ticker for {pair}")
            return None
        return float(payload["price"])

    def fetch_klines(self, symbol: str, interval: Optional[str] = None, limit: int = 200) -> pd.DataFrame:
        """Most recent klines for symbol, oldest first.

        Returns:
            DataFrame with columns: timestamp_utc, open, high, low, close, volume, symbol, source.
            Empty DataFrame if no data available.
        """
        pair = self.pair(symbol)
        interval = interval or self.interval
        klines = self._with_retry(
            f"klines {pair}",
            lambda: self._get(
                "/api/v3/klines",
                {"symbol": pair, "interval": interval, "limit": min(limit, 1000)},
            ),
        )
        if not klines:
            logger.warning(f"No klines returned for {pair}")
            return self._empty_dataframe()
        return self._normalize_klines(klines, symbol)

    def history(self, symbol: str, bars: int) -> pd.DataFrame:
        return self.fetch_klines(symbol, self.interval, bars)

    def _normalize_klines(self, klines: List[List[Any]], symbol: str) -> pd.DataFrame:
        df = pd.DataFrame(klines, columns=self._KLINE_COLUMNS)

        df["timestamp_utc"] = pd.to_datetime(df["open_time"], unit="ms", utc=True)

        for col in ["open", "high", "low", "close", "volume"]:
            df[col] = df[col].astype(float)

        df["symbol"] = symbol.upper()
        df["source"] = self.name

        return df[["timestamp_utc", "open", "high", "low", "close", "volume", "symbol", "source"]].reset_index(drop=True)

    @staticmethod
    def _empty_dataframe() -> pd.DataFrame:
        return pd.DataFrame(
            columns=["timestamp_utc", "open", "high", "low", "close", "volume", "symbol", "source"]
        )
