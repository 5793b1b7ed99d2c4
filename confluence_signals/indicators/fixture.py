"""Scripted indicator source for tests and replays."""

from collections import deque
from pathlib import Path
from typing import Any, Deque, Dict, Iterable, Mapping, Optional, Union

from loguru import logger
from ruamel.yaml import YAML

from ..errors import ConfigurationError, IndicatorError
from ..strategy.signal_state import Indicator, IndicatorSet
from .base import IndicatorSource


FixtureValue = Union[IndicatorSet, Iterable[IndicatorSet]]


def _parse_set(data: Mapping[str, Any]) -> IndicatorSet:
    return IndicatorSet(
        indicators=tuple(
            Indicator(
                name=str(item["name"]),
                value=str(item.get("value", "")),
                direction=item["direction"],
                weight=item["weight"],
                confidence=item.get("confidence", "medium"),
            )
            for item in data.get("indicators") or []
        ),
        higher_highs_lows=bool(data.get("higher_highs_lows", False)),
        lower_highs_lows=bool(data.get("lower_highs_lows", False)),
    )


class FixtureIndicatorSource(IndicatorSource):
    """Returns pre-built indicator sets per symbol.

    A symbol mapped to a single IndicatorSet always returns it. A symbol
    mapped to a sequence returns one set per call; the last set repeats
    once the sequence is exhausted.

    Example:
        >>> source = FixtureIndicatorSource({'BTC': bullish_set}, default=IndicatorSet())
        >>> source.evaluate('BTC', 65000.0) is bullish_set
        True
    """

    name = "fixture"

    def __init__(
        self,
        fixtures: Optional[Mapping[str, FixtureValue]] = None,
        default: Optional[IndicatorSet] = None,
    ) -> None:
        self._fixtures: Dict[str, Deque[IndicatorSet]] = {}
        for symbol, value in (fixtures or {}).items():
            self.set_fixture(symbol, value)
        self.default = default
        self.calls: Dict[str, int] = {}

    @classmethod
    def from_yaml(cls, path: Union[Path, str]) -> "FixtureIndicatorSource":
        """Load fixtures from a YAML replay file.

        Layout::

            default:                    # optional, used for unlisted symbols
              indicators: []
            symbols:
              BTC:                      # one set, or a list of sets
                higher_highs_lows: true
                indicators:
                  - {name: RSI (14), value: '28 (Oversold)', direction: bullish,
                     weight: 20, confidence: high}

        Raises:
            ConfigurationError: If the file is missing or malformed.
        """
        path = Path(path)
        if not path.exists():
            raise ConfigurationError(f"Indicator fixture file not found: {path}")

        with path.open("r", encoding="utf-8") as f:
            data = YAML(typ="safe").load(f) or {}

        if not isinstance(data, dict):
            raise ConfigurationError(f"Expected a mapping at top level of {path}")

        try:
            fixtures = {}
            for symbol, value in (data.get("symbols") or {}).items():
                if isinstance(value, list):
                    fixtures[str(symbol)] = [_parse_set(v) for v in value]
                else:
                    fixtures[str(symbol)] = _parse_set(value)
            default = _parse_set(data["default"]) if data.get("default") is not None else None
            source = cls(fixtures, default=default)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise ConfigurationError(f"Invalid indicator fixture file {path}: {e}") from e

        logger.info(f"Loaded indicator fixtures for {len(fixtures)} symbols from {path}")
        return source

    def set_fixture(self, symbol: str, value: FixtureValue) -> None:
        sets = [value] if isinstance(value, IndicatorSet) else list(value)
        if not sets:
            raise ValueError(f"Empty fixture sequence for {symbol}")
        self._fixtures[symbol.upper()] = deque(sets)

    def evaluate(self, symbol: str, price: float) -> IndicatorSet:
        symbol = symbol.upper()
        self.calls[symbol] = self.calls.get(symbol, 0) + 1

        queue = self._fixtures.get(symbol)
        if queue is None:
            if self.default is None:
                raise IndicatorError(f"No indicator fixture for {symbol}")
            return self.default

        indicator_set = queue.popleft() if len(queue) > 1 else queue[0]
        logger.debug(f"Fixture indicators for {symbol}: {len(indicator_set)} entries")
        return indicator_set
