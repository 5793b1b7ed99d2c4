"""One evaluation pass over the symbol universe.

Per symbol, in order:
1. Fetch the current price
2. Resolve pending signals against it
3. Skip if the symbol is still in cooldown
4. Evaluate indicators and score confluence
5. Synthesize and persist a new signal if one fired

A failure on one symbol is recorded in its report and the pass moves on.
"""

import math
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, List, Optional, Sequence

from loguru import logger

from ..errors import ConfigurationError, IndicatorError, PersistenceError, PriceFetchError
from ..strategy.lifecycle import LifecycleManager
from ..strategy.scoring import ScoringThresholds, score_confluence
from ..strategy.signal_state import Signal
from ..strategy.synthesizer import SignalSynthesizer
from ..utils.ids import generate_run_id, utc_now


class SymbolOutcome(str, Enum):
    """What happened to a symbol during a pass."""

    SIGNAL_CREATED = "signal_created"
    NO_SIGNAL = "no_signal"
    COOLDOWN = "cooldown"
    INVALID_PRICE = "invalid_price"
    PRICE_ERROR = "price_error"
    INDICATOR_ERROR = "indicator_error"
    PERSISTENCE_ERROR = "persistence_error"
    UNEXPECTED_ERROR = "unexpected_error"

    @property
    def is_error(self) -> bool:
        return self in _ERROR_OUTCOMES


_ERROR_OUTCOMES = {
    SymbolOutcome.PRICE_ERROR,
    SymbolOutcome.INDICATOR_ERROR,
    SymbolOutcome.PERSISTENCE_ERROR,
    SymbolOutcome.UNEXPECTED_ERROR,
}


@dataclass
class SymbolReport:
    """Result of processing one symbol.

    Attributes:
        symbol: Symbol processed
        outcome: What happened
        price: Price used (None if unavailable)
        resolved: Signals resolved at this price
        signal: Signal created in this pass, if any
        error: Error message for failed outcomes
    """

    symbol: str
    outcome: SymbolOutcome
    price: Optional[float] = None
    resolved: List[Signal] = field(default_factory=list)
    signal: Optional[Signal] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "symbol": self.symbol,
            "outcome": self.outcome.value,
            "price": self.price,
            "resolved": [s.signal_id for s in self.resolved],
            "signal_id": self.signal.signal_id if self.signal else None,
            "error": self.error,
        }


@dataclass
class CycleReport:
    """Result of one pass over all symbols."""

    cycle_id: str
    started_at: datetime
    finished_at: Optional[datetime] = None
    symbols: List[SymbolReport] = field(default_factory=list)

    def count(self, outcome: SymbolOutcome) -> int:
        return sum(1 for r in self.symbols if r.outcome == outcome)

    @property
    def signals_created(self) -> List[Signal]:
        return [r.signal for r in self.symbols if r.signal is not None]

    @property
    def resolved_count(self) -> int:
        return sum(len(r.resolved) for r in self.symbols)

    @property
    def error_count(self) -> int:
        return sum(1 for r in self.symbols if r.outcome.is_error)

    @property
    def duration_seconds(self) -> float:
        if self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()

    def summary(self) -> str:
        return (
            f"Cycle {self.cycle_id}: {len(self.symbols)} symbols, "
            f"{len(self.signals_created)} signals, {self.resolved_count} resolved, "
            f"{self.count(SymbolOutcome.COOLDOWN)} in cooldown, {self.error_count} errors "
            f"({self.duration_seconds:.1f}s)"
        )

    def to_dict(self) -> dict:
        return {
            "cycle_id": self.cycle_id,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "signals_created": len(self.signals_created),
            "resolved": self.resolved_count,
            "errors": self.error_count,
            "symbols": [r.to_dict() for r in self.symbols],
        }


class SignalCycle:
    """Runs the per-symbol resolve → cooldown → score → synthesize pipeline.

    Example:
        >>> cycle = SignalCycle(['BTC', 'ETH'], prices, indicators, store,
        ...                     SignalSynthesizer(seed=42), LifecycleManager(store))
        >>> report = cycle.run_cycle()
        >>> print(report.summary())
    """

    def __init__(
        self,
        symbols: Sequence[str],
        price_source,
        indicator_source,
        store,
        synthesizer: Optional[SignalSynthesizer] = None,
        lifecycle: Optional[LifecycleManager] = None,
        cooldown: timedelta = timedelta(hours=4),
        thresholds: ScoringThresholds = ScoringThresholds(),
        clock: Callable[[], datetime] = utc_now,
    ):
        """Initialize the cycle.

        Args:
            symbols: Monitored symbols (processed in this order).
            price_source: PriceSource for current quotes.
            indicator_source: IndicatorSource for judgments.
            store: SignalStore shared with the lifecycle manager.
            synthesizer: Level/signal builder (default: seed 0).
            lifecycle: Resolution manager (default: level policy on store).
            cooldown: Window in which a pending signal blocks a new one.
            thresholds: Confluence gates.
            clock: Returns the current UTC time.

        Raises:
            ConfigurationError: If no symbols are configured.
        """
        symbols = [s.upper().strip() for s in symbols]
        if not symbols:
            raise ConfigurationError("At least one symbol must be configured")

        self.symbols = symbols
        self.price_source = price_source
        self.indicator_source = indicator_source
        self.store = store
        self.synthesizer = synthesizer or SignalSynthesizer()
        self.lifecycle = lifecycle or LifecycleManager(store)
        self.cooldown = cooldown
        self.thresholds = thresholds
        self.clock = clock

    def run_cycle(self, stop_event: Optional[threading.Event] = None) -> CycleReport:
        """Process every symbol once.

        Args:
            stop_event: When set, remaining symbols are skipped.

        Returns:
            CycleReport with one entry per processed symbol.
        """
        report = CycleReport(cycle_id=generate_run_id(), started_at=self.clock())
        logger.info(f"Starting cycle {report.cycle_id} over {len(self.symbols)} symbols")
        self.price_source.refresh(report.started_at)

        for symbol in self.symbols:
            if stop_event is not None and stop_event.is_set():
                logger.info(f"Stop requested, skipping remaining symbols from {symbol}")
                break
            report.symbols.append(self.process_symbol(symbol))

        report.finished_at = self.clock()
        logger.info(report.summary())
        return report

    def process_symbol(self, symbol: str) -> SymbolReport:
        """Run the pipeline for one symbol, never raising."""
        report = SymbolReport(symbol=symbol, outcome=SymbolOutcome.NO_SIGNAL)
        try:
            self._process(symbol, report)
        except PriceFetchError as e:
            self._fail(report, SymbolOutcome.PRICE_ERROR, e)
        except IndicatorError as e:
            self._fail(report, SymbolOutcome.INDICATOR_ERROR, e)
        except PersistenceError as e:
            self._fail(report, SymbolOutcome.PERSISTENCE_ERROR, e)
        except Exception as e:
            logger.exception(f"{symbol}: unexpected failure")
            self._fail(report, SymbolOutcome.UNEXPECTED_ERROR, e)
        return report

    @staticmethod
    def _fail(report: SymbolReport, outcome: SymbolOutcome, error: Exception) -> None:
        report.outcome = outcome
        report.error = str(error)
        logger.error(f"{report.symbol}: {outcome.value}: {error}")

    def _process(self, symbol: str, report: SymbolReport) -> None:
        price = self.price_source.get_price(symbol)
        report.price = price
        if price is None or not math.isfinite(price) or price <= 0:
            report.outcome = SymbolOutcome.INVALID_PRICE
            logger.warning(f"{symbol}: no usable price ({price}), skipping")
            return

        now = self.clock()
        report.resolved = self.lifecycle.resolve_pending(symbol, price, now)

        if self.store.has_recent_unresolved(symbol, self.cooldown, now):
            report.outcome = SymbolOutcome.COOLDOWN
            logger.debug(f"{symbol}: pending signal within {self.cooldown}, in cooldown")
            return

        indicator_set = self.indicator_source.evaluate(symbol, price)
        score = score_confluence(indicator_set, self.thresholds)
        if not score.fired:
            report.outcome = SymbolOutcome.NO_SIGNAL
            logger.debug(
                f"{symbol}: no confluence (bull={score.bullish_confluence}, bear={score.bearish_confluence})"
            )
            return

        signal = self.synthesizer.synthesize(symbol, score, price, now)
        self.store.create(signal)
        report.signal = signal
        report.outcome = SymbolOutcome.SIGNAL_CREATED
        logger.info(
            f"NEW SIGNAL {symbol} {signal.direction.value.upper()} @ {price:,.2f} "
            f"(strength {signal.strength}, {signal.confidence.value})"
        )
