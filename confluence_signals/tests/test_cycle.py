"""Tests for the per-symbol cycle pipeline."""

import threading
from datetime import timedelta

import pytest

from confluence_signals.data import StaticPriceSource, SyntheticMarket
from confluence_signals.engine import SignalCycle, SymbolOutcome
from confluence_signals.errors import ConfigurationError, PersistenceError, PriceFetchError
from confluence_signals.indicators import FixtureIndicatorSource
from confluence_signals.strategy.lifecycle import LifecycleManager
from confluence_signals.strategy.signal_state import IndicatorSet, SignalDirection, SignalStatus
from confluence_signals.strategy.synthesizer import SignalSynthesizer


class FailingPriceSource(StaticPriceSource):
    """Raises for selected symbols."""

    def __init__(self, prices, failing):
        super().__init__(prices)
        self.failing = set(failing)

    def get_price(self, symbol):
        if symbol in self.failing:
            raise PriceFetchError(f"timeout fetching {symbol}")
        return super().get_price(symbol)


@pytest.fixture
def fixed_levels():
    return SignalSynthesizer(stop_loss_pct=(2.0, 2.0), take_profit_pct=(4.0, 4.0))


@pytest.fixture
def make_cycle(store, clock, fixed_levels):
    def _make(symbols, prices, fixtures, default=None, price_source=None):
        return SignalCycle(
            symbols=symbols,
            price_source=price_source or StaticPriceSource(prices),
            indicator_source=FixtureIndicatorSource(fixtures, default=default),
            store=store,
            synthesizer=fixed_levels,
            lifecycle=LifecycleManager(store),
            clock=clock,
        )

    return _make


class TestSignalCycle:
    """Test run_cycle outcomes."""

    def test_empty_symbols_rejected(self, store):
        with pytest.raises(ConfigurationError):
            SignalCycle([], StaticPriceSource(), FixtureIndicatorSource(), store)

    def test_signal_created(self, make_cycle, store, bullish_set):
        report = make_cycle(["BTC"], {"BTC": 100.0}, {"BTC": bullish_set}).run_cycle()

        [item] = report.symbols
        assert item.outcome == SymbolOutcome.SIGNAL_CREATED
        assert item.signal.direction == SignalDirection.BUY
        assert item.signal.entry_price == 100.0
        assert item.signal.stop_loss == pytest.approx(98.0)
        assert store.get(item.signal.signal_id) is not None
        assert report.finished_at is not None

    def test_no_signal(self, make_cycle, store, neutral_set):
        report = make_cycle(["BTC"], {"BTC": 100.0}, {"BTC": neutral_set}).run_cycle()

        assert report.symbols[0].outcome == SymbolOutcome.NO_SIGNAL
        assert store.count() == 0

    @pytest.mark.parametrize("price", [None, 0.0, -1.0, float("nan"), float("inf")])
    def test_invalid_price_skipped(self, make_cycle, store, bullish_set, price):
        prices = {} if price is None else {"BTC": price}
        cycle = make_cycle(["BTC"], prices, {"BTC": bullish_set})

        report = cycle.run_cycle()

        assert report.symbols[0].outcome == SymbolOutcome.INVALID_PRICE
        assert cycle.indicator_source.calls == {}
        assert store.count() == 0

    def test_failures_isolated(self, make_cycle, store, bullish_set):
        prices = {"BTC": 100.0, "ETH": 50.0, "SOL": 20.0}
        source = FailingPriceSource(prices, failing={"BTC"})
        # ETH has no fixture and no default
        cycle = make_cycle(["BTC", "ETH", "SOL"], prices, {"SOL": bullish_set}, price_source=source)

        report = cycle.run_cycle()

        outcomes = [r.outcome for r in report.symbols]
        assert outcomes == [
            SymbolOutcome.PRICE_ERROR,
            SymbolOutcome.INDICATOR_ERROR,
            SymbolOutcome.SIGNAL_CREATED,
        ]
        assert report.error_count == 2
        assert "timeout" in report.symbols[0].error
        assert store.count() == 1

    def test_persistence_error_recorded(self, make_cycle, store, bullish_set, monkeypatch):
        def broken(signal):
            raise PersistenceError("database is locked")

        monkeypatch.setattr(store, "create", broken)
        report = make_cycle(["BTC"], {"BTC": 100.0}, {"BTC": bullish_set}).run_cycle()

        assert report.symbols[0].outcome == SymbolOutcome.PERSISTENCE_ERROR

    def test_unexpected_error_recorded(self, make_cycle, bullish_set, monkeypatch):
        cycle = make_cycle(["BTC", "ETH"], {"BTC": 100.0, "ETH": 50.0}, {}, default=bullish_set)

        def boom(symbol, price):
            if symbol == "BTC":
                raise RuntimeError("boom")
            return bullish_set

        monkeypatch.setattr(cycle.indicator_source, "evaluate", boom)
        report = cycle.run_cycle()

        assert report.symbols[0].outcome == SymbolOutcome.UNEXPECTED_ERROR
        assert report.symbols[1].outcome == SymbolOutcome.SIGNAL_CREATED

    def test_stop_event_skips_remaining(self, make_cycle, bullish_set):
        stop = threading.Event()
        stop.set()
        cycle = make_cycle(["BTC", "ETH"], {"BTC": 1.0, "ETH": 1.0}, {}, default=bullish_set)

        assert cycle.run_cycle(stop_event=stop).symbols == []


class TestCooldown:
    """A pending signal blocks new signals for the symbol for 4 hours."""

    def test_cooldown_blocks_then_expires(self, make_cycle, store, clock, bullish_set):
        cycle = make_cycle(["BTC"], {"BTC": 100.0}, {"BTC": bullish_set})

        first = cycle.run_cycle()
        assert first.symbols[0].outcome == SymbolOutcome.SIGNAL_CREATED

        clock.advance(hours=1)
        blocked = cycle.run_cycle()
        assert blocked.symbols[0].outcome == SymbolOutcome.COOLDOWN
        # Indicators are not evaluated for a symbol in cooldown
        assert cycle.indicator_source.calls["BTC"] == 1

        clock.advance(hours=4)
        eligible = cycle.run_cycle()
        assert eligible.symbols[0].outcome == SymbolOutcome.SIGNAL_CREATED
        assert store.count() == 2

    def test_resolution_lifts_cooldown(self, make_cycle, store, clock, bullish_set):
        cycle = make_cycle(["BTC"], {"BTC": 100.0}, {"BTC": bullish_set})
        first = cycle.run_cycle().symbols[0].signal

        clock.advance(hours=1)
        cycle.price_source.set_price("BTC", 105.0)
        report = cycle.run_cycle()

        item = report.symbols[0]
        # Resolution runs before generation within the same pass
        assert [s.signal_id for s in item.resolved] == [first.signal_id]
        assert store.get(first.signal_id).status == SignalStatus.WON
        assert item.outcome == SymbolOutcome.SIGNAL_CREATED
        assert item.signal.entry_price == 105.0

    def test_cooldown_per_symbol(self, make_cycle, clock, bullish_set):
        cycle = make_cycle(["BTC", "ETH"], {"BTC": 100.0, "ETH": 50.0}, {"BTC": bullish_set}, default=IndicatorSet())
        cycle.run_cycle()

        cycle.indicator_source.set_fixture("ETH", bullish_set)
        clock.advance(hours=1)
        report = cycle.run_cycle()

        assert [r.outcome for r in report.symbols] == [SymbolOutcome.COOLDOWN, SymbolOutcome.SIGNAL_CREATED]


def test_report_summary(make_cycle, bullish_set, clock):
    report = make_cycle(["BTC"], {"BTC": 100.0}, {"BTC": bullish_set}).run_cycle()

    data = report.to_dict()
    assert data["signals_created"] == 1
    assert data["symbols"][0]["outcome"] == "signal_created"
    assert "1 signals" in report.summary()
    assert report.duration_seconds == 0.0
    assert report.count(SymbolOutcome.SIGNAL_CREATED) == 1
    assert report.resolved_count == 0
    assert clock() - report.started_at == timedelta(0)


def test_synthetic_market_moves_with_cycle_clock(make_cycle, clock, neutral_set):
    market = SyntheticMarket(seed=9, warmup_bars=10)
    cycle = make_cycle(["BTC"], {}, {"BTC": neutral_set}, price_source=market)

    first = cycle.run_cycle().symbols[0].price
    same = cycle.run_cycle().symbols[0].price
    clock.advance(hours=2)
    moved = cycle.run_cycle().symbols[0].price

    assert same == first
    assert moved != first
    assert len(market.history("BTC", 100)) == 12
