"""Tests for signal lifecycle resolution."""

from datetime import timedelta

import pytest

from confluence_signals.errors import PersistenceError, SignalNotFoundError
from confluence_signals.strategy.lifecycle import (
    AgeThresholdResolutionPolicy,
    LevelResolutionPolicy,
    LifecycleManager,
    directional_pnl_pct,
)
from confluence_signals.strategy.signal_state import Resolution, SignalDirection, SignalStatus

BUY = SignalDirection.BUY
SELL = SignalDirection.SELL


class TestLevelResolutionPolicy:
    """Test resolution against the signal's own levels."""

    @pytest.mark.parametrize(
        "direction,price,status,pnl",
        [
            (BUY, 104.5, SignalStatus.WON, 4.0),
            (BUY, 104.01, SignalStatus.WON, 4.0),
            (BUY, 97.0, SignalStatus.LOST, -2.0),
            (SELL, 95.0, SignalStatus.WON, 4.0),
            (SELL, 102.5, SignalStatus.LOST, -2.0),
        ],
    )
    def test_resolves(self, make_signal, t0, direction, price, status, pnl):
        signal = make_signal(direction=direction)
        resolution = LevelResolutionPolicy().evaluate(signal, price, t0)

        assert resolution.status == status
        assert resolution.result_price == price
        assert resolution.profit_loss_pct == pytest.approx(pnl)

    @pytest.mark.parametrize("direction,price", [(BUY, 101.0), (BUY, 98.5), (SELL, 99.0), (SELL, 101.5)])
    def test_between_levels_stays_pending(self, make_signal, t0, direction, price):
        assert LevelResolutionPolicy().evaluate(make_signal(direction=direction), price, t0) is None

    def test_missing_levels_skipped(self, make_signal, t0):
        signal = make_signal(stop_loss=0.0, take_profit=0.0)
        assert LevelResolutionPolicy().evaluate(signal, 1000.0, t0) is None


class TestAgeThresholdResolutionPolicy:
    """Test the alternate age/percentage policy."""

    def test_young_signal_ignored(self, make_signal, t0):
        policy = AgeThresholdResolutionPolicy()
        signal = make_signal(created_at=t0)

        assert policy.evaluate(signal, 200.0, t0 + timedelta(minutes=30)) is None

    def test_buy_target(self, make_signal, t0):
        policy = AgeThresholdResolutionPolicy()
        resolution = policy.evaluate(make_signal(), 106.0, t0 + timedelta(hours=2))

        assert resolution.status == SignalStatus.WON
        assert resolution.profit_loss_pct == pytest.approx(6.0)

    def test_buy_stop(self, make_signal, t0):
        resolution = AgeThresholdResolutionPolicy().evaluate(make_signal(), 96.5, t0 + timedelta(hours=2))

        assert resolution.status == SignalStatus.LOST
        assert resolution.profit_loss_pct == pytest.approx(-3.5)

    def test_sell_target_and_stop(self, make_signal, t0):
        policy = AgeThresholdResolutionPolicy()
        later = t0 + timedelta(hours=2)

        won = policy.evaluate(make_signal(direction=SELL), 94.0, later)
        lost = policy.evaluate(make_signal(direction=SELL), 103.0, later)

        assert won.status == SignalStatus.WON
        assert won.profit_loss_pct == pytest.approx(6.0)
        assert lost.status == SignalStatus.LOST
        assert lost.profit_loss_pct == pytest.approx(-3.0)

    def test_invalid_thresholds(self):
        with pytest.raises(ValueError):
            AgeThresholdResolutionPolicy(target_pct=0)


class TestLifecycleManager:
    """Test resolution passes against a store."""

    def test_resolve_pending_win(self, store, make_signal, t0):
        signal = make_signal()
        store.create(signal)

        manager = LifecycleManager(store)
        resolved = manager.resolve_pending("BTC", 105.0, t0 + timedelta(hours=1))

        assert [s.signal_id for s in resolved] == [signal.signal_id]
        stored = store.get(signal.signal_id)
        assert stored.status == SignalStatus.WON
        assert stored.result_price == 105.0
        assert stored.profit_loss_pct == pytest.approx(4.0)
        assert stored.resolved_at == t0 + timedelta(hours=1)

    def test_resolution_is_once(self, store, make_signal, t0):
        signal = make_signal()
        store.create(signal)
        manager = LifecycleManager(store)

        manager.resolve_pending("BTC", 97.0, t0)
        # Price later reaches the target; the loss stands
        assert manager.resolve_pending("BTC", 110.0, t0 + timedelta(hours=1)) == []

        stored = store.get(signal.signal_id)
        assert stored.status == SignalStatus.LOST
        assert stored.result_price == 97.0

    def test_other_symbols_untouched(self, store, make_signal, t0):
        btc = make_signal(symbol="BTC")
        eth = make_signal(symbol="ETH")
        store.create(btc)
        store.create(eth)

        LifecycleManager(store).resolve_pending("BTC", 200.0, t0)

        assert store.get(eth.signal_id).is_pending

    def test_resolve_all(self, store, make_signal, t0):
        store.create(make_signal(symbol="BTC"))
        store.create(make_signal(symbol="ETH"))

        resolved = LifecycleManager(store).resolve_all({"BTC": 110.0, "ETH": None}, t0)

        assert [s.symbol for s in resolved] == ["BTC"]
        assert len(store.find_pending()) == 1

    def test_persistence_failure_continues(self, memory_store, make_signal, t0, monkeypatch):
        first = make_signal()
        second = make_signal()
        memory_store.create(first)
        memory_store.create(second)

        original = memory_store.resolve

        def flaky(signal_id, resolution, resolved_at):
            if signal_id == first.signal_id:
                raise PersistenceError("disk full")
            return original(signal_id, resolution, resolved_at)

        monkeypatch.setattr(memory_store, "resolve", flaky)

        resolved = LifecycleManager(memory_store).resolve_pending("BTC", 110.0, t0)

        assert [s.signal_id for s in resolved] == [second.signal_id]
        assert memory_store.get(first.signal_id).is_pending

    def test_custom_policy(self, store, make_signal, t0):
        store.create(make_signal(created_at=t0))
        manager = LifecycleManager(store, AgeThresholdResolutionPolicy())

        assert manager.resolve_pending("BTC", 110.0, t0 + timedelta(minutes=10)) == []
        assert len(manager.resolve_pending("BTC", 110.0, t0 + timedelta(hours=1))) == 1


class TestManualClose:
    """Test close_signal, the only path to BREAKEVEN."""

    def test_breakeven_within_tolerance(self, store, make_signal, t0):
        signal = make_signal()
        store.create(signal)

        closed = LifecycleManager(store).close_signal(signal.signal_id, 100.05, t0)

        assert closed.status == SignalStatus.BREAKEVEN
        assert store.get(signal.signal_id).status == SignalStatus.BREAKEVEN

    def test_status_by_sign(self, store, make_signal, t0):
        up = make_signal()
        down = make_signal(direction=SELL)
        store.create(up)
        store.create(down)
        manager = LifecycleManager(store)

        assert manager.close_signal(up.signal_id, 101.0, t0).status == SignalStatus.WON
        assert manager.close_signal(down.signal_id, 101.0, t0).status == SignalStatus.LOST

    def test_explicit_status(self, store, make_signal, t0):
        signal = make_signal()
        store.create(signal)

        closed = LifecycleManager(store).close_signal(signal.signal_id, 103.0, t0, SignalStatus.BREAKEVEN)

        assert closed.status == SignalStatus.BREAKEVEN
        assert closed.profit_loss_pct == pytest.approx(3.0)

    def test_already_resolved_noop(self, store, make_signal, t0):
        signal = make_signal()
        store.create(signal)
        manager = LifecycleManager(store)
        manager.close_signal(signal.signal_id, 110.0, t0)

        again = manager.close_signal(signal.signal_id, 50.0, t0 + timedelta(hours=1))

        assert again.status == SignalStatus.WON
        assert again.result_price == 110.0

    def test_unknown_signal(self, store, t0):
        with pytest.raises(SignalNotFoundError):
            LifecycleManager(store).close_signal("missing", 100.0, t0)

    def test_invalid_arguments(self, store, make_signal, t0):
        signal = make_signal()
        store.create(signal)
        manager = LifecycleManager(store)

        with pytest.raises(ValueError):
            manager.close_signal(signal.signal_id, 0.0, t0)
        with pytest.raises(ValueError):
            manager.close_signal(signal.signal_id, 100.0, t0, SignalStatus.PENDING)


def test_directional_pnl(make_signal):
    assert directional_pnl_pct(make_signal(direction=BUY), 110.0) == pytest.approx(10.0)
    assert directional_pnl_pct(make_signal(direction=SELL), 110.0) == pytest.approx(-10.0)


def test_signal_apply_resolution_once(make_signal, t0):
    signal = make_signal()

    assert signal.apply_resolution(Resolution(SignalStatus.WON, 104.0, 4.0), t0) is True
    assert signal.apply_resolution(Resolution(SignalStatus.LOST, 98.0, -2.0), t0) is False
    assert signal.status == SignalStatus.WON
