"""Tests for signal statistics and export."""

import pandas as pd
import pytest

from confluence_signals.analytics import compute_signal_stats, export_signals, signals_to_frame
from confluence_signals.strategy.signal_state import Resolution, SignalStatus


@pytest.fixture
def history(make_signal, t0):
    """6 wins, 4 losses, 1 breakeven, 2 pending."""
    signals = []
    for pnl in [4.0, 5.0, 3.5, 4.5, 4.0, 5.0]:
        s = make_signal()
        s.apply_resolution(Resolution(SignalStatus.WON, 105.0, pnl), t0)
        signals.append(s)
    for pnl in [-2.0, -1.5, -2.5, -2.0]:
        s = make_signal()
        s.apply_resolution(Resolution(SignalStatus.LOST, 98.0, pnl), t0)
        signals.append(s)
    return signals


class TestComputeSignalStats:
    """Test aggregate statistics."""

    def test_win_rate_six_of_ten(self, history):
        stats = compute_signal_stats(history)

        assert stats.total == 10
        assert stats.resolved == 10
        assert stats.wins == 6
        assert stats.losses == 4
        assert stats.win_rate == 60.00

    def test_averages(self, history):
        stats = compute_signal_stats(history)

        assert stats.avg_win_pct == pytest.approx(26.0 / 6)
        assert stats.avg_loss_pct == pytest.approx(-2.0)
        assert stats.total_pnl_pct == pytest.approx(26.0 - 8.0)

    def test_pending_and_breakeven(self, history, make_signal, t0):
        breakeven = make_signal()
        breakeven.apply_resolution(Resolution(SignalStatus.BREAKEVEN, 100.05, 0.05), t0)
        signals = history + [breakeven, make_signal(), make_signal()]

        stats = compute_signal_stats(signals)

        assert stats.total == 13
        assert stats.pending == 2
        assert stats.resolved == 11
        assert stats.breakevens == 1
        assert stats.win_rate == round(6 / 11 * 100, 2)

    def test_empty(self):
        stats = compute_signal_stats([])
        assert stats.total == 0
        assert stats.win_rate == 0.0
        assert stats.avg_win_pct == 0.0

    def test_only_pending(self, make_signal):
        stats = compute_signal_stats([make_signal(), make_signal()])
        assert stats.pending == 2
        assert stats.win_rate == 0.0


class TestExport:
    """Test DataFrame flattening and CSV export."""

    def test_frame_columns(self, history):
        df = signals_to_frame(history)

        assert len(df) == 10
        assert {"signal_id", "symbol", "status", "profit_loss_pct", "indicator_count"} <= set(df.columns)
        assert (df["indicator_count"] == 1).all()
        assert str(df["created_at"].dt.tz) == "UTC"

    def test_empty_frame(self):
        df = signals_to_frame([])
        assert df.empty
        assert "signal_id" in df.columns

    def test_csv(self, history, tmp_path):
        path = export_signals(history, tmp_path / "out" / "signals.csv")

        df = pd.read_csv(path)
        assert len(df) == 10
        assert set(df["status"]) == {"won", "lost"}
