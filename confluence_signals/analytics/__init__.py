"""Signal performance analytics."""

from .stats import SignalStats, compute_signal_stats, export_signals, signals_to_frame

__all__ = [
    "SignalStats",
    "compute_signal_stats",
    "export_signals",
    "signals_to_frame",
]
