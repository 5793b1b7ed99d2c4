"""Utility functions."""

from .ids import generate_run_id, generate_signal_id, utc_now
from .logging import setup_logger

__all__ = [
    "generate_run_id",
    "generate_signal_id",
    "utc_now",
    "setup_logger",
]
