"""Signal performance statistics.

Aggregates resolved signals into win rate and P/L figures, and flattens
signals into a pandas table for export.
"""

from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Iterable, List, Union

import numpy as np
import pandas as pd
from loguru import logger

from ..strategy.signal_state import Signal, SignalStatus


@dataclass
class SignalStats:
    """Aggregate statistics over a signal history.

    Attributes:
        total: All signals
        pending: Signals still open
        resolved: Signals in a terminal state
        wins: WON signals
        losses: LOST signals
        breakevens: BREAKEVEN signals
        win_rate: wins / resolved in percent, 2 decimals (0.0 when none resolved)
        avg_win_pct: Mean P/L of wins (percent of entry)
        avg_loss_pct: Mean P/L of losses (negative)
        total_pnl_pct: Sum of P/L over resolved signals
    """

    total: int = 0
    pending: int = 0
    resolved: int = 0
    wins: int = 0
    losses: int = 0
    breakevens: int = 0
    win_rate: float = 0.0
    avg_win_pct: float = 0.0
    avg_loss_pct: float = 0.0
    total_pnl_pct: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


def _mean(values: List[float]) -> float:
    return float(np.mean(values)) if values else 0.0


def compute_signal_stats(signals: Iterable[Signal]) -> SignalStats:
    """Compute aggregate statistics.

    Examples:
        >>> stats = compute_signal_stats(store.all_signals())
        >>> print(f"Win rate: {stats.win_rate:.2f}%")
    """
    signals = list(signals)
    if not signals:
        return SignalStats()

    wins = [s for s in signals if s.status == SignalStatus.WON]
    losses = [s for s in signals if s.status == SignalStatus.LOST]
    breakevens = [s for s in signals if s.status == SignalStatus.BREAKEVEN]
    resolved = len(wins) + len(losses) + len(breakevens)

    win_rate = round(len(wins) / resolved * 100, 2) if resolved else 0.0
    pnl = [s.profit_loss_pct or 0.0 for s in signals if s.is_resolved]

    return SignalStats(
        total=len(signals),
        pending=len(signals) - resolved,
        resolved=resolved,
        wins=len(wins),
        losses=len(losses),
        breakevens=len(breakevens),
        win_rate=win_rate,
        avg_win_pct=_mean([s.profit_loss_pct or 0.0 for s in wins]),
        avg_loss_pct=_mean([s.profit_loss_pct or 0.0 for s in losses]),
        total_pnl_pct=float(np.sum(pnl)) if pnl else 0.0,
    )


EXPORT_COLUMNS = [
    "signal_id",
    "symbol",
    "direction",
    "strength",
    "confidence",
    "entry_price",
    "stop_loss",
    "take_profit",
    "risk_reward",
    "trend_direction",
    "market_structure",
    "status",
    "result_price",
    "profit_loss_pct",
    "created_at",
    "resolved_at",
    "indicator_count",
]


def signals_to_frame(signals: Iterable[Signal]) -> pd.DataFrame:
    """Flatten signals into a DataFrame (one row per signal)."""
    rows = []
    for signal in signals:
        row = signal.to_dict()
        row["indicator_count"] = len(signal.indicators)
        rows.append(row)

    if not rows:
        return pd.DataFrame(columns=EXPORT_COLUMNS)

    df = pd.DataFrame(rows)[EXPORT_COLUMNS]
    df["created_at"] = pd.to_datetime(df["created_at"], utc=True)
    df["resolved_at"] = pd.to_datetime(df["resolved_at"], utc=True)
    return df


def export_signals(signals: Iterable[Signal], path: Union[Path, str]) -> Path:
    """Write signals to CSV.

    Returns:
        Path written.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    df = signals_to_frame(signals)
    df.to_csv(path, index=False)

    logger.info(f"Exported {len(df)} signals to {path}")
    return path
