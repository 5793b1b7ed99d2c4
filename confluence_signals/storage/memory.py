"""In-process signal store."""

import copy
import threading
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from loguru import logger

from ..errors import DuplicateSignalError, SignalNotFoundError
from ..strategy.signal_state import Resolution, Signal
from .base import SignalQuery, SignalStore


class InMemorySignalStore(SignalStore):
    """Dict-backed store, used by tests and the ``memory`` storage kind.

    Returned signals are copies so callers cannot bypass ``resolve``.
    """

    def __init__(self) -> None:
        self._signals: Dict[str, Signal] = {}
        self._lock = threading.Lock()

    def create(self, signal: Signal) -> None:
        with self._lock:
            if signal.signal_id in self._signals:
                raise DuplicateSignalError(f"Signal already exists: {signal.signal_id}")
            self._signals[signal.signal_id] = copy.deepcopy(signal)
        logger.debug(f"Stored signal {signal.signal_id}")

    def get(self, signal_id: str) -> Optional[Signal]:
        with self._lock:
            signal = self._signals.get(signal_id)
            return copy.deepcopy(signal) if signal is not None else None

    def find_pending(self, symbol: Optional[str] = None) -> List[Signal]:
        with self._lock:
            pending = [
                s for s in self._signals.values()
                if s.is_pending and (symbol is None or s.symbol == symbol)
            ]
            pending.sort(key=lambda s: s.created_at)
            return [copy.deepcopy(s) for s in pending]

    def has_recent_unresolved(self, symbol: str, within: timedelta, now: datetime) -> bool:
        cutoff = now - within
        with self._lock:
            return any(
                s.symbol == symbol and s.is_pending and s.created_at >= cutoff
                for s in self._signals.values()
            )

    def resolve(self, signal_id: str, resolution: Resolution, resolved_at: datetime) -> bool:
        with self._lock:
            signal = self._signals.get(signal_id)
            if signal is None:
                raise SignalNotFoundError(f"Signal not found: {signal_id}")
            return signal.apply_resolution(resolution, resolved_at)

    def _sorted(self) -> List[Signal]:
        # Newest first; ties keep newest insertion first
        return sorted(reversed(list(self._signals.values())), key=lambda s: s.created_at, reverse=True)

    def list_signals(self, query: Optional[SignalQuery] = None) -> List[Signal]:
        query = query or SignalQuery()
        with self._lock:
            matched = [s for s in self._sorted() if query.matches(s)]
            page = matched[query.offset:query.offset + query.limit]
            return [copy.deepcopy(s) for s in page]

    def count(self, query: Optional[SignalQuery] = None) -> int:
        query = query or SignalQuery()
        with self._lock:
            return sum(1 for s in self._signals.values() if query.matches(s))

    def all_signals(self, symbol: Optional[str] = None) -> List[Signal]:
        symbol = symbol.upper() if symbol else None
        with self._lock:
            return [
                copy.deepcopy(s) for s in self._sorted() if symbol is None or s.symbol == symbol
            ]
