"""Signal persistence."""

from .base import SignalQuery, SignalStore
from .memory import InMemorySignalStore
from .sqlite import SQLiteSignalStore

__all__ = [
    "SignalQuery",
    "SignalStore",
    "InMemorySignalStore",
    "SQLiteSignalStore",
]
