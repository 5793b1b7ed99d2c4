"""Cycle execution and scheduling."""

from .cycle import CycleReport, SignalCycle, SymbolOutcome, SymbolReport
from .factory import Engine, build_engine
from .scheduler import CycleScheduler

__all__ = [
    "CycleReport",
    "SignalCycle",
    "SymbolOutcome",
    "SymbolReport",
    "CycleScheduler",
    "Engine",
    "build_engine",
]
