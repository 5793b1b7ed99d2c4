"""Signal store interface and query model."""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from ..strategy.signal_state import Resolution, Signal, SignalDirection, SignalStatus


class SignalQuery(BaseModel):
    """Filter and pagination for signal listings."""

    symbol: Optional[str] = Field(None, description="Filter by symbol")
    direction: Optional[SignalDirection] = Field(None, description="Filter by direction")
    status: Optional[SignalStatus] = Field(None, description="Filter by lifecycle status")
    limit: int = Field(50, ge=1, le=1000, description="Maximum signals returned")
    offset: int = Field(0, ge=0, description="Signals skipped")

    @field_validator("symbol")
    @classmethod
    def normalize_symbol(cls, v: Optional[str]) -> Optional[str]:
        return v.upper().strip() if v else None

    def matches(self, signal: Signal) -> bool:
        """Whether a signal passes the filters (pagination ignored)."""
        if self.symbol is not None and signal.symbol != self.symbol:
            return False
        if self.direction is not None and signal.direction != self.direction:
            return False
        if self.status is not None and signal.status != self.status:
            return False
        return True


class SignalStore(ABC):
    """Persistence contract for signals.

    The synthesizer path writes creation fields through ``create``; the
    lifecycle manager writes resolution fields through ``resolve``.
    """

    @abstractmethod
    def create(self, signal: Signal) -> None:
        """Persist a new signal.

        Raises:
            DuplicateSignalError: If the id already exists.
            PersistenceError: On storage failure.
        """

    @abstractmethod
    def get(self, signal_id: str) -> Optional[Signal]:
        """Fetch one signal by id, or None."""

    @abstractmethod
    def find_pending(self, symbol: Optional[str] = None) -> List[Signal]:
        """Pending signals, oldest first, optionally for one symbol."""

    @abstractmethod
    def has_recent_unresolved(self, symbol: str, within: timedelta, now: datetime) -> bool:
        """Whether a pending signal for symbol was created at or after now - within."""

    @abstractmethod
    def resolve(self, signal_id: str, resolution: Resolution, resolved_at: datetime) -> bool:
        """Write resolution fields once.

        Returns:
            True if the signal transitioned out of PENDING, False if it was
            already resolved (no-op).

        Raises:
            SignalNotFoundError: If the id is unknown.
            PersistenceError: On storage failure.
        """

    @abstractmethod
    def list_signals(self, query: Optional[SignalQuery] = None) -> List[Signal]:
        """Filtered page of signals, newest first."""

    @abstractmethod
    def count(self, query: Optional[SignalQuery] = None) -> int:
        """Number of signals matching the filters (pagination ignored)."""

    @abstractmethod
    def all_signals(self, symbol: Optional[str] = None) -> List[Signal]:
        """Every stored signal (optionally for one symbol), newest first."""

    def close(self) -> None:
        """Release underlying resources."""

    def __enter__(self):
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
