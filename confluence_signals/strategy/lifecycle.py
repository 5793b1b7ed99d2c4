"""Signal lifecycle management.

Resolves pending signals to WON or LOST against the current price and
provides the manual close path, which is the only way a signal can end
as BREAKEVEN.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import List, Optional

from loguru import logger

from ..errors import PersistenceError, SignalNotFoundError
from .signal_state import Resolution, Signal, SignalDirection, SignalStatus


class ResolutionPolicy(ABC):
    """Decides whether a pending signal resolves at a given price."""

    name: str = "base"

    @abstractmethod
    def evaluate(self, signal: Signal, price: float, now: datetime) -> Optional[Resolution]:
        """Return a Resolution, or None if the signal stays pending."""


class LevelResolutionPolicy(ResolutionPolicy):
    """Resolve against the signal's own stop-loss and take-profit levels.

    BUY: price >= take_profit is a win, price <= stop_loss is a loss.
    SELL: price <= take_profit is a win, price >= stop_loss is a loss.
    P/L is booked at the level, not at the observed price.

    Examples:
        >>> policy = LevelResolutionPolicy()
        >>> # BUY entry 100, sl 98, tp 104, price 104.5
        >>> policy.evaluate(signal, 104.5, now).status
        <SignalStatus.WON: 'won'>
    """

    name = "levels"

    def evaluate(self, signal: Signal, price: float, now: datetime) -> Optional[Resolution]:
        if not signal.stop_loss or not signal.take_profit:
            return None

        entry = signal.entry_price

        if signal.direction == SignalDirection.BUY:
            if price >= signal.take_profit:
                pnl = (signal.take_profit - entry) / entry * 100
                return Resolution(SignalStatus.WON, price, pnl)
            if price <= signal.stop_loss:
                pnl = (signal.stop_loss - entry) / entry * 100
                return Resolution(SignalStatus.LOST, price, pnl)
        else:
            if price <= signal.take_profit:
                pnl = (entry - signal.take_profit) / entry * 100
                return Resolution(SignalStatus.WON, price, pnl)
            if price >= signal.stop_loss:
                pnl = (entry - signal.stop_loss) / entry * 100
                return Resolution(SignalStatus.LOST, price, pnl)

        return None


class AgeThresholdResolutionPolicy(ResolutionPolicy):
    """Alternate sweep policy: fixed percentage moves on aged signals.

    Only signals at least ``min_age`` old are considered. The move from
    entry to the current price is compared against ``target_pct`` and
    ``stop_pct`` regardless of the signal's own levels, and P/L is booked
    at the current price.
    """

    name = "age_threshold"

    def __init__(
        self,
        min_age: timedelta = timedelta(hours=1),
        target_pct: float = 5.0,
        stop_pct: float = 3.0,
    ):
        if target_pct <= 0 or stop_pct <= 0:
            raise ValueError(f"Thresholds must be positive, got target={target_pct}, stop={stop_pct}")
        self.min_age = min_age
        self.target_pct = target_pct
        self.stop_pct = stop_pct

    def evaluate(self, signal: Signal, price: float, now: datetime) -> Optional[Resolution]:
        if signal.age(now) < self.min_age:
            return None

        move_pct = (price - signal.entry_price) / signal.entry_price * 100

        if signal.direction == SignalDirection.BUY:
            if move_pct >= self.target_pct:
                return Resolution(SignalStatus.WON, price, move_pct)
            if move_pct <= -self.stop_pct:
                return Resolution(SignalStatus.LOST, price, move_pct)
        else:
            if move_pct <= -self.target_pct:
                return Resolution(SignalStatus.WON, price, abs(move_pct))
            if move_pct >= self.stop_pct:
                return Resolution(SignalStatus.LOST, price, -abs(move_pct))

        return None


def directional_pnl_pct(signal: Signal, price: float) -> float:
    """P/L in percent of entry for closing the signal at price."""
    if signal.direction == SignalDirection.BUY:
        return (price - signal.entry_price) / signal.entry_price * 100
    return (signal.entry_price - price) / signal.entry_price * 100


class LifecycleManager:
    """Manages the pending → resolved transition of signals.

    The manager is the only writer of resolution fields. Each signal
    transitions at most once; a second attempt is a logged no-op.

    Example:
        >>> manager = LifecycleManager(store, LevelResolutionPolicy())
        >>> resolved = manager.resolve_pending('BTC', 66000.0, now)
        >>> for signal in resolved:
        ...     print(signal.status, signal.profit_loss_pct)
    """

    def __init__(
        self,
        store,
        policy: Optional[ResolutionPolicy] = None,
        breakeven_tolerance_pct: float = 0.1,
    ):
        """Initialize lifecycle manager.

        Args:
            store: SignalStore holding the signals.
            policy: Resolution policy (default: level based).
            breakeven_tolerance_pct: Manual closes within this P/L band
                (in percent) are recorded as BREAKEVEN.
        """
        self.store = store
        self.policy = policy or LevelResolutionPolicy()
        self.breakeven_tolerance_pct = breakeven_tolerance_pct

    def resolve_signal(self, signal: Signal, price: float, now: datetime) -> bool:
        """Test one signal against price and persist a resolution if any.

        Returns:
            True if the signal transitioned.
        """
        if signal.is_resolved:
            logger.debug(f"Skipping already resolved signal: {signal.signal_id}")
            return False

        resolution = self.policy.evaluate(signal, price, now)
        if resolution is None:
            return False

        changed = self.store.resolve(signal.signal_id, resolution, now)
        if changed:
            signal.apply_resolution(resolution, now)
            logger.info(
                f"{resolution.status.value.upper()} - {signal.symbol} "
                f"{signal.direction.value.upper()} at {price:,.2f} "
                f"(P&L: {resolution.profit_loss_pct:.2f}%)"
            )
        return changed

    def resolve_pending(self, symbol: str, price: float, now: datetime) -> List[Signal]:
        """Resolve all pending signals of a symbol at the current price.

        A persistence failure on one signal is logged and the pass moves on.

        Returns:
            Signals that transitioned in this pass.
        """
        resolved = []
        for signal in self.store.find_pending(symbol):
            try:
                if self.resolve_signal(signal, price, now):
                    resolved.append(signal)
            except PersistenceError as e:
                logger.error(f"Failed to persist resolution for {signal.signal_id}: {e}")

        if resolved:
            logger.debug(f"{symbol}: resolved {len(resolved)} signal(s) at {price:,.2f}")
        return resolved

    def resolve_all(self, prices: dict, now: datetime) -> List[Signal]:
        """Sweep every pending signal for which a price is available."""
        resolved = []
        for symbol in sorted({s.symbol for s in self.store.find_pending()}):
            price = prices.get(symbol)
            if price is None or price <= 0:
                logger.warning(f"No usable price for {symbol}, pending signals left as-is")
                continue
            resolved.extend(self.resolve_pending(symbol, price, now))
        return resolved

    def close_signal(
        self,
        signal_id: str,
        price: float,
        now: datetime,
        status: Optional[SignalStatus] = None,
    ) -> Signal:
        """Manually close a signal at price.

        Without an explicit status, a P/L within the breakeven tolerance is
        BREAKEVEN, otherwise WON or LOST by sign.

        Returns:
            The signal after the close (unchanged if it was already resolved).

        Raises:
            SignalNotFoundError: If the id is unknown.
            ValueError: If price is not positive or status is PENDING.
        """
        if price <= 0:
            raise ValueError(f"Close price must be positive, got {price}")
        if status == SignalStatus.PENDING:
            raise ValueError("Cannot close a signal as PENDING")

        signal = self.store.get(signal_id)
        if signal is None:
            raise SignalNotFoundError(f"Signal not found: {signal_id}")
        if signal.is_resolved:
            logger.warning(f"Attempted to close resolved signal: {signal_id}")
            return signal

        pnl = directional_pnl_pct(signal, price)
        if status is None:
            if abs(pnl) <= self.breakeven_tolerance_pct:
                status = SignalStatus.BREAKEVEN
            elif pnl > 0:
                status = SignalStatus.WON
            else:
                status = SignalStatus.LOST

        resolution = Resolution(status, price, pnl)
        if self.store.resolve(signal_id, resolution, now):
            signal.apply_resolution(resolution, now)
            logger.info(
                f"Manual close {signal_id}: {status.value.upper()} at {price:,.2f} (P&L: {pnl:.2f}%)"
            )
            return signal
        return self.store.get(signal_id)
