"""Recurring cycle scheduler.

A single daemon thread runs the cycle on a fixed interval. Passes never
overlap: a trigger arriving while a pass is in flight is skipped.
"""

import threading
from typing import Optional

from loguru import logger

from .cycle import CycleReport, SignalCycle


class CycleScheduler:
    """Runs a SignalCycle immediately (optionally) and then every interval.

    Example:
        >>> with CycleScheduler(cycle, interval_seconds=3600) as scheduler:
        ...     scheduler.wait(7200)
    """

    def __init__(
        self,
        cycle: SignalCycle,
        interval_seconds: float = 3600,
        run_on_start: bool = True,
    ):
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")
        self.cycle = cycle
        self.interval_seconds = interval_seconds
        self.run_on_start = run_on_start

        self._stop_event = threading.Event()
        self._pass_lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._last_report: Optional[CycleReport] = None
        self.cycles_run = 0
        self.cycles_skipped = 0

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def last_report(self) -> Optional[CycleReport]:
        return self._last_report

    def run_once(self) -> Optional[CycleReport]:
        """Run one pass now.

        Returns:
            The report, or None if a pass was already in flight or the
            scheduler has been stopped (start() re-arms it).
        """
        if self._stop_event.is_set():
            logger.info("Scheduler stopped, ignoring run request")
            return None
        if not self._pass_lock.acquire(blocking=False):
            self.cycles_skipped += 1
            logger.warning("Cycle already in progress, skipping trigger")
            return None
        try:
            report = self.cycle.run_cycle(stop_event=self._stop_event)
            self._last_report = report
            self.cycles_run += 1
            return report
        finally:
            self._pass_lock.release()

    def _loop(self) -> None:
        logger.info(f"Scheduler started, interval={self.interval_seconds}s")
        if self.run_on_start:
            self._safe_run()
        while not self._stop_event.wait(self.interval_seconds):
            self._safe_run()
        logger.info("Scheduler loop exited")

    def _safe_run(self) -> None:
        try:
            self.run_once()
        except Exception:
            # Keep the timer alive; the next tick retries
            logger.exception("Cycle failed")

    def start(self) -> None:
        """Start the background thread (no-op if already running)."""
        if self.is_running:
            logger.warning("Scheduler already running")
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._loop, name="cycle-scheduler", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        """Stop scheduling; an in-flight symbol finishes, no new pass starts."""
        self._stop_event.set()
        logger.info("Scheduler stopping")
        if self._thread is not None:
            self._thread.join(timeout)
            if self._thread.is_alive():
                logger.warning(f"Scheduler thread still running after {timeout}s")
            else:
                self._thread = None

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until stop is requested; True if stopped."""
        return self._stop_event.wait(timeout)

    def __enter__(self) -> "CycleScheduler":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()
