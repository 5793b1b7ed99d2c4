"""FastAPI REST API over the signal store.

Provides signal history, aggregate statistics and manual close.

Run with:
    confluence-signals serve --config config.yaml

API docs available at:
    http://localhost:8000/docs (Swagger UI)
    http://localhost:8000/redoc (ReDoc)
"""

from typing import Dict, List, Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from pydantic import BaseModel, Field, field_validator

from . import __version__
from .analytics.stats import compute_signal_stats
from .errors import SignalNotFoundError
from .storage.base import SignalQuery, SignalStore
from .strategy.lifecycle import LifecycleManager
from .strategy.signal_state import Signal, SignalDirection, SignalStatus
from .utils.ids import utc_now

# ============================================================================
# API Models (Request/Response Schemas)
# ============================================================================


class IndicatorResponse(BaseModel):
    """One indicator judgment in a signal's audit trail."""

    name: str
    value: str
    direction: str
    weight: int
    confidence: str


class SignalResponse(BaseModel):
    """Response model for a signal."""

    signal_id: str
    symbol: str
    direction: SignalDirection
    strength: int
    confidence: str
    entry_price: float
    stop_loss: float
    take_profit: float
    risk_reward: str
    indicators: List[IndicatorResponse]
    reasoning: str
    trend_direction: str
    market_structure: str
    status: SignalStatus
    result_price: Optional[float] = None
    profit_loss_pct: Optional[float] = None
    created_at: str
    resolved_at: Optional[str] = None

    @classmethod
    def from_signal(cls, signal: Signal) -> "SignalResponse":
        return cls(**signal.to_dict())


class SignalsListResponse(BaseModel):
    """Response model for signal history."""

    total_count: int
    returned_count: int
    signals: List[SignalResponse]


class StatsResponse(BaseModel):
    """Response model for aggregate statistics."""

    total: int
    pending: int
    resolved: int
    wins: int
    losses: int
    breakevens: int
    win_rate: float = Field(..., description="Percent of resolved signals that won")
    avg_win_pct: float
    avg_loss_pct: float
    total_pnl_pct: float


class CloseRequest(BaseModel):
    """Manual close request."""

    price: float = Field(..., gt=0, description="Close price")
    status: Optional[SignalStatus] = Field(
        None, description="Explicit outcome; derived from P/L when omitted"
    )

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: Optional[SignalStatus]) -> Optional[SignalStatus]:
        if v == SignalStatus.PENDING:
            raise ValueError("status must be won, lost or breakeven")
        return v


# ============================================================================
# Application
# ============================================================================


def create_app(
    store: SignalStore,
    lifecycle: Optional[LifecycleManager] = None,
    scheduler=None,
) -> FastAPI:
    """Build the API bound to a store.

    Args:
        store: Signal store to query.
        lifecycle: Manager used for manual closes (default: level policy on store).
        scheduler: Optional CycleScheduler whose state is shown on /api/status.
    """
    lifecycle = lifecycle or LifecycleManager(store)

    app = FastAPI(
        title="Confluence Signals API",
        description="Signal history and performance of the confluence signal engine",
        version=__version__,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/", tags=["root"])
    def root() -> Dict:
        """Root endpoint - API information."""
        return {
            "name": "Confluence Signals API",
            "version": __version__,
            "status": "active",
            "endpoints": {
                "docs": "/docs",
                "signals": "/api/signals?symbol={symbol}&direction={direction}&status={status}",
                "signal": "/api/signals/{signal_id}",
                "stats": "/api/signals/stats",
                "close": "POST /api/signals/{signal_id}/close",
            },
        }

    @app.get("/health", tags=["status"])
    def health_check() -> Dict:
        return {"status": "healthy", "timestamp": utc_now().isoformat()}

    @app.get("/api/status", tags=["status"])
    def api_status() -> Dict:
        """Scheduler state, when one is attached."""
        status = {"api_version": __version__, "timestamp": utc_now().isoformat()}
        if scheduler is not None:
            report = scheduler.last_report
            status["scheduler"] = {
                "running": scheduler.is_running,
                "interval_seconds": scheduler.interval_seconds,
                "cycles_run": scheduler.cycles_run,
                "last_cycle": report.to_dict() if report else None,
            }
        return status

    @app.get("/api/signals", response_model=SignalsListResponse, tags=["signals"])
    def list_signals(
        symbol: Optional[str] = Query(None, description="Filter by symbol"),
        direction: Optional[SignalDirection] = Query(None, description="Filter by direction"),
        status: Optional[SignalStatus] = Query(None, description="Filter by status"),
        limit: int = Query(50, ge=1, le=1000),
        offset: int = Query(0, ge=0),
    ) -> SignalsListResponse:
        """Signal history, newest first."""
        query = SignalQuery(symbol=symbol, direction=direction, status=status, limit=limit, offset=offset)
        signals = store.list_signals(query)
        return SignalsListResponse(
            total_count=store.count(query),
            returned_count=len(signals),
            signals=[SignalResponse.from_signal(s) for s in signals],
        )

    @app.get("/api/signals/stats", response_model=StatsResponse, tags=["signals"])
    def signal_stats() -> StatsResponse:
        """Aggregate win/loss statistics over all signals."""
        return StatsResponse(**compute_signal_stats(store.all_signals()).to_dict())

    @app.get("/api/signals/{signal_id}", response_model=SignalResponse, tags=["signals"])
    def get_signal(signal_id: str) -> SignalResponse:
        signal = store.get(signal_id)
        if signal is None:
            raise HTTPException(status_code=404, detail=f"Signal '{signal_id}' not found")
        return SignalResponse.from_signal(signal)

    @app.post("/api/signals/{signal_id}/close", response_model=SignalResponse, tags=["signals"])
    def close_signal(signal_id: str, request: CloseRequest) -> SignalResponse:
        """Manually close a pending signal.

        Raises:
            HTTPException: 404 if unknown, 409 if already resolved.
        """
        existing = store.get(signal_id)
        if existing is None:
            raise HTTPException(status_code=404, detail=f"Signal '{signal_id}' not found")
        if existing.is_resolved:
            raise HTTPException(
                status_code=409,
                detail=f"Signal '{signal_id}' already resolved as {existing.status.value}",
            )

        try:
            signal = lifecycle.close_signal(signal_id, request.price, utc_now(), request.status)
        except SignalNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e)) from e

        logger.info(f"API close {signal_id}: {signal.status.value}")
        return SignalResponse.from_signal(signal)

    return app
