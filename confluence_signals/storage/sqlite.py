"""SQLite-backed signal store."""

from __future__ import annotations

import json
import sqlite3
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import List, Optional, Tuple

from loguru import logger

from ..errors import DuplicateSignalError, PersistenceError, SignalNotFoundError
from ..strategy.signal_state import (
    Indicator,
    MarketStructure,
    Resolution,
    Signal,
    SignalConfidence,
    SignalDirection,
    SignalStatus,
    TrendDirection,
)
from .base import SignalQuery, SignalStore

_CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS signals (
    signal_id        TEXT PRIMARY KEY,
    symbol           TEXT NOT NULL,
    direction        TEXT NOT NULL,
    strength         INTEGER NOT NULL,
    confidence       TEXT NOT NULL,
    entry_price      REAL NOT NULL,
    stop_loss        REAL NOT NULL,
    take_profit      REAL NOT NULL,
    risk_reward      TEXT NOT NULL,
    indicators       TEXT NOT NULL DEFAULT '[]',
    reasoning        TEXT NOT NULL DEFAULT '',
    trend_direction  TEXT NOT NULL,
    market_structure TEXT NOT NULL,
    status           TEXT NOT NULL DEFAULT 'pending',
    result_price     REAL,
    profit_loss_pct  REAL,
    created_at       TEXT NOT NULL,
    resolved_at      TEXT
);
"""

_CREATE_INDEXES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_symbol_created ON signals (symbol, created_at);",
    "CREATE INDEX IF NOT EXISTS idx_status ON signals (status);",
]


def _to_utc_text(ts: datetime) -> str:
    """Store timestamps as UTC ISO strings so text ordering is time ordering."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc).isoformat()


class SQLiteSignalStore(SignalStore):
    """SQLite store for signals.

    Uses WAL journal mode so the API process can read while the scheduler
    writes. Writes are serialised with a lock.
    """

    def __init__(self, db_path: str | Path = "signals.db") -> None:
        db_path = str(db_path)
        if db_path != ":memory:":
            resolved = Path(db_path).expanduser()
            resolved.parent.mkdir(parents=True, exist_ok=True)
            db_path = str(resolved)
        self._db_path = db_path
        self._lock = threading.Lock()
        try:
            self._conn = sqlite3.connect(self._db_path, check_same_thread=False)
            self._conn.execute("PRAGMA journal_mode=WAL;")
            self._conn.row_factory = sqlite3.Row
            self._init_schema()
        except sqlite3.Error as e:
            raise PersistenceError(f"Cannot open signal database {self._db_path}: {e}") from e
        logger.debug(f"Opened signal store at {self._db_path}")

    def close(self) -> None:
        """Close the underlying database connection."""
        self._conn.close()

    def _init_schema(self) -> None:
        cur = self._conn.cursor()
        cur.execute(_CREATE_TABLE_SQL)
        for idx_sql in _CREATE_INDEXES_SQL:
            cur.execute(idx_sql)
        self._conn.commit()

    def _write(self, sql: str, params: tuple = ()) -> int:
        """Run a write statement and return the affected row count."""
        try:
            with self._lock:
                cur = self._conn.execute(sql, params)
                self._conn.commit()
                return cur.rowcount
        except sqlite3.Error as e:
            raise PersistenceError(f"Signal store write failed: {e}") from e

    def _fetch(self, sql: str, params: tuple = ()) -> List[sqlite3.Row]:
        try:
            with self._lock:
                return self._conn.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            raise PersistenceError(f"Signal store read failed: {e}") from e

    def create(self, signal: Signal) -> None:
        try:
            self._write(
                """INSERT INTO signals
                   (signal_id, symbol, direction, strength, confidence,
                    entry_price, stop_loss, take_profit, risk_reward,
                    indicators, reasoning, trend_direction, market_structure,
                    status, result_price, profit_loss_pct, created_at, resolved_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    signal.signal_id,
                    signal.symbol,
                    signal.direction.value,
                    signal.strength,
                    signal.confidence.value,
                    signal.entry_price,
                    signal.stop_loss,
                    signal.take_profit,
                    signal.risk_reward,
                    json.dumps([i.to_dict() for i in signal.indicators], ensure_ascii=False),
                    signal.reasoning,
                    signal.trend_direction.value,
                    signal.market_structure.value,
                    signal.status.value,
                    signal.result_price,
                    signal.profit_loss_pct,
                    _to_utc_text(signal.created_at),
                    _to_utc_text(signal.resolved_at) if signal.resolved_at else None,
                ),
            )
        except PersistenceError as e:
            if isinstance(e.__cause__, sqlite3.IntegrityError):
                raise DuplicateSignalError(f"Signal already exists: {signal.signal_id}") from e
            raise

    def get(self, signal_id: str) -> Optional[Signal]:
        rows = self._fetch("SELECT * FROM signals WHERE signal_id = ?", (signal_id,))
        return self._row_to_signal(rows[0]) if rows else None

    def find_pending(self, symbol: Optional[str] = None) -> List[Signal]:
        sql = "SELECT * FROM signals WHERE status = ?"
        params: list = [SignalStatus.PENDING.value]
        if symbol is not None:
            sql += " AND symbol = ?"
            params.append(symbol)
        sql += " ORDER BY created_at ASC, rowid ASC"
        return [self._row_to_signal(r) for r in self._fetch(sql, tuple(params))]

    def has_recent_unresolved(self, symbol: str, within: timedelta, now: datetime) -> bool:
        cutoff = _to_utc_text(now - within)
        rows = self._fetch(
            "SELECT 1 FROM signals WHERE symbol = ? AND status = ? AND created_at >= ? LIMIT 1",
            (symbol, SignalStatus.PENDING.value, cutoff),
        )
        return bool(rows)

    def resolve(self, signal_id: str, resolution: Resolution, resolved_at: datetime) -> bool:
        if resolution.status == SignalStatus.PENDING:
            raise ValueError("Cannot resolve a signal to PENDING")

        changed = self._write(
            """UPDATE signals
               SET status = ?, result_price = ?, profit_loss_pct = ?, resolved_at = ?
               WHERE signal_id = ? AND status = ?""",
            (
                resolution.status.value,
                resolution.result_price,
                resolution.profit_loss_pct,
                _to_utc_text(resolved_at),
                signal_id,
                SignalStatus.PENDING.value,
            ),
        )
        if changed:
            return True

        if self.get(signal_id) is None:
            raise SignalNotFoundError(f"Signal not found: {signal_id}")
        return False

    @staticmethod
    def _where(query: SignalQuery) -> Tuple[str, list]:
        clauses: List[str] = []
        params: list = []
        if query.symbol is not None:
            clauses.append("symbol = ?")
            params.append(query.symbol)
        if query.direction is not None:
            clauses.append("direction = ?")
            params.append(query.direction.value)
        if query.status is not None:
            clauses.append("status = ?")
            params.append(query.status.value)
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        return where, params

    def list_signals(self, query: Optional[SignalQuery] = None) -> List[Signal]:
        query = query or SignalQuery()
        where, params = self._where(query)
        params.extend([query.limit, query.offset])
        rows = self._fetch(
            f"SELECT * FROM signals{where} ORDER BY created_at DESC, rowid DESC LIMIT ? OFFSET ?",
            tuple(params),
        )
        return [self._row_to_signal(r) for r in rows]

    def count(self, query: Optional[SignalQuery] = None) -> int:
        query = query or SignalQuery()
        where, params = self._where(query)
        return self._fetch(f"SELECT COUNT(*) FROM signals{where}", tuple(params))[0][0]

    def all_signals(self, symbol: Optional[str] = None) -> List[Signal]:
        sql = "SELECT * FROM signals"
        params: tuple = ()
        if symbol:
            sql += " WHERE symbol = ?"
            params = (symbol.upper(),)
        rows = self._fetch(sql + " ORDER BY created_at DESC, rowid DESC", params)
        return [self._row_to_signal(r) for r in rows]

    @staticmethod
    def _row_to_signal(row: sqlite3.Row) -> Signal:
        """Convert a database row to a Signal."""
        return Signal(
            signal_id=row["signal_id"],
            symbol=row["symbol"],
            direction=SignalDirection(row["direction"]),
            strength=row["strength"],
            confidence=SignalConfidence(row["confidence"]),
            entry_price=row["entry_price"],
            stop_loss=row["stop_loss"],
            take_profit=row["take_profit"],
            risk_reward=row["risk_reward"],
            indicators=tuple(Indicator.from_dict(d) for d in json.loads(row["indicators"])),
            reasoning=row["reasoning"],
            trend_direction=TrendDirection(row["trend_direction"]),
            market_structure=MarketStructure(row["market_structure"]),
            status=SignalStatus(row["status"]),
            result_price=row["result_price"],
            profit_loss_pct=row["profit_loss_pct"],
            created_at=datetime.fromisoformat(row["created_at"]),
            resolved_at=datetime.fromisoformat(row["resolved_at"]) if row["resolved_at"] else None,
        )
