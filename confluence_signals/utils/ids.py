"""ID and timestamp utilities."""

from datetime import datetime, timezone
from uuid import uuid4


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def generate_run_id() -> str:
    """Generate unique run ID.

    Returns:
        Run ID string (timestamp + UUID).
    """
    timestamp = utc_now().strftime("%Y%m%d_%H%M%S")
    uid = str(uuid4())[:8]
    return f"{timestamp}_{uid}"


def generate_signal_id(symbol: str, timestamp: datetime) -> str:
    """Generate signal ID.

    Args:
        symbol: Instrument symbol.
        timestamp: Creation timestamp.

    Returns:
        Signal ID string, unique even for signals created in the same second.
    """
    ts_str = timestamp.strftime("%Y%m%d_%H%M%S")
    return f"{symbol}_{ts_str}_{uuid4().hex[:6]}"
