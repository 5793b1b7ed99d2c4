"""Loguru sinks for the signal engine."""

import sys
from pathlib import Path
from typing import Optional, Union

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DDTHH:mm:ss.SSSZ} | {level: <8} | {name}:{function}:{line} - {message}"


def setup_logger(
    log_level: str = "INFO",
    log_dir: Optional[Union[Path, str]] = None,
    run_id: Optional[str] = None,
    serialize: bool = False,
) -> Optional[Path]:
    """Route engine logs to stderr and, with ``log_dir``, to files.

    Files written under ``log_dir``:
        signals[_<run_id>].log: everything at ``log_level``, rotated at 10 MB.
        errors.log: ERROR and above from every run.

    Returns:
        Path of the main log file, or None when logging to console only.
    """
    logger.remove()
    logger.add(sys.stderr, format=CONSOLE_FORMAT, level=log_level, colorize=sys.stderr.isatty())

    if log_dir is None:
        return None

    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / (f"signals_{run_id}.log" if run_id else "signals.log")

    logger.add(
        log_path,
        format=FILE_FORMAT,
        level=log_level,
        rotation="10 MB",
        retention="30 days",
        compression="zip",
        serialize=serialize,
        enqueue=True,
    )
    logger.add(
        log_dir / "errors.log",
        format=FILE_FORMAT,
        level="ERROR",
        rotation="5 MB",
        retention=10,
        enqueue=True,
    )
    return log_path
