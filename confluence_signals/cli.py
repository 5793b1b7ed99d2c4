"""Command-line interface for the signal engine."""

import argparse
import signal
import sys
import threading
from pathlib import Path

from loguru import logger

from .analytics.stats import compute_signal_stats, export_signals
from .config import load_config, resolved_config_hash
from .engine import build_engine
from .engine.factory import build_store
from .strategy.signal_state import SignalStatus
from .utils import generate_run_id, setup_logger


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="confluence-signals",
        description="Confluence-scored crypto trading signal engine",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=None,
        help="Path to engine configuration YAML (merged over defaults)",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("run", help="Run the scheduler until interrupted")
    sub.add_parser("once", help="Run a single cycle and print the report")

    stats = sub.add_parser("stats", help="Print aggregate signal statistics")
    stats.add_argument("--symbol", type=str, default=None, help="Restrict to one symbol")

    export = sub.add_parser("export", help="Export signal history to CSV")
    export.add_argument("--output", "-o", type=Path, default=Path("signals.csv"), help="CSV path")
    export.add_argument(
        "--status",
        type=str,
        choices=[s.value for s in SignalStatus],
        default=None,
        help="Only export signals with this status",
    )

    serve = sub.add_parser("serve", help="Serve the REST API")
    serve.add_argument("--host", type=str, default=None, help="Override api.host")
    serve.add_argument("--port", type=int, default=None, help="Override api.port")
    serve.add_argument(
        "--with-scheduler",
        action="store_true",
        help="Also run the cycle scheduler in this process",
    )

    return parser


def _cmd_run(engine) -> int:
    shutdown = threading.Event()

    def _handle(signum, frame):
        logger.info(f"Received signal {signum}, shutting down")
        shutdown.set()

    signal.signal(signal.SIGINT, _handle)
    signal.signal(signal.SIGTERM, _handle)

    engine.scheduler.start()
    while not shutdown.wait(1.0):
        pass
    engine.scheduler.stop(timeout=60)
    return 0


def _cmd_once(engine) -> int:
    report = engine.scheduler.run_once()
    if report is None:
        return 1

    print("\n" + "=" * 60)
    print("CYCLE SUMMARY")
    print("=" * 60)
    for item in report.symbols:
        line = f"{item.symbol:<8} {item.outcome.value:<18}"
        if item.price is not None:
            line += f" {item.price:>14,.4f}"
        if item.signal is not None:
            line += f"  {item.signal.direction.value.upper()} {item.signal.strength}"
        if item.error:
            line += f"  {item.error}"
        print(line)
    print("=" * 60)
    print(report.summary())
    return 1 if report.error_count == len(report.symbols) else 0


def _cmd_stats(store, symbol) -> int:
    signals = store.all_signals(symbol)
    stats = compute_signal_stats(signals)

    print("\n" + "=" * 60)
    print("SIGNAL STATISTICS" + (f" ({symbol.upper()})" if symbol else ""))
    print("=" * 60)
    print(f"Total Signals:    {stats.total}")
    print(f"Pending:          {stats.pending}")
    print(f"Resolved:         {stats.resolved}")
    print(f"Wins / Losses:    {stats.wins} / {stats.losses} ({stats.breakevens} breakeven)")
    print(f"Win Rate:         {stats.win_rate:.2f}%")
    print(f"Avg Win:          {stats.avg_win_pct:.2f}%")
    print(f"Avg Loss:         {stats.avg_loss_pct:.2f}%")
    print(f"Total P&L:        {stats.total_pnl_pct:.2f}%")
    print("=" * 60)
    return 0


def _cmd_export(store, output, status) -> int:
    signals = store.all_signals()
    if status:
        signals = [s for s in signals if s.status.value == status]
    path = export_signals(signals, output)
    print(f"Exported {len(signals)} signals to {path}")
    return 0


def _cmd_serve(engine, host, port, with_scheduler) -> int:
    import uvicorn

    from .api import create_app

    app = create_app(engine.store, engine.lifecycle, engine.scheduler if with_scheduler else None)
    if with_scheduler:
        engine.scheduler.start()
    try:
        uvicorn.run(
            app,
            host=host or engine.config.api.host,
            port=port or engine.config.api.port,
            log_level=engine.config.log_level.lower(),
        )
    finally:
        engine.scheduler.stop(timeout=60)
    return 0


def main(argv=None) -> int:
    """Main CLI entry point.

    Returns:
        Exit code (0 for success, 1 for error).
    """
    args = _build_parser().parse_args(argv)

    if args.config is not None and not args.config.exists():
        print(f"Error: Config file not found: {args.config}", file=sys.stderr)
        return 1

    try:
        config = load_config(args.config)
    except (ValueError, FileNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    run_id = generate_run_id() if args.command == "run" else None
    setup_logger(
        log_level=config.log_level,
        log_dir=config.log_dir if config.log_to_file else None,
        run_id=run_id,
    )
    logger.info(f"Engine: {config.name} v{config.version} (config {resolved_config_hash(config)})")

    try:
        if args.command in ("stats", "export"):
            with build_store(config) as store:
                if args.command == "stats":
                    return _cmd_stats(store, args.symbol)
                return _cmd_export(store, args.output, args.status)

        engine = build_engine(config)
        try:
            if args.command == "run":
                return _cmd_run(engine)
            if args.command == "once":
                return _cmd_once(engine)
            return _cmd_serve(engine, args.host, args.port, args.with_scheduler)
        finally:
            engine.close()

    except Exception as e:
        logger.exception(f"Command '{args.command}' failed: {e}")
        print(f"\nError: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
