"""
Command-line entry point.

    kline-sync --symbol BTCUSDT
    kline-sync --config kline_sync.yaml --every 3600
    kline-sync --config kline_sync.yaml --print-config
"""

from __future__ import annotations

import argparse
import sys
import time
from typing import Callable, List, Optional

from .config import SyncConfig, dump_config, load_config
from .console import c_var, log_error, log_info, log_success, log_warn
from .errors import ConfigError
from .sync import synchronize_kline_data


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kline-sync",
        description="Backfill and keep current daily klines in a local store.",
    )
    parser.add_argument("--symbol", "-s", action="append", dest="symbols",
                        help="Trading pair, e.g. BTCUSDT (repeatable)")
    parser.add_argument("--config", "-c", help="YAML config file")
    parser.add_argument("--exchange", help="Exchange name (default BINANCE)")
    parser.add_argument("--data-root", help="Directory holding the kline store")
    parser.add_argument("--page-size", type=int, help="Bars per request (default 500)")
    parser.add_argument("--delay-ms", type=int, dest="request_delay_ms",
                        help="Pause between requests in ms (default 1000)")
    parser.add_argument("--horizon-days", type=int,
                        help="How far back a backfill may walk (default 365)")
    parser.add_argument("--deadline", type=float, dest="deadline_seconds",
                        help="Abort a symbol's run after this many seconds")
    parser.add_argument("--every", type=float, metavar="SECONDS",
                        help="Re-run on a fixed schedule instead of once")
    parser.add_argument("--print-config", action="store_true",
                        help="Print the effective config as YAML and exit")
    parser.add_argument("--polling", action="store_true", help="Compact output intended for polling mode")
    parser.add_argument("--verbose", action="store_true", help="More chatty logs")
    return parser


def resolve_config(args: argparse.Namespace) -> SyncConfig:
    base = load_config(args.config) if args.config else SyncConfig()
    return base.with_overrides(
        symbols=args.symbols,
        exchange=args.exchange,
        data_root=args.data_root,
        page_size=args.page_size,
        request_delay_ms=args.request_delay_ms,
        horizon_days=args.horizon_days,
        deadline_seconds=args.deadline_seconds,
        polling=args.polling or None,
        verbose=args.verbose or None,
    )


def sync_all(config: SyncConfig) -> bool:
    """Sync every configured symbol one after another."""
    ok = True
    for symbol in config.symbols:
        ok = synchronize_kline_data(symbol, config) and ok
    return ok


def run_schedule(
    config: SyncConfig,
    every_seconds: float,
    *,
    max_runs: Optional[int] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> bool:
    """Call sync_all every `every_seconds`; failures are logged and retried next round."""
    runs = 0
    ok = True
    while max_runs is None or runs < max_runs:
        ok = sync_all(config)
        runs += 1
        if not ok:
            log_warn(f"Some symbols failed; retrying in {c_var(f'{every_seconds}s')}")
        if max_runs is not None and runs >= max_runs:
            break
        sleep(every_seconds)
    return ok


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        config = resolve_config(args)
    except ConfigError as e:
        log_error(f"Invalid configuration: {e}")
        return 2

    if args.print_config:
        sys.stdout.write(dump_config(config))
        return 0

    if not config.symbols:
        log_error("No symbols given. Use --symbol or list them in the config file.")
        return 2

    try:
        if args.every:
            log_info(f"Syncing {c_var(', '.join(config.symbols))} every {c_var(f'{args.every}s')}")
            ok = run_schedule(config, args.every)
        else:
            ok = sync_all(config)
    except KeyboardInterrupt:
        log_warn("Interrupted.")
        return 130

    if ok:
        log_success("Synchronization completed.")
        return 0
    log_error("Synchronization failed.")
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
