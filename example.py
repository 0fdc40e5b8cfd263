#!/usr/bin/env python3

import argparse
import sys

from colorama import Style

from kline_sync import SyncConfig, synchronize_kline_data
from kline_sync.console import COLOR_REQ, COLOR_TYPE, COLOR_VAR, ERROR, INFO, SUCCESS


def parse_args():
    """
    Parses command-line arguments with colorized help.
    Only daily (1d) klines are synchronized.
    """
    parser = argparse.ArgumentParser(
        description=f"""
{INFO} Backfill and refresh daily klines for one or more symbols. {Style.RESET_ALL}
  {COLOR_VAR}--symbol{Style.RESET_ALL}        {COLOR_TYPE}(str){Style.RESET_ALL} {COLOR_REQ} Trading pair (repeatable)
  {COLOR_VAR}--horizon-days{Style.RESET_ALL}  {COLOR_TYPE}(int){Style.RESET_ALL} How far back to backfill (default 365)
  {COLOR_VAR}--data-root{Style.RESET_ALL}     {COLOR_TYPE}(str){Style.RESET_ALL} Store directory (default ~/.kline_sync)

{INFO} Examples:
  python example.py --symbol BTCUSDT
  python example.py --symbol BTCUSDT --symbol ETHUSDT --horizon-days 730
""", formatter_class=argparse.RawTextHelpFormatter)
    parser.add_argument("--symbol", action="append", required=True, help="Trading pair (e.g., BTCUSDT)")
    parser.add_argument("--horizon-days", type=int, default=365, help="Backfill horizon in days")
    parser.add_argument("--data-root", help="Store directory")
    if len(sys.argv) == 1:
        print(f"\n{ERROR} No arguments provided! Please specify the required parameters.\n")
        parser.print_help()
        sys.exit(1)
    return parser.parse_args()


def main():
    args = parse_args()
    config = SyncConfig(symbols=args.symbol, horizon_days=args.horizon_days, verbose=True)
    if args.data_root:
        config = config.with_overrides(data_root=args.data_root)

    for symbol in config.symbols:
        if not synchronize_kline_data(symbol, config):
            print(f"\n{ERROR} Synchronization failed for {symbol}.\n")
            sys.exit(1)

    print(f"\n{SUCCESS} Synchronization completed successfully for: {', '.join(config.symbols)}.\n")


# Example of directly using the synchronize_kline_data function
# Uncomment this code to use it instead of the command-line interface

# ok = synchronize_kline_data("BTCUSDT", SyncConfig(horizon_days=30))
#
# if ok:
#     print("Synchronization completed successfully")


if __name__ == "__main__":
    main()
