"""
Colorized console output used by every component.

Level tags are printed ahead of each message; the c_* helpers color inline
values (timestamps, row counts, directories) so long sync logs stay scannable.
"""

from datetime import datetime, timezone
from typing import Optional

import colorama
from colorama import Fore, Style

colorama.init(autoreset=True)

# Level tags (labels)
INFO    = Fore.GREEN   + "[INFO]"    + Style.RESET_ALL
WARN    = Fore.YELLOW  + "[WARN]"    + Style.RESET_ALL
ERROR   = Fore.RED     + "[ERROR]"   + Style.RESET_ALL
SUCCESS = Fore.GREEN   + "[SUCCESS]" + Style.RESET_ALL
UPDATE  = Fore.MAGENTA + "[UPDATE]"  + Style.RESET_ALL

# Inline value colors
COLOR_DIR        = Fore.CYAN
COLOR_TIMESTAMPS = Fore.MAGENTA
COLOR_ROWS       = Fore.RED
COLOR_VAR        = Fore.CYAN
COLOR_TYPE       = Fore.YELLOW
COLOR_DESC       = Fore.MAGENTA
COLOR_REQ        = Fore.RED + "[REQUIRED]" + Style.RESET_ALL

LABELS = {
    "INFO": INFO,
    "WARN": WARN,
    "ERROR": ERROR,
    "SUCCESS": SUCCESS,
    "UPDATE": UPDATE,
}


def _label(level: str) -> str:
    return LABELS.get(level, INFO)


def log(level: str, message: str) -> None:
    print(f"{_label(level)} {message}", flush=True)


def log_info(message: str) -> None:
    log("INFO", message)


def log_warn(message: str) -> None:
    log("WARN", message)


def log_error(message: str) -> None:
    log("ERROR", message)


def log_success(message: str) -> None:
    log("SUCCESS", message)


def log_update(message: str) -> None:
    log("UPDATE", message)


def c_dir(x: object) -> str:
    return f"{COLOR_DIR}{x}{Style.RESET_ALL}"


def c_ts(x: object) -> str:
    return f"{COLOR_TIMESTAMPS}{x}{Style.RESET_ALL}"


def c_rows(x: object) -> str:
    return f"{COLOR_ROWS}{x}{Style.RESET_ALL}"


def c_var(x: object) -> str:
    return f"{COLOR_VAR}{x}{Style.RESET_ALL}"


def c_type(x: object) -> str:
    return f"{COLOR_TYPE}{x}{Style.RESET_ALL}"


def c_desc(x: object) -> str:
    return f"{COLOR_DESC}{x}{Style.RESET_ALL}"


# Polling tag + helper (compact, lightly colored)
POLL_TAG = Fore.CYAN + "[kline-sync]" + Style.RESET_ALL


def poll_print(message: str) -> None:
    print(f"{POLL_TAG} {message}", flush=True)


def fmt_ts_utc(ms: Optional[int]) -> str:
    if ms is None:
        return "N/A"
    try:
        dt = datetime.fromtimestamp(int(ms) / 1000, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return "N/A"
    return dt.strftime("%Y-%m-%d %H:%M:%S UTC")


def fmt_ms(ms: Optional[int]) -> str:
    """Format 'milliseconds -> human time' with coloring."""
    if ms is None:
        return c_var("none")
    return f"{c_var(int(ms))} → {c_ts(fmt_ts_utc(ms))}"
