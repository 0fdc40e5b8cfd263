"""
store.py

File-backed kline document store, one directory per exchange/symbol/interval.

Layout:
    {root}/{EXCHANGE}/klines/{SYMBOL}/{interval}/YYYY.csv   yearly partitions
    {root}/{EXCHANGE}/klines/{SYMBOL}/{interval}/.syncstate.json

Rows are keyed by `id` = f"{interval}{open_time}". Inserting a key that is
already stored is a skip, never an overwrite: bars are immutable once written.
Each partition file and the state file are replaced atomically.
"""

from __future__ import annotations

import decimal
import json
import os
from collections import defaultdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import pandas as pd

from .errors import StorageError
from .models import NEWEST, OLDEST, Bar, SyncState, to_interval_key

ROOT_PATH = Path.home() / ".kline_sync"

STATE_FILE = ".syncstate.json"
PARTITION_FMT = "%Y"

CSV_COLUMNS = [
    "id",
    "interval",
    "open_time",
    "close_time",
    "open",
    "high",
    "low",
    "close",
    "volume",
    "quote_volume",
    "trade_count",
    "taker_buy_base_volume",
    "taker_buy_quote_volume",
]
FLOAT_COLUMNS = [
    "open",
    "high",
    "low",
    "close",
    "volume",
    "quote_volume",
    "taker_buy_base_volume",
    "taker_buy_quote_volume",
]
INT_COLUMNS = ["open_time", "close_time", "trade_count"]

# ------------------------------ Utilities --------------------------------- #

def normalize_exchange(exchange: str) -> str:
    return (exchange or "").upper()


def _safe_join_and_assert_within_root(root: Path, *parts: str) -> Path:
    """Prevent path traversal via user-controlled segments."""
    candidate = root
    for p in parts:
        candidate = candidate / p
    resolved = candidate.resolve()
    try:
        resolved.relative_to(root.resolve())
    except ValueError:
        raise StorageError("Invalid path components: resolved path escapes the data root", path=str(candidate))
    return resolved


def partition_name(open_time: int) -> str:
    dt = datetime.fromtimestamp(int(open_time) / 1000, tz=timezone.utc)
    return dt.strftime(PARTITION_FMT)


def _canonical_num_str(x: object) -> str:
    # 10dp covers every exchange quote precision we ingest
    s = f"{decimal.Decimal(str(x)):.10f}"
    s = s.rstrip("0").rstrip(".")
    return s if s else "0"


def bar_to_row(bar: Bar) -> Dict[str, str]:
    row = {
        "id": bar.doc_id,
        "interval": bar.interval,
        "open_time": str(bar.open_time),
        "close_time": str(bar.close_time),
        "trade_count": str(bar.trade_count),
    }
    for col in FLOAT_COLUMNS:
        row[col] = _canonical_num_str(getattr(bar, col))
    return row


def row_to_bar(row: Dict[str, object]) -> Bar:
    values: Dict[str, object] = {"interval": str(row["interval"])}
    for col in INT_COLUMNS:
        values[col] = int(row[col])
    for col in FLOAT_COLUMNS:
        values[col] = float(row[col])
    return Bar(**values)


def _read_partition(path: Path) -> pd.DataFrame:
    df = pd.read_csv(path, dtype=str)
    for col in CSV_COLUMNS:
        if col not in df.columns:
            df[col] = pd.Series(dtype=str)
    return df[CSV_COLUMNS]


def write_partition(df: pd.DataFrame, path: Path) -> int:
    """
    Merge new rows into an existing partition (if any) and write canonical CSV.

    Rows already on disk win over incoming rows with the same id.
    Returns the delta (#rows in merged - #rows in old).
    """
    if path.exists():
        old = _read_partition(path)
    else:
        old = pd.DataFrame(columns=CSV_COLUMNS)

    merged = (
        pd.concat([old, df[CSV_COLUMNS]], ignore_index=True)
        .drop_duplicates(subset="id", keep="first")
        .assign(_sort=lambda x: pd.to_numeric(x.open_time, errors="raise"))
        .sort_values("_sort")
        .drop(columns="_sort")
    )
    delta = int(len(merged) - len(old))
    if delta == 0:
        return 0

    tmp = path.with_name(path.name + ".tmp")
    merged.to_csv(tmp, index=False)
    os.replace(tmp, path)
    return delta


# ------------------------------ Store ------------------------------------- #

class KlineStore:
    """Kline documents and sync watermarks for one exchange/symbol."""

    def __init__(self, exchange: str, symbol: str, root: Optional[Path] = None) -> None:
        self.root = Path(root) if root is not None else ROOT_PATH
        self.exchange = normalize_exchange(exchange)
        self.symbol = symbol.upper()
        self.base = _safe_join_and_assert_within_root(self.root, self.exchange, "klines", self.symbol)

    def __repr__(self) -> str:
        return f"KlineStore({self.exchange}/{self.symbol} @ {self.base})"

    def interval_dir(self, interval: str, *, create: bool = False) -> Path:
        path = self.base / to_interval_key(interval)
        if create:
            try:
                path.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise StorageError(f"Cannot create directory: {e}", path=str(path)) from e
        return path

    def partitions(self, interval: str) -> List[Path]:
        path = self.interval_dir(interval)
        if not path.is_dir():
            return []
        return sorted(p for p in path.glob("*.csv"))

    # -------------------------- documents --------------------------------- #

    def insert(self, bar: Bar) -> bool:
        """Store one bar. Returns False when its key is already stored."""
        return self.insert_many([bar]) == 1

    def insert_many(self, bars: Iterable[Bar]) -> int:
        """
        Store bars, skipping keys that are already present (or repeated in the
        batch). Returns how many bars were newly stored.

        Partitions are written one at a time; if a write fails, partitions
        written earlier in the call stay stored and StorageError is raised.
        """
        groups: Dict[tuple, List[Dict[str, str]]] = defaultdict(list)
        for bar in bars:
            groups[(bar.interval, partition_name(bar.open_time))].append(bar_to_row(bar))
        if not groups:
            return 0

        inserted = 0
        for (interval, part), rows in sorted(groups.items()):
            path = self.interval_dir(interval, create=True) / f"{part}.csv"
            try:
                inserted += write_partition(pd.DataFrame(rows, columns=CSV_COLUMNS), path)
            except (OSError, ValueError, KeyError) as e:
                raise StorageError(
                    f"Failed to write partition after {inserted} new bars: {e}", path=str(path)
                ) from e
        return inserted

    def query_extreme(self, interval: str, direction: str) -> Optional[Bar]:
        """Return the oldest or newest stored bar for an interval, or None."""
        if direction not in (OLDEST, NEWEST):
            raise ValueError(f"direction must be '{OLDEST}' or '{NEWEST}', got {direction!r}")
        parts = self.partitions(interval)
        if direction == NEWEST:
            parts = list(reversed(parts))
        for path in parts:
            df = self._load_partition(path)
            if df.empty:
                continue
            times = self._open_time_column(df, path)
            idx = times.idxmin() if direction == OLDEST else times.idxmax()
            return self._to_bar(df.loc[idx].to_dict(), path)
        return None

    def load(self, interval: str) -> List[Bar]:
        """All stored bars for an interval, ascending by open_time."""
        bars: List[Bar] = []
        for path in self.partitions(interval):
            df = self._load_partition(path)
            bars.extend(self._to_bar(r, path) for r in df.to_dict("records"))
        bars.sort(key=lambda b: b.open_time)
        return bars

    def open_times(self, interval: str) -> List[int]:
        times: List[int] = []
        for path in self.partitions(interval):
            df = self._load_partition(path)
            times.extend(int(t) for t in self._open_time_column(df, path))
        return sorted(times)

    def count(self, interval: str) -> int:
        return len(self.open_times(interval))

    def _load_partition(self, path: Path) -> pd.DataFrame:
        try:
            return _read_partition(path)
        except (OSError, ValueError) as e:
            raise StorageError(f"Failed to read partition: {e}", path=str(path)) from e

    @staticmethod
    def _open_time_column(df: pd.DataFrame, path: Path) -> pd.Series:
        try:
            return pd.to_numeric(df["open_time"])
        except (ValueError, TypeError) as e:
            raise StorageError(f"Corrupt open_time column: {e}", path=str(path)) from e

    @staticmethod
    def _to_bar(row: Dict[str, object], path: Path) -> Bar:
        try:
            return row_to_bar(row)
        except (KeyError, TypeError, ValueError) as e:
            raise StorageError(f"Corrupt row {row.get('id')!r}: {e}", path=str(path)) from e

    # -------------------------- watermarks -------------------------------- #

    def read_state(self, interval: str) -> SyncState:
        path = self.interval_dir(interval) / STATE_FILE
        if not path.exists():
            return SyncState()
        try:
            with path.open("r", encoding="utf-8") as f:
                return SyncState.from_dict(json.load(f))
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise StorageError(f"Failed to read sync state: {e}", path=str(path)) from e

    def write_state(self, interval: str, state: SyncState) -> None:
        path = self.interval_dir(interval, create=True) / STATE_FILE
        tmp = path.with_name(path.name + ".tmp")
        try:
            with tmp.open("w", encoding="utf-8") as f:
                json.dump(state.to_dict(), f, indent=2, sort_keys=True)
            os.replace(tmp, path)
        except OSError as e:
            raise StorageError(f"Failed to write sync state: {e}", path=str(path)) from e
