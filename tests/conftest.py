"""Shared fixtures: a scripted exchange, day-aligned bars and a fixed clock."""

from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, List, Optional

import pytest

from kline_sync.config import SyncConfig
from kline_sync.models import DAY_MS, Bar
from kline_sync.store import KlineStore

# 2024-01-01T00:00:00Z
BASE = int(datetime(2024, 1, 1, tzinfo=timezone.utc).timestamp() * 1000)
HOUR_MS = 3_600_000


def day(i: int) -> int:
    """Open time of the i-th daily bar after BASE."""
    return BASE + i * DAY_MS


def noon_of(i: int) -> int:
    """A clock reading in the middle of day i (bar i is still forming)."""
    return day(i) + 12 * HOUR_MS


def make_bar(i: int, price: float = 100.0) -> Bar:
    p = price + i
    return Bar(
        interval="1d",
        open_time=day(i),
        close_time=day(i + 1) - 1,
        open=p,
        high=p + 5,
        low=p - 5,
        close=p + 1,
        volume=10.5,
        quote_volume=1050.25,
        trade_count=42,
        taker_buy_base_volume=5.0,
        taker_buy_quote_volume=500.0,
    )


def make_bars(first: int, last: int) -> List[Bar]:
    """Bars for days first..last inclusive."""
    return [make_bar(i) for i in range(first, last + 1)]


class FakeSource:
    """
    In-memory exchange following Binance klines semantics.

    With a start time the oldest `limit` bars at or after it are returned;
    with only an end time, the newest `limit` bars at or before it.
    """

    def __init__(self, bars: List[Bar], *, descending: bool = False) -> None:
        self.bars = sorted(bars, key=lambda b: b.open_time)
        self.descending = descending
        self.calls: List[dict] = []
        self.fail_on_call: Optional[int] = None
        self.error: Optional[Exception] = None

    def add(self, bars: List[Bar]) -> None:
        self.bars = sorted(self.bars + bars, key=lambda b: b.open_time)

    def fetch(self, symbol, interval, start_ms=None, end_ms=None, limit=500):
        self.calls.append(
            {"symbol": symbol, "interval": interval, "start_ms": start_ms, "end_ms": end_ms, "limit": limit}
        )
        if self.fail_on_call is not None and len(self.calls) == self.fail_on_call:
            raise self.error
        matching = [
            b for b in self.bars
            if (not start_ms or b.open_time >= start_ms) and (not end_ms or b.open_time <= end_ms)
        ]
        page = matching[:limit] if start_ms else matching[-limit:]
        if self.descending:
            page = list(reversed(page))
        return page


class FakeMonotonic:
    def __init__(self, readings: List[float]) -> None:
        self.readings = list(readings)

    def __call__(self) -> float:
        if len(self.readings) > 1:
            return self.readings.pop(0)
        return self.readings[0]


@pytest.fixture
def data_root(tmp_path: Path) -> Path:
    return tmp_path / "data"


@pytest.fixture
def store(data_root: Path) -> KlineStore:
    return KlineStore("binance", "btcusdt", root=data_root)


@pytest.fixture
def config(data_root: Path) -> SyncConfig:
    return SyncConfig(symbols=["BTCUSDT"], data_root=data_root, polling=True)


@pytest.fixture
def sleeps() -> List[float]:
    return []


@pytest.fixture
def record_sleep(sleeps: List[float]) -> Callable[[float], None]:
    return sleeps.append
