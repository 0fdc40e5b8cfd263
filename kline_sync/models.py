"""
Value objects shared by the store, the source and the walkers.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple

DAY_MS = 86_400_000

# Only daily bars are synchronized; the table keeps the lookup in one place.
INTERVAL_MS: Dict[str, int] = {"1d": DAY_MS}
VALID_INTERVALS = frozenset(INTERVAL_MS)

OLDEST = "oldest"
NEWEST = "newest"


def to_interval_key(interval: str) -> str:
    # "1D" and " 1d" both map to "1d"
    key = (interval or "").strip().lower()
    if key not in VALID_INTERVALS:
        raise ValueError(f"Unsupported interval: {interval}")
    return key


def interval_ms(interval: str) -> int:
    return INTERVAL_MS[to_interval_key(interval)]


@dataclass(frozen=True)
class Bar:
    """One OHLCV candlestick for a fixed interval, as returned by the exchange."""
    interval: str
    open_time: int   # ms since epoch
    close_time: int  # ms since epoch
    open: float
    high: float
    low: float
    close: float
    volume: float
    quote_volume: float
    trade_count: int
    taker_buy_base_volume: float
    taker_buy_quote_volume: float

    def __post_init__(self) -> None:
        if self.open_time >= self.close_time:
            raise ValueError(
                f"open_time {self.open_time} must be before close_time {self.close_time}"
            )
        if not (self.low <= min(self.open, self.close) and max(self.open, self.close) <= self.high):
            raise ValueError(
                f"Prices out of range at {self.open_time}: "
                f"O={self.open} H={self.high} L={self.low} C={self.close}"
            )
        magnitudes = (
            self.volume,
            self.quote_volume,
            self.taker_buy_base_volume,
            self.taker_buy_quote_volume,
            self.trade_count,
        )
        if any(m < 0 for m in magnitudes):
            raise ValueError(f"Negative volume or trade count at {self.open_time}")

    @property
    def key(self) -> Tuple[str, int]:
        return (self.interval, self.open_time)

    @property
    def doc_id(self) -> str:
        """Physical primary key; `{interval}{open_time}` maps 1:1 to `key`."""
        return f"{self.interval}{self.open_time}"


@dataclass(frozen=True)
class OldestBoundary:
    """Backfill watermark: earliest stored bar, and whether history is complete."""
    open_time: int
    final: bool = False


@dataclass(frozen=True)
class SyncState:
    """Per-interval watermarks persisted next to the bars."""
    oldest: Optional[OldestBoundary] = None
    latest: Optional[int] = None  # close_time of the newest ingested bar

    def to_dict(self) -> Dict[str, object]:
        return {
            "oldest": None if self.oldest is None else {
                "open_time": self.oldest.open_time,
                "final": self.oldest.final,
            },
            "latest": None if self.latest is None else {"close_time": self.latest},
        }

    @staticmethod
    def from_dict(data: Dict[str, object]) -> "SyncState":
        oldest_raw = data.get("oldest") or None
        latest_raw = data.get("latest") or None
        oldest = None
        if oldest_raw:
            oldest = OldestBoundary(int(oldest_raw["open_time"]), bool(oldest_raw.get("final", False)))
        latest = int(latest_raw["close_time"]) if latest_raw else None
        return SyncState(oldest=oldest, latest=latest)


def page_bounds(page: Sequence[Bar]) -> Tuple[Bar, Bar]:
    """
    Return (earliest, latest) bar of a page.

    The source does not promise an ordering, so the two endpoints are compared
    instead of trusting page[0] to be the oldest.
    """
    if not page:
        raise ValueError("page_bounds() needs a non-empty page")
    first, last = page[0], page[-1]
    if first.open_time <= last.open_time:
        return first, last
    return last, first
