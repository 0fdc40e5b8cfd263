"""
Shared plumbing for the backfill and forward walkers: clock, pacing between
requests, the optional run deadline, and the per-walk tally.
"""

import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence

from .boundary import BoundaryTracker
from .config import SyncConfig
from .errors import SyncDeadlineExceeded
from .models import Bar
from .store import KlineStore


def now_ms() -> int:
    return int(datetime.now(timezone.utc).timestamp() * 1000)


@dataclass
class WalkResult:
    """What one walker did during a run."""
    direction: str
    pages: int = 0
    fetched: int = 0
    inserted: int = 0
    stop_reason: str = ""


class PageWalker:
    """Base class holding the collaborators both walkers share."""

    direction = ""

    def __init__(
        self,
        source,
        store: KlineStore,
        config: SyncConfig,
        symbol: str,
        *,
        tracker: Optional[BoundaryTracker] = None,
        clock: Callable[[], int] = now_ms,
        sleep: Callable[[float], None] = time.sleep,
        deadline: Optional[float] = None,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self.source = source
        self.store = store
        self.config = config
        self.symbol = symbol
        self.tracker = tracker or BoundaryTracker(store)
        self.clock = clock
        self.sleep = sleep
        self.deadline = deadline
        self.monotonic = monotonic

    @property
    def interval(self) -> str:
        return self.config.interval

    @property
    def quiet(self) -> bool:
        return self.config.polling

    def _new_result(self) -> WalkResult:
        return WalkResult(direction=self.direction)

    def _pause(self) -> None:
        delay = self.config.request_delay_ms / 1000
        if delay > 0:
            self.sleep(delay)

    def _check_deadline(self, window: str) -> None:
        if self.deadline is not None and self.monotonic() >= self.deadline:
            raise SyncDeadlineExceeded(
                f"Deadline passed before {self.direction} request "
                f"(symbol={self.symbol}, interval={self.interval}, window={window})"
            )

    def _fetch(self, start_ms: Optional[int], end_ms: Optional[int]) -> List[Bar]:
        self._check_deadline(f"[{start_ms}, {end_ms}]")
        return self.source.fetch(
            self.symbol,
            self.interval,
            start_ms=start_ms,
            end_ms=end_ms,
            limit=self.config.page_size,
        )

    @staticmethod
    def closed_bars(page: Sequence[Bar], now: int) -> List[Bar]:
        """Drop the bar that is still forming; stored bars are never rewritten."""
        return [b for b in page if b.close_time < now]
