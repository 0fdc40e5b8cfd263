"""
sync.py

Synchronize daily klines for one exchange/symbol into the local store.
Safe to run repeatedly; every run resumes from the persisted watermarks.

A run has two phases:
    - Backfilling: walk backward until the exchange has nothing older (skipped
      once history is marked complete).
    - Current: walk forward from the newest stored bar up to now.

Runs for the same symbol must not overlap; runs for different symbols touch
disjoint directories and may.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

from .backfill import BackfillWalker
from .boundary import BoundaryTracker
from .config import SyncConfig
from .console import c_dir, c_rows, c_type, c_var, fmt_ms, log_error, log_info, log_success, log_warn
from .errors import KlineSyncError
from .forward import ForwardWalker
from .models import SyncState, interval_ms
from .source import MarketDataSource
from .store import KlineStore
from .walker import WalkResult, now_ms

BACKFILLING = "backfilling"
CURRENT = "current"


def find_gaps(open_times: List[int], interval: str) -> List[Tuple[int, int]]:
    """
    Return (first_missing, last_missing) open-time ranges between the oldest
    and newest stored bar.
    """
    step = interval_ms(interval)
    gaps: List[Tuple[int, int]] = []
    for prev, nxt in zip(open_times, open_times[1:]):
        if nxt - prev > step:
            gaps.append((prev + step, nxt - step))
    return gaps


@dataclass
class SyncReport:
    symbol: str
    interval: str
    backfill: WalkResult
    forward: WalkResult
    state: SyncState
    gaps: List[Tuple[int, int]] = field(default_factory=list)

    @property
    def inserted(self) -> int:
        return self.backfill.inserted + self.forward.inserted

    @property
    def history_complete(self) -> bool:
        return self.state.oldest is not None and self.state.oldest.final


class SyncOrchestrator:
    """Sequences the backfill walk and the forward walk for one symbol."""

    def __init__(
        self,
        config: SyncConfig,
        symbol: str,
        *,
        source=None,
        store: Optional[KlineStore] = None,
        clock: Callable[[], int] = now_ms,
        sleep: Callable[[float], None] = time.sleep,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config
        self.symbol = symbol.upper()
        self.store = store or KlineStore(config.exchange, self.symbol, root=config.data_root)
        self._owns_source = source is None
        self.source = source or MarketDataSource.for_exchange(
            config.exchange,
            timeout_seconds=config.timeout_seconds,
            polling=config.polling,
        )
        self.tracker = BoundaryTracker(self.store)
        self.clock = clock
        self.sleep = sleep
        self.monotonic = monotonic

    def phase(self) -> str:
        oldest = self.tracker.oldest_boundary(self.config.interval)
        if oldest is None or not oldest.final:
            return BACKFILLING
        return CURRENT

    def close(self) -> None:
        """Release the HTTP session of a source this orchestrator created."""
        if self._owns_source:
            self.source.close()

    def _walker(self, cls, deadline: Optional[float]):
        return cls(
            self.source,
            self.store,
            self.config,
            self.symbol,
            tracker=self.tracker,
            clock=self.clock,
            sleep=self.sleep,
            deadline=deadline,
            monotonic=self.monotonic,
        )

    def run(self) -> SyncReport:
        """
        Run one sync pass. Any error aborts the pass and propagates; stored
        bars and watermarks stay consistent, so the next call resumes.
        """
        interval = self.config.interval
        deadline = None
        if self.config.deadline_seconds is not None:
            deadline = self.monotonic() + float(self.config.deadline_seconds)

        if self.phase() == BACKFILLING:
            backfill = self._walker(BackfillWalker, deadline).run()
        else:
            backfill = WalkResult(direction="backfill", stop_reason="complete")

        forward = self._walker(ForwardWalker, deadline).run()

        state = self.tracker.state(interval)
        gaps = find_gaps(self.store.open_times(interval), interval)
        if gaps and not self.config.polling:
            log_warn(f"{c_rows(len(gaps))} gap(s) in stored {c_type(interval)} bars")
            if self.config.verbose:
                for first, last in gaps:
                    log_warn(f"  missing {fmt_ms(first)} .. {fmt_ms(last)}")

        return SyncReport(
            symbol=self.symbol,
            interval=interval,
            backfill=backfill,
            forward=forward,
            state=state,
            gaps=gaps,
        )


def synchronize_kline_data(
    symbol: str,
    config: Optional[SyncConfig] = None,
    **kwargs,
) -> bool:
    """
    Convenience wrapper: build an orchestrator, run it, log the outcome.

    Returns True on success and False on any sync error (already logged).
    Extra keyword arguments are passed to SyncOrchestrator.
    """
    config = config or SyncConfig()
    target = f"{c_type(config.exchange)}/{c_var(symbol.upper())}/{c_type(config.interval)}"
    try:
        orchestrator = SyncOrchestrator(config, symbol, **kwargs)
        try:
            if not config.polling:
                log_info(f"Synchronizing {target} into {c_dir(orchestrator.store.base)}")
            report = orchestrator.run()
        finally:
            orchestrator.close()
    except KlineSyncError as e:
        log_error(f"Synchronization failed for {target}: {e}")
        return False

    if not config.polling:
        state = report.state
        log_info(
            f"Inserted {c_rows(report.inserted)} bars "
            f"(backfill {c_rows(report.backfill.inserted)}, forward {c_rows(report.forward.inserted)})"
        )
        oldest = state.oldest
        if oldest is not None:
            flag = "complete" if oldest.final else "partial"
            log_info(f"Oldest bar: {fmt_ms(oldest.open_time)} [{c_var(flag)}]")
        log_info(f"Latest close: {fmt_ms(state.latest)}")
        log_success(f"Synchronization completed for {target}")
    return True
