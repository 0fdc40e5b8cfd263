"""
Synchronization watermarks on top of KlineStore.

oldest: earliest stored open_time plus a sticky "history is complete" flag.
latest: close_time of the newest ingested bar; never moves backward.

When a watermark is missing from the state file but bars are stored (for
example the run died between inserting a page and recording it), the value is
recomputed from the stored bars.
"""

from typing import Optional

from .models import NEWEST, OLDEST, OldestBoundary, SyncState
from .store import KlineStore


class BoundaryTracker:
    """Reads and advances the per-interval watermarks. Store errors propagate."""

    def __init__(self, store: KlineStore) -> None:
        self.store = store

    def state(self, interval: str) -> SyncState:
        return SyncState(
            oldest=self.oldest_boundary(interval),
            latest=self.latest_boundary(interval),
        )

    def oldest_boundary(self, interval: str) -> Optional[OldestBoundary]:
        """None means no sync has ever stored anything for this interval."""
        stored = self.store.read_state(interval).oldest
        if stored is not None:
            return stored
        earliest = self.store.query_extreme(interval, OLDEST)
        if earliest is None:
            return None
        return OldestBoundary(earliest.open_time, final=False)

    def latest_boundary(self, interval: str) -> Optional[int]:
        """None means no bars are stored for this interval."""
        stored = self.store.read_state(interval).latest
        if stored is not None:
            return stored
        newest = self.store.query_extreme(interval, NEWEST)
        return None if newest is None else newest.close_time

    def mark_oldest(self, interval: str, open_time: int, final: bool) -> OldestBoundary:
        """
        Record the backfill watermark.

        The open time only ever moves earlier and `final` never reverts to
        False, so repeated or out-of-order calls are harmless.
        """
        state = self.store.read_state(interval)
        current = self.oldest_boundary(interval)
        if current is None:
            updated = OldestBoundary(int(open_time), bool(final))
        else:
            updated = OldestBoundary(
                min(current.open_time, int(open_time)),
                current.final or bool(final),
            )
        if updated != state.oldest:
            self.store.write_state(interval, SyncState(oldest=updated, latest=state.latest))
        return updated

    def mark_latest(self, interval: str, close_time: int) -> int:
        """Advance the forward watermark; a value at or below the current one is a no-op."""
        current = self.latest_boundary(interval)
        target = int(close_time) if current is None else max(current, int(close_time))
        state = self.store.read_state(interval)
        if state.latest != target:
            self.store.write_state(interval, SyncState(oldest=state.oldest, latest=target))
        return target
