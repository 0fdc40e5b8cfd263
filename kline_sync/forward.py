"""
Forward walk from the latest ingested bar up to now.

Loops because one page may not cover the gap after a long outage.
"""

from .console import c_rows, fmt_ms, log_info, log_update, poll_print
from .errors import SourceError
from .models import DAY_MS, page_bounds
from .walker import PageWalker, WalkResult


class ForwardWalker(PageWalker):

    direction = "forward"

    def run(self) -> WalkResult:
        result = self._new_result()
        interval = self.interval
        latest = self.tracker.latest_boundary(interval)

        now = self.clock()
        end = now
        if latest is None:
            start = now - self.config.horizon_days * DAY_MS
        else:
            start = latest + 1

        if start >= end:
            if not self.quiet:
                log_info("Data is already up to date")
            result.stop_reason = "current"
            return result

        if not self.quiet:
            log_info(f"Syncing forward from {fmt_ms(start)}")

        while True:
            raw = self._fetch(start, end)
            result.pages += 1
            result.fetched += len(raw)
            if not raw:
                if not self.quiet:
                    log_info("No more data to sync")
                result.stop_reason = "current"
                return result

            page = self.closed_bars(raw, now)
            inserted = self.store.insert_many(page)
            result.inserted += inserted
            if not page:
                # only the still-forming bar came back
                result.stop_reason = "current"
                return result

            _, last = page_bounds(page)
            if last.close_time < start:
                raise SourceError(
                    "Exchange returned bars older than the requested start",
                    symbol=self.symbol, interval=interval, start_ms=start, end_ms=end,
                )
            self.tracker.mark_latest(interval, last.close_time)
            if self.quiet:
                poll_print(f"forward +{c_rows(inserted)} up to {fmt_ms(last.close_time)}")
            else:
                log_update(f"Synced {c_rows(inserted)} bars, latest close {fmt_ms(last.close_time)}")

            if len(raw) < self.config.page_size:
                result.stop_reason = "current"
                return result

            start = last.close_time + 1
            if start >= end:
                result.stop_reason = "current"
                return result
            self._pause()
