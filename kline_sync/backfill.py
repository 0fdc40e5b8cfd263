"""
Backward walk from the oldest stored bar toward the start of history.

Each request asks for the newest `page_size` bars strictly older than the
current window end. A short or empty page means the exchange has nothing
older, which marks the oldest watermark final. Reaching the horizon
(`horizon_days` before now) stops the walk without marking it final, so a
later run with a wider horizon can keep going.
"""

from .console import c_rows, c_var, fmt_ms, log_info, log_success, log_update, poll_print
from .errors import SourceError
from .models import DAY_MS, OLDEST, page_bounds
from .walker import PageWalker, WalkResult


class BackfillWalker(PageWalker):

    direction = "backfill"

    def run(self) -> WalkResult:
        result = self._new_result()
        interval = self.interval
        oldest = self.tracker.oldest_boundary(interval)

        if oldest is not None and oldest.final:
            if not self.quiet:
                log_info(f"History already complete back to {fmt_ms(oldest.open_time)}")
            result.stop_reason = "complete"
            return result

        now = self.clock()
        horizon_ms = now - self.config.horizon_days * DAY_MS
        if oldest is None:
            window_end = now
            if not self.quiet:
                log_info("No stored bars, backfilling from now")
        else:
            window_end = oldest.open_time - 1
            if not self.quiet:
                log_info(f"Resuming backfill below {fmt_ms(oldest.open_time)}")

        while True:
            if window_end < horizon_ms:
                if not self.quiet:
                    log_info(
                        f"Backfill horizon reached at {fmt_ms(horizon_ms)} "
                        f"({c_var(self.config.horizon_days)} days); history not marked complete"
                    )
                result.stop_reason = "horizon"
                return result

            raw = self._fetch(None, window_end)
            result.pages += 1
            result.fetched += len(raw)

            if not raw:
                earliest = self.store.query_extreme(interval, OLDEST)
                mark_at = earliest.open_time if earliest is not None else window_end
                self.tracker.mark_oldest(interval, mark_at, True)
                self._done(result, mark_at)
                return result

            first, _ = page_bounds(raw)
            if first.open_time > window_end:
                raise SourceError(
                    "Exchange returned no bars older than the requested window end",
                    symbol=self.symbol, interval=interval, end_ms=window_end,
                )

            page = self.closed_bars(raw, now)
            inserted = self.store.insert_many(page)
            result.inserted += inserted
            if page:
                _, newest = page_bounds(page)
                self.tracker.mark_latest(interval, newest.close_time)
            window_end = first.open_time - 1
            if self.quiet:
                poll_print(f"backfill +{c_rows(inserted)} down to {fmt_ms(first.open_time)}")
            else:
                log_update(
                    f"Stored {c_rows(inserted)}/{c_rows(len(raw))} bars, "
                    f"oldest now {fmt_ms(first.open_time)}"
                )

            if len(raw) < self.config.page_size:
                self.tracker.mark_oldest(interval, first.open_time, True)
                self._done(result, first.open_time)
                return result

            self.tracker.mark_oldest(interval, first.open_time, False)
            if window_end >= horizon_ms:
                self._pause()

    def _done(self, result: WalkResult, open_time: int) -> None:
        result.stop_reason = "exhausted"
        if not self.quiet:
            log_success(f"Reached start of history at {fmt_ms(open_time)}; backfill complete")
