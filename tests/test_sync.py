"""End-to-end tests for the sync orchestrator against a scripted exchange."""

from unittest.mock import MagicMock, patch

import pandas as pd
import pytest

from conftest import FakeMonotonic, FakeSource, day, make_bar, make_bars, noon_of
from kline_sync.errors import SourceError, SyncDeadlineExceeded
from kline_sync.models import OldestBoundary
from kline_sync.sync import BACKFILLING, CURRENT, SyncOrchestrator, find_gaps, synchronize_kline_data


class Clock:
    def __init__(self, now: int) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now


@pytest.fixture
def clock() -> Clock:
    return Clock(noon_of(30))


def _orchestrator(config, store, source, clock, **kwargs) -> SyncOrchestrator:
    return SyncOrchestrator(
        config, "BTCUSDT", source=source, store=store, clock=clock, sleep=lambda s: None, **kwargs
    )


class TestSyncOrchestrator:
    def test_first_run_backfills_then_goes_current(self, config, store, clock) -> None:
        source = FakeSource(make_bars(27, 29))
        orchestrator = _orchestrator(config, store, source, clock)
        assert orchestrator.phase() == BACKFILLING

        report = orchestrator.run()

        assert report.backfill.inserted == 3
        assert report.forward.inserted == 0
        assert report.history_complete
        assert report.state.oldest == OldestBoundary(day(27), final=True)
        assert report.state.latest == day(30) - 1
        assert report.gaps == []
        assert orchestrator.phase() == CURRENT

    def test_complete_history_skips_backfill(self, config, store, clock) -> None:
        source = FakeSource(make_bars(27, 29))
        _orchestrator(config, store, source, clock).run()
        source.calls.clear()

        report = _orchestrator(config, store, source, clock).run()

        assert report.backfill.stop_reason == "complete"
        assert report.backfill.pages == 0
        assert all(c["start_ms"] is not None for c in source.calls)

    def test_empty_exchange_is_complete_after_first_run(self, config, store, clock) -> None:
        source = FakeSource([])
        _orchestrator(config, store, source, clock).run()
        assert store.read_state("1d").oldest == OldestBoundary(clock.now, final=True)
        source.calls.clear()

        report = _orchestrator(config, store, source, clock).run()

        assert report.backfill.stop_reason == "complete"
        assert report.backfill.pages == 0
        assert len(source.calls) == 1
        assert source.calls[0]["start_ms"] is not None
        assert store.count("1d") == 0

    def test_repeated_runs_are_idempotent(self, config, store, clock) -> None:
        source = FakeSource(make_bars(0, 29))
        first = _orchestrator(config, store, source, clock).run()
        second = _orchestrator(config, store, source, clock).run()

        assert second.inserted == 0
        assert second.state == first.state
        assert store.count("1d") == 30

    def test_later_run_picks_up_new_bars(self, config, store, clock) -> None:
        source = FakeSource(make_bars(0, 30))
        _orchestrator(config, store, source, clock).run()
        before = store.read_state("1d")

        source.add(make_bars(31, 34))
        clock.now = noon_of(35)
        report = _orchestrator(config, store, source, clock).run()

        assert report.forward.inserted == 5
        assert report.state.latest == day(35) - 1
        assert report.state.latest >= before.latest
        assert report.state.oldest.open_time <= before.oldest.open_time

    def test_complete_history_has_no_gaps_or_duplicates(self, config, store, clock) -> None:
        source = FakeSource(make_bars(0, 29), descending=True)
        config = config.with_overrides(page_size=7)
        for _ in range(3):
            _orchestrator(config, store, source, clock).run()

        state = store.read_state("1d")
        times = store.open_times("1d")
        assert state.oldest.final
        assert len(times) == len(set(times))
        expected = list(range(state.oldest.open_time, state.latest + 1, 86_400_000))
        assert times == expected

    def test_error_propagates_and_next_run_recovers(self, config, store, clock) -> None:
        source = FakeSource(make_bars(0, 29))
        source.fail_on_call = 1
        source.error = SourceError("timeout")
        with pytest.raises(SourceError):
            _orchestrator(config, store, source, clock).run()
        assert store.count("1d") == 0

        source.fail_on_call = None
        report = _orchestrator(config, store, source, clock).run()
        assert report.inserted == 30

    def test_deadline_from_config(self, config, store, clock) -> None:
        config = config.with_overrides(deadline_seconds=5)
        source = FakeSource(make_bars(0, 29))
        monotonic = FakeMonotonic([0.0, 100.0])

        with pytest.raises(SyncDeadlineExceeded):
            _orchestrator(config, store, source, clock, monotonic=monotonic).run()
        assert source.calls == []


class TestFindGaps:
    def test_contiguous_days(self) -> None:
        assert find_gaps([day(i) for i in range(5)], "1d") == []

    def test_reports_missing_ranges(self) -> None:
        times = [day(0), day(1), day(4), day(6)]
        assert find_gaps(times, "1d") == [(day(2), day(3)), (day(5), day(5))]

    def test_gap_is_reported_after_run(self, config, store, clock) -> None:
        store.insert_many([make_bar(10)])
        source = FakeSource(make_bars(0, 29))
        source.bars = [b for b in source.bars if b.open_time != day(20)]

        report = _orchestrator(config, store, source, clock).run()

        assert report.gaps == [(day(20), day(20))]


class TestSynchronizeKlineData:
    def test_success_returns_true(self, config, store, clock) -> None:
        source = FakeSource(make_bars(25, 29))
        assert synchronize_kline_data(
            "BTCUSDT", config, source=source, store=store, clock=clock, sleep=lambda s: None
        ) is True
        assert store.count("1d") == 5

    def test_failure_is_logged_and_returns_false(self, config, store, clock, capsys) -> None:
        source = FakeSource(make_bars(25, 29))
        source.fail_on_call = 1
        source.error = SourceError("HTTP 418", symbol="BTCUSDT", interval="1d")

        ok = synchronize_kline_data(
            "BTCUSDT", config, source=source, store=store, clock=clock, sleep=lambda s: None
        )

        assert ok is False
        assert "HTTP 418" in capsys.readouterr().out

    def test_corrupt_store_is_logged_and_returns_false(self, config, store, clock, capsys) -> None:
        store.insert_many(make_bars(0, 2))
        path = store.partitions("1d")[0]
        df = pd.read_csv(path, dtype=str)
        df.loc[0, "close"] = "n/a"
        df.to_csv(path, index=False)

        ok = synchronize_kline_data(
            "BTCUSDT", config, source=FakeSource([]), store=store, clock=clock, sleep=lambda s: None
        )

        assert ok is False
        assert "Corrupt row" in capsys.readouterr().out

    def test_owned_source_is_closed(self, config, store, clock) -> None:
        source = MagicMock()
        source.fetch.return_value = []
        with patch("kline_sync.sync.MarketDataSource.for_exchange", return_value=source):
            ok = synchronize_kline_data("BTCUSDT", config, store=store, clock=clock, sleep=lambda s: None)

        assert ok is True
        source.close.assert_called_once_with()

    def test_injected_source_is_left_open(self, config, store, clock) -> None:
        source = MagicMock()
        source.fetch.return_value = []
        synchronize_kline_data("BTCUSDT", config, source=source, store=store, clock=clock, sleep=lambda s: None)
        source.close.assert_not_called()
