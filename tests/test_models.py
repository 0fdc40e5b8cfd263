"""Tests for bar value objects and watermark state."""

import pytest

from conftest import BASE, day, make_bar
from kline_sync.models import (
    Bar,
    OldestBoundary,
    SyncState,
    interval_ms,
    page_bounds,
    to_interval_key,
)


class TestBar:
    """Tests for Bar construction and identity."""

    def test_doc_id_is_interval_and_open_time(self) -> None:
        bar = make_bar(0)
        assert bar.doc_id == f"1d{BASE}"
        assert bar.key == ("1d", BASE)

    def test_bar_is_immutable(self) -> None:
        bar = make_bar(0)
        with pytest.raises(AttributeError):
            bar.close = 1.0  # type: ignore[misc]

    def test_open_time_must_precede_close_time(self) -> None:
        with pytest.raises(ValueError, match="before close_time"):
            Bar("1d", day(1), day(1), 1, 1, 1, 1, 0, 0, 0, 0, 0)

    def test_prices_must_sit_within_high_low(self) -> None:
        with pytest.raises(ValueError, match="out of range"):
            Bar("1d", day(0), day(1) - 1, 10, 9, 8, 8.5, 0, 0, 0, 0, 0)

    def test_negative_volume_rejected(self) -> None:
        with pytest.raises(ValueError, match="Negative"):
            Bar("1d", day(0), day(1) - 1, 10, 11, 9, 10, -1, 0, 0, 0, 0)


class TestIntervals:
    def test_daily_aliases_normalize(self) -> None:
        assert to_interval_key(" 1D ") == "1d"
        assert interval_ms("1d") == 86_400_000

    def test_unsupported_interval(self) -> None:
        with pytest.raises(ValueError, match="Unsupported interval"):
            to_interval_key("1h")


class TestPageBounds:
    """page_bounds must not assume ascending order."""

    def test_ascending_page(self) -> None:
        page = [make_bar(1), make_bar(2), make_bar(3)]
        first, last = page_bounds(page)
        assert (first.open_time, last.open_time) == (day(1), day(3))

    def test_descending_page(self) -> None:
        page = [make_bar(3), make_bar(2), make_bar(1)]
        first, last = page_bounds(page)
        assert (first.open_time, last.open_time) == (day(1), day(3))

    def test_single_bar_page(self) -> None:
        first, last = page_bounds([make_bar(5)])
        assert first is last

    def test_empty_page_rejected(self) -> None:
        with pytest.raises(ValueError):
            page_bounds([])


class TestSyncState:
    def test_empty_state_serializes_to_nulls(self) -> None:
        assert SyncState().to_dict() == {"oldest": None, "latest": None}

    def test_state_dict_round_trip(self) -> None:
        state = SyncState(oldest=OldestBoundary(day(2), final=True), latest=day(9) - 1)
        assert SyncState.from_dict(state.to_dict()) == state
