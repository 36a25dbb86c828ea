"""Tests for SeriesAccumulator -- upsert semantics, truncation, date filter."""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from dydx_funding.data.accumulator import SeriesAccumulator, truncate_to_second
from dydx_funding.models import FundingObservation, PerMarketSeries


def _obs(ticker: str, moment: datetime, rate: str) -> FundingObservation:
    return FundingObservation(ticker=ticker, effective_at=moment, rate=Decimal(rate))


def _utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def accumulator() -> SeriesAccumulator:
    return SeriesAccumulator()


class TestTruncateToSecond:
    def test_drops_microseconds(self) -> None:
        assert truncate_to_second(_utc(2026, 1, 10, 8, 0, 0, 999_999)) == datetime(
            2026, 1, 10, 8, 0, 0
        )

    def test_result_is_naive_utc(self) -> None:
        moment = datetime(2026, 1, 10, 10, 0, tzinfo=timezone(timedelta(hours=2)))
        result = truncate_to_second(moment)
        assert result.tzinfo is None
        assert result == datetime(2026, 1, 10, 8, 0)


class TestAccumulate:
    def test_creates_series_per_ticker(self, accumulator: SeriesAccumulator) -> None:
        existing: dict[str, PerMarketSeries] = {}
        accumulator.accumulate(
            existing,
            {
                "BTC-USD": [_obs("BTC-USD", _utc(2026, 1, 10, 1), "0.0001")],
                "ETH-USD": [_obs("ETH-USD", _utc(2026, 1, 10, 1), "0.0002")],
            },
        )
        assert existing == {
            "BTC-USD": {datetime(2026, 1, 10, 1): Decimal("0.0001")},
            "ETH-USD": {datetime(2026, 1, 10, 1): Decimal("0.0002")},
        }

    def test_empty_result_still_creates_series(self, accumulator: SeriesAccumulator) -> None:
        existing: dict[str, PerMarketSeries] = {}
        counts = accumulator.accumulate(existing, {"SOL-USD": []})
        assert existing == {"SOL-USD": {}}
        assert counts == {"SOL-USD": 0}

    def test_sub_second_duplicates_collapse_last_wins(
        self, accumulator: SeriesAccumulator
    ) -> None:
        existing: dict[str, PerMarketSeries] = {}
        accumulator.accumulate(
            existing,
            {
                "BTC-USD": [
                    _obs("BTC-USD", _utc(2026, 1, 10, 5, 0, 0, 100), "0.0001"),
                    _obs("BTC-USD", _utc(2026, 1, 10, 5, 0, 0, 900_000), "0.0003"),
                ]
            },
        )
        assert existing["BTC-USD"] == {datetime(2026, 1, 10, 5): Decimal("0.0003")}

    def test_later_day_overwrites_overlap(self, accumulator: SeriesAccumulator) -> None:
        existing: dict[str, PerMarketSeries] = {}
        overlap = _utc(2026, 1, 11, 0)
        accumulator.accumulate(existing, {"BTC-USD": [_obs("BTC-USD", overlap, "0.0001")]})
        accumulator.accumulate(existing, {"BTC-USD": [_obs("BTC-USD", overlap, "0.0005")]})
        assert existing["BTC-USD"][datetime(2026, 1, 11, 0)] == Decimal("0.0005")

    def test_keeps_prior_entries(self, accumulator: SeriesAccumulator) -> None:
        existing: dict[str, PerMarketSeries] = {
            "BTC-USD": {datetime(2026, 1, 9, 12): Decimal("0.00009")}
        }
        accumulator.accumulate(
            existing, {"BTC-USD": [_obs("BTC-USD", _utc(2026, 1, 10, 12), "0.0001")]}
        )
        assert len(existing["BTC-USD"]) == 2

    def test_returns_retained_counts(self, accumulator: SeriesAccumulator) -> None:
        observations = [_obs("BTC-USD", _utc(2026, 1, 10, h), "0.0001") for h in range(24)]
        counts = accumulator.accumulate({}, {"BTC-USD": observations})
        assert counts == {"BTC-USD": 24}


class TestDateFilter:
    def test_filters_other_days(self, accumulator: SeriesAccumulator) -> None:
        existing: dict[str, PerMarketSeries] = {}
        observations = [
            _obs("BTC-USD", _utc(2026, 1, 9, 23), "0.0001"),
            _obs("BTC-USD", _utc(2026, 1, 10, 0), "0.0002"),
            _obs("BTC-USD", _utc(2026, 1, 10, 23, 59, 59), "0.0003"),
            _obs("BTC-USD", _utc(2026, 1, 11, 0), "0.0004"),
        ]
        counts = accumulator.accumulate(
            existing, {"BTC-USD": observations}, date_filter=date(2026, 1, 10)
        )
        assert counts == {"BTC-USD": 2}
        assert sorted(existing["BTC-USD"]) == [
            datetime(2026, 1, 10, 0),
            datetime(2026, 1, 10, 23, 59, 59),
        ]

    def test_filter_uses_utc_date(self, accumulator: SeriesAccumulator) -> None:
        # 2026-01-11 01:00 at +02:00 is 2026-01-10 23:00 UTC
        moment = datetime(2026, 1, 11, 1, 0, tzinfo=timezone(timedelta(hours=2)))
        existing: dict[str, PerMarketSeries] = {}
        accumulator.accumulate(
            existing, {"BTC-USD": [_obs("BTC-USD", moment, "0.0001")]}, date_filter=date(2026, 1, 10)
        )
        assert existing["BTC-USD"] == {datetime(2026, 1, 10, 23): Decimal("0.0001")}

    def test_nothing_matches(self, accumulator: SeriesAccumulator) -> None:
        existing: dict[str, PerMarketSeries] = {}
        counts = accumulator.accumulate(
            existing,
            {"BTC-USD": [_obs("BTC-USD", _utc(2026, 1, 11, 0), "0.0001")]},
            date_filter=date(2026, 1, 10),
        )
        assert counts == {"BTC-USD": 0}
        assert existing == {"BTC-USD": {}}
