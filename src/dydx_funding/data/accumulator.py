"""Folds per-day fetch results into one time series per market."""

from collections.abc import Mapping
from datetime import date, datetime, timezone

from dydx_funding.logging import get_logger
from dydx_funding.models import FundingObservation, PerMarketSeries

logger = get_logger(__name__)


def truncate_to_second(moment: datetime) -> datetime:
    """Drop sub-second precision and return a naive UTC datetime."""
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc).replace(tzinfo=None)
    return moment.replace(microsecond=0)


class SeriesAccumulator:
    """Upserts fetched observations into per-market series.

    Consecutive days overlap (each request returns the 24 entries at or
    before the window end), so the same timestamp is seen more than once.
    The last observation written for a timestamp wins.
    """

    def accumulate(
        self,
        existing: dict[str, PerMarketSeries],
        day_results: Mapping[str, list[FundingObservation]],
        date_filter: date | None = None,
        day: date | None = None,
    ) -> dict[str, int]:
        """Merge one day's results into `existing` in place.

        Args:
            existing: ticker -> series, owned by the caller for the whole run.
            day_results: ticker -> observations from FundingFetcher.fetch_day().
            date_filter: When set, keep only observations effective on this UTC date.
            day: Processing date, used for log context only.

        Returns:
            ticker -> number of observations retained from this call.
        """
        retained: dict[str, int] = {}

        for ticker, observations in day_results.items():
            series = existing.setdefault(ticker, {})

            count = 0
            for observation in observations:
                effective_at = observation.effective_at
                if effective_at.tzinfo is not None:
                    effective_at = effective_at.astimezone(timezone.utc)

                if date_filter is not None and effective_at.date() != date_filter:
                    continue

                series[truncate_to_second(effective_at)] = observation.rate
                count += 1

            retained[ticker] = count
            logger.debug(
                "funding_rates_processed",
                ticker=ticker,
                date=day.isoformat() if day else None,
                retained=count,
                received=len(observations),
            )

        return retained
