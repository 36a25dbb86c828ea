"""Per-day funding history fan-out across all markets.

For one processing date every market is fetched concurrently. Each request
passes through the shared RateLimiter, so concurrency only shortens the wait
on network round trips, never exceeds the request budget. A failing market
is recorded as an ERROR outcome and never affects its neighbours.
"""

import asyncio
from collections.abc import Iterable
from datetime import date, datetime, time, timedelta, timezone

from dydx_funding.exceptions import IndexerError
from dydx_funding.indexer.client import IndexerClient
from dydx_funding.indexer.rate_limiter import RateLimiter
from dydx_funding.logging import get_logger
from dydx_funding.models import FetchOutcome, FetchStatus, FundingObservation

logger = get_logger(__name__)


def day_window(day: date) -> tuple[datetime, datetime]:
    """Return the half-open UTC window [day, day + 1) as aware datetimes."""
    start = datetime.combine(day, time.min, tzinfo=timezone.utc)
    return start, start + timedelta(days=1)


class FundingResultCollector:
    """Lock-protected ticker -> observations map filled by concurrent fetches."""

    def __init__(self) -> None:
        self._results: dict[str, list[FundingObservation]] = {}
        self._lock = asyncio.Lock()

    async def add(self, ticker: str, observations: list[FundingObservation]) -> None:
        async with self._lock:
            self._results[ticker] = observations

    async def snapshot(self) -> dict[str, list[FundingObservation]]:
        async with self._lock:
            return dict(self._results)


class FundingFetcher:
    """Fetches one day of funding history for every market.

    Args:
        client: Indexer transport.
        rate_limiter: Gate shared with the market catalog.
        history_limit: Entries requested per market (24 hourly ticks).
        max_concurrency: Upper bound on in-flight requests; 0 means unbounded.
    """

    def __init__(
        self,
        client: IndexerClient,
        rate_limiter: RateLimiter,
        history_limit: int = 24,
        max_concurrency: int = 0,
    ) -> None:
        self._client = client
        self._rate_limiter = rate_limiter
        self._history_limit = history_limit
        self._semaphore = asyncio.Semaphore(max_concurrency) if max_concurrency > 0 else None

    async def fetch_day(
        self, day: date, markets: Iterable[str]
    ) -> dict[str, list[FundingObservation]]:
        """Return ticker -> observations for every market fetched successfully.

        Markets whose request failed are absent from the result.
        """
        collector = FundingResultCollector()
        await self.fetch_day_outcomes(day, markets, collector)
        return await collector.snapshot()

    async def fetch_day_outcomes(
        self,
        day: date,
        markets: Iterable[str],
        collector: FundingResultCollector | None = None,
    ) -> list[FetchOutcome]:
        """Fetch every market for one day and return one outcome per market.

        Successful (including empty) results are also added to `collector`
        as each request completes. Returns only after all requests for the
        day have finished.
        """
        _, end = day_window(day)
        tickers = sorted(markets)
        outcomes = await asyncio.gather(
            *(self._fetch_market(ticker, end, collector) for ticker in tickers)
        )

        failed = sum(1 for o in outcomes if o.status is FetchStatus.ERROR)
        logger.info(
            "funding_day_fetched",
            date=day.isoformat(),
            markets=len(tickers),
            failed=failed,
        )
        return list(outcomes)

    async def _fetch_market(
        self,
        ticker: str,
        end: datetime,
        collector: FundingResultCollector | None,
    ) -> FetchOutcome:
        if self._semaphore is None:
            outcome = await self._fetch_market_unbounded(ticker, end)
        else:
            async with self._semaphore:
                outcome = await self._fetch_market_unbounded(ticker, end)

        if collector is not None and outcome.status is not FetchStatus.ERROR:
            await collector.add(ticker, outcome.observations)
        return outcome

    async def _fetch_market_unbounded(self, ticker: str, end: datetime) -> FetchOutcome:
        await self._rate_limiter.acquire()
        try:
            observations = await self._client.fetch_historical_funding(
                ticker, end, limit=self._history_limit
            )
        except IndexerError as e:
            logger.error("funding_fetch_failed", ticker=ticker, error=str(e))
            return FetchOutcome(ticker=ticker, status=FetchStatus.ERROR, error=str(e))

        logger.debug("funding_fetched", ticker=ticker, rates=len(observations))
        status = FetchStatus.SUCCESS if observations else FetchStatus.EMPTY
        return FetchOutcome(ticker=ticker, status=status, observations=observations)
