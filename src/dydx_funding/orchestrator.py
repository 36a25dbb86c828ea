"""Run orchestrator -- wires catalog, fetcher, accumulator and archive writer.

One run:
  1. CATALOG: fetch the active market list once
  2. FETCH: for each processing date, fan out one request per market
  3. ACCUMULATE: fold the day's results into per-market series
  4. PERSIST: after the last date, merge each non-empty series into its archive
  5. REPORT: log a RunReport with fetch outcome and write counters

Catalog and per-market fetch failures are absorbed and counted; run() always
returns True for them. Filesystem errors while persisting propagate.
"""

import time
import uuid

from dydx_funding.data.accumulator import SeriesAccumulator
from dydx_funding.data.archive import ArchiveWriter
from dydx_funding.data.date_range import DateRangeProvider
from dydx_funding.logging import bind_run_context, clear_run_context, get_logger
from dydx_funding.market_data.catalog import MarketCatalog
from dydx_funding.market_data.funding_fetcher import (
    FundingFetcher,
    FundingResultCollector,
)
from dydx_funding.models import PerMarketSeries, RunReport

logger = get_logger(__name__)


class Orchestrator:
    """Drives one archiver run over the processing date range.

    Args:
        catalog: Active market discovery.
        fetcher: Per-day funding fan-out.
        accumulator: Folds day results into per-market series.
        writer: Merges series into the CSV archive.
        date_range: Supplies the processing dates and the optional deployment date.
    """

    def __init__(
        self,
        catalog: MarketCatalog,
        fetcher: FundingFetcher,
        accumulator: SeriesAccumulator,
        writer: ArchiveWriter,
        date_range: DateRangeProvider,
    ) -> None:
        self._catalog = catalog
        self._fetcher = fetcher
        self._accumulator = accumulator
        self._writer = writer
        self._date_range = date_range
        self._last_report: RunReport | None = None

    @property
    def last_report(self) -> RunReport | None:
        return self._last_report

    async def run(self) -> bool:
        """Fetch every processing date and persist the accumulated series."""
        clear_run_context()
        bind_run_context(run_id=uuid.uuid4().hex[:12])
        start_time = time.monotonic()
        report = RunReport()
        self._last_report = report

        dates = self._date_range.processing_dates()
        date_filter = self._date_range.deployment_date
        report.days = len(dates)
        if dates:
            report.first_date = dates[0]
            report.last_date = dates[-1]

        logger.info(
            "archive_run_starting",
            days=len(dates),
            first_date=dates[0].isoformat() if dates else None,
            last_date=dates[-1].isoformat() if dates else None,
            deployment_date=date_filter.isoformat() if date_filter else None,
        )

        markets = await self._catalog.fetch_active_markets()
        report.markets = len(markets)
        if self._catalog.last_outcome is not None:
            report.catalog_status = self._catalog.last_outcome.status

        series_by_ticker: dict[str, PerMarketSeries] = {}
        if markets:
            for i, day in enumerate(dates, 1):
                collector = FundingResultCollector()
                outcomes = await self._fetcher.fetch_day_outcomes(day, markets, collector)
                for outcome in outcomes:
                    report.record(outcome)

                retained = self._accumulator.accumulate(
                    series_by_ticker,
                    await collector.snapshot(),
                    date_filter=date_filter,
                    day=day,
                )
                report.observations_retained += sum(retained.values())
                logger.info(
                    "archive_day_processed",
                    date=day.isoformat(),
                    progress=f"{i}/{len(dates)}",
                    markets_with_data=sum(1 for n in retained.values() if n),
                )

        for ticker in sorted(series_by_ticker):
            series = series_by_ticker[ticker]
            if not series:
                continue
            lines = self._writer.persist(ticker, series)
            report.files_written += 1
            report.lines_written += lines
            logger.info("archive_saved", ticker=ticker, rates=len(series), lines=lines)

        logger.info(
            "archive_run_complete",
            markets=report.markets,
            days=report.days,
            catalog_status=report.catalog_status.value if report.catalog_status else None,
            fetch_success=report.fetch_success,
            fetch_empty=report.fetch_empty,
            fetch_error=report.fetch_error,
            observations_retained=report.observations_retained,
            files_written=report.files_written,
            lines_written=report.lines_written,
            total_duration_seconds=round(time.monotonic() - start_time, 1),
        )
        return True
