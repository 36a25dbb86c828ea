"""Entry point for the dYdX funding rate archiver.

Settings come from the environment (see config.py); command-line flags
override them for a single run.

Component wiring order (in build_orchestrator):
1. RateLimiter (shared request budget)
2. MarketCatalog (active market discovery)
3. FundingFetcher (per-day fan-out)
4. SeriesAccumulator (per-market series)
5. ArchiveWriter (merge + atomic replace)
6. DateRangeProvider (processing dates)
7. Orchestrator (run driver)

Example:
  dydx-funding-archive --destination /data --deployment-date 2026-01-10
"""

import argparse
import asyncio
import sys
from datetime import date

from dydx_funding.config import AppSettings
from dydx_funding.data.accumulator import SeriesAccumulator
from dydx_funding.data.archive import ArchiveWriter
from dydx_funding.data.date_range import DateRangeProvider
from dydx_funding.indexer.client import IndexerClient
from dydx_funding.indexer.dydx_client import DydxIndexerClient
from dydx_funding.indexer.rate_limiter import RateLimiter
from dydx_funding.logging import get_logger, setup_logging
from dydx_funding.market_data.catalog import MarketCatalog
from dydx_funding.market_data.funding_fetcher import FundingFetcher
from dydx_funding.orchestrator import Orchestrator


def build_orchestrator(settings: AppSettings, client: IndexerClient) -> Orchestrator:
    """Build the component graph for one run around an (unconnected) client."""
    indexer = settings.indexer
    archive = settings.archive

    rate_limiter = RateLimiter(indexer.rate_limit_requests, indexer.rate_limit_window_seconds)
    catalog = MarketCatalog(client, rate_limiter)
    fetcher = FundingFetcher(
        client,
        rate_limiter,
        history_limit=indexer.history_limit,
        max_concurrency=indexer.max_concurrency,
    )
    writer = ArchiveWriter(
        archive.destination_root,
        existing_data_root=archive.existing_data_root,
        scratch_dir=archive.scratch_dir,
    )
    date_range = DateRangeProvider(archive.start_date, archive.deployment_date)

    return Orchestrator(
        catalog=catalog,
        fetcher=fetcher,
        accumulator=SeriesAccumulator(),
        writer=writer,
        date_range=date_range,
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(
        description="Download dYdX perpetual funding rates into per-market CSV archives"
    )
    ap.add_argument("--destination", help="Archive root (default: ARCHIVE_DESTINATION_ROOT)")
    ap.add_argument(
        "--deployment-date",
        type=date.fromisoformat,
        help="Process only this UTC day, YYYY-MM-DD",
    )
    ap.add_argument(
        "--start-date",
        type=date.fromisoformat,
        help="First day of a full backfill, YYYY-MM-DD (ignored with --deployment-date)",
    )
    ap.add_argument("--existing-data", help="Root of previously published archives to merge with")
    ap.add_argument("--base-url", help="Indexer REST base URL")
    ap.add_argument("--log-level", help="DEBUG, INFO, WARNING, ...")
    return ap.parse_args(argv)


def apply_overrides(settings: AppSettings, args: argparse.Namespace) -> AppSettings:
    """Return settings with command-line values layered over environment values."""
    archive_updates = {
        key: value
        for key, value in (
            ("destination_root", args.destination),
            ("deployment_date", args.deployment_date),
            ("start_date", args.start_date),
            ("existing_data_root", args.existing_data),
        )
        if value is not None
    }
    indexer_updates = {"base_url": args.base_url} if args.base_url else {}

    updates: dict = {
        "archive": settings.archive.model_copy(update=archive_updates),
        "indexer": settings.indexer.model_copy(update=indexer_updates),
    }
    if args.log_level:
        updates["log_level"] = args.log_level
    return settings.model_copy(update=updates)


async def run(settings: AppSettings) -> bool:
    """Run the archiver once with the given settings."""
    logger = get_logger("dydx_funding.main")
    logger.info(
        "funding_archive_starting",
        base_url=settings.indexer.base_url,
        destination=settings.archive.destination_root,
        deployment_date=(
            settings.archive.deployment_date.isoformat()
            if settings.archive.deployment_date
            else None
        ),
    )

    async with DydxIndexerClient(settings.indexer) as client:
        orchestrator = build_orchestrator(settings, client)
        return await orchestrator.run()


def main(argv: list[str] | None = None) -> int:
    """Synchronous entry point."""
    args = parse_args(argv)
    settings = apply_overrides(AppSettings(), args)
    setup_logging(settings.log_level)
    success = asyncio.run(run(settings))
    return 0 if success else 1


if __name__ == "__main__":
    sys.exit(main())
