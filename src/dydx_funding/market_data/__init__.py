"""Market data layer -- market discovery and per-day funding history fan-out."""

from dydx_funding.market_data.catalog import MarketCatalog
from dydx_funding.market_data.funding_fetcher import (
    FundingFetcher,
    FundingResultCollector,
    day_window,
)

__all__ = ["FundingFetcher", "FundingResultCollector", "MarketCatalog", "day_window"]
