"""Indexer client layer -- dYdX v4 REST API integration via httpx."""

from dydx_funding.indexer.client import IndexerClient
from dydx_funding.indexer.dydx_client import DydxIndexerClient
from dydx_funding.indexer.rate_limiter import RateLimiter

__all__ = ["DydxIndexerClient", "IndexerClient", "RateLimiter"]
