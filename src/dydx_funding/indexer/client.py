"""Abstract indexer client interface.

Defines the contract the catalog and the funding fetcher depend on, keeping
httpx and dYdX payload details isolated in the concrete implementation.
"""

from abc import ABC, abstractmethod
from datetime import datetime

from dydx_funding.models import FundingObservation, Market


class IndexerClient(ABC):
    """Abstract base class for funding-history sources."""

    @abstractmethod
    async def connect(self) -> None:
        """Open the underlying HTTP session."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release the underlying HTTP session."""
        ...

    @abstractmethod
    async def fetch_perpetual_markets(self) -> list[Market]:
        """Return every listed perpetual market with its status.

        Raises IndexerTransportError or IndexerPayloadError.
        """
        ...

    @abstractmethod
    async def fetch_historical_funding(
        self,
        ticker: str,
        effective_before_or_at: datetime,
        limit: int = 24,
    ) -> list[FundingObservation]:
        """Fetch up to `limit` funding entries effective at or before a UTC instant.

        Rate limiting is NOT applied here -- callers acquire the shared
        RateLimiter before each call.

        Raises IndexerTransportError or IndexerPayloadError.
        """
        ...
