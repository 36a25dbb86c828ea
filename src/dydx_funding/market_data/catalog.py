"""Market catalog -- discovers which perpetual markets to archive.

A catalog failure is non-fatal: the run proceeds with an empty
market set and simply archives nothing. The failure is kept as a FetchOutcome
so the orchestrator can report it.
"""

from dydx_funding.exceptions import IndexerError
from dydx_funding.indexer.client import IndexerClient
from dydx_funding.indexer.rate_limiter import RateLimiter
from dydx_funding.logging import get_logger
from dydx_funding.models import FetchOutcome, FetchStatus

logger = get_logger(__name__)


class MarketCatalog:
    """Fetches the perpetual market list and keeps active, well-formed tickers."""

    def __init__(self, client: IndexerClient, rate_limiter: RateLimiter) -> None:
        self._client = client
        self._rate_limiter = rate_limiter
        self._last_outcome: FetchOutcome | None = None

    @property
    def last_outcome(self) -> FetchOutcome | None:
        """Outcome of the most recent fetch_active_markets() call."""
        return self._last_outcome

    async def fetch_active_markets(self) -> set[str]:
        """Return tickers with status ACTIVE and no embedded comma.

        Issues exactly one rate-limited request. Returns an empty set on any
        transport or payload failure.
        """
        await self._rate_limiter.acquire()
        try:
            markets = await self._client.fetch_perpetual_markets()
        except IndexerError as e:
            logger.error("market_catalog_fetch_failed", error=str(e))
            self._last_outcome = FetchOutcome(
                ticker=None, status=FetchStatus.ERROR, error=str(e)
            )
            return set()

        active = [m for m in markets if m.is_active]
        tickers = {m.ticker for m in active if m.is_valid_ticker}

        skipped = sorted(m.ticker for m in active if not m.is_valid_ticker)
        if skipped:
            logger.debug("market_catalog_skipped_invalid_tickers", tickers=skipped)

        logger.info(
            "market_catalog_fetched",
            listed=len(markets),
            active=len(active),
            selected=len(tickers),
        )
        self._last_outcome = FetchOutcome(
            ticker=None,
            status=FetchStatus.SUCCESS if tickers else FetchStatus.EMPTY,
        )
        return tickers
