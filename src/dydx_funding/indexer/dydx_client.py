"""dYdX v4 indexer client implementation via httpx async.

Wraps httpx.AsyncClient with base URL handling, request timeouts, and typed
parsing of the two endpoints the archiver needs:

- GET perpetualMarkets
- GET historicalFunding/<ticker>?limit=N&effectiveBeforeOrAt=<ISO8601 Z>

Every failure is translated to IndexerTransportError / IndexerPayloadError so
callers never see httpx or json exceptions.
"""

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Self
from urllib.parse import quote

import httpx

from dydx_funding.config import IndexerSettings
from dydx_funding.exceptions import IndexerPayloadError, IndexerTransportError
from dydx_funding.indexer.client import IndexerClient
from dydx_funding.logging import get_logger
from dydx_funding.models import FundingObservation, Market

logger = get_logger(__name__)

_ISO_SECONDS = "%Y-%m-%dT%H:%M:%SZ"


def format_effective_before(moment: datetime) -> str:
    """Render a UTC instant the way the indexer query string expects it."""
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.strftime(_ISO_SECONDS)


def parse_effective_at(raw: str) -> datetime:
    """Parse an indexer timestamp such as 2026-01-10T08:00:00.000Z into aware UTC."""
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    moment = datetime.fromisoformat(raw)
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def _to_decimal(raw: Any) -> Decimal:
    value = Decimal(str(raw))
    if not value.is_finite():
        raise InvalidOperation(f"non-finite value {raw!r}")
    return value


def parse_markets(payload: Any) -> list[Market]:
    """Convert a perpetualMarkets response body into Market records."""
    if not isinstance(payload, dict) or not isinstance(payload.get("markets"), dict):
        raise IndexerPayloadError("perpetualMarkets response has no 'markets' object")

    markets = []
    for ticker, entry in payload["markets"].items():
        if not isinstance(entry, dict):
            raise IndexerPayloadError(f"market entry for {ticker!r} is not an object")
        markets.append(Market(ticker=ticker, status=str(entry.get("status", ""))))
    return markets


def parse_historical_funding(ticker: str, payload: Any) -> list[FundingObservation]:
    """Convert a historicalFunding response body into FundingObservation records."""
    if not isinstance(payload, dict):
        raise IndexerPayloadError(f"historicalFunding response for {ticker} is not an object")

    entries = payload.get("historicalFunding")
    if not isinstance(entries, list):
        raise IndexerPayloadError(
            f"historicalFunding response for {ticker} has no 'historicalFunding' list"
        )

    observations = []
    for entry in entries:
        try:
            price = entry.get("price")
            height = entry.get("effectiveAtHeight")
            observations.append(
                FundingObservation(
                    ticker=entry.get("ticker") or ticker,
                    effective_at=parse_effective_at(entry["effectiveAt"]),
                    rate=_to_decimal(entry["rate"]),
                    price=_to_decimal(price) if price is not None else None,
                    effective_at_height=int(height) if height is not None else None,
                )
            )
        except (AttributeError, KeyError, TypeError, ValueError, InvalidOperation) as e:
            raise IndexerPayloadError(
                f"malformed funding entry for {ticker}: {entry!r} ({e})"
            ) from e
    return observations


class DydxIndexerClient(IndexerClient):
    """Concrete dYdX indexer client using httpx async.

    Usage:
        async with DydxIndexerClient(settings.indexer) as client:
            markets = await client.fetch_perpetual_markets()
    """

    def __init__(
        self,
        settings: IndexerSettings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def base_url(self) -> str:
        return self._settings.base_url.rstrip("/") + "/"

    @property
    def client(self) -> httpx.AsyncClient:
        """Access the open httpx client.

        Raises RuntimeError if not connected.
        """
        if self._client is None:
            raise RuntimeError("Indexer client not connected. Call connect() first.")
        return self._client

    async def connect(self) -> None:
        if self._client is not None:
            return
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self._settings.request_timeout_seconds,
            headers={"Accept": "application/json"},
            transport=self._transport,
        )
        logger.info("indexer_client_connected", base_url=self.base_url)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.info("indexer_client_closed")

    async def __aenter__(self) -> Self:
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def fetch_perpetual_markets(self) -> list[Market]:
        payload = await self._get_json("perpetualMarkets")
        return parse_markets(payload)

    async def fetch_historical_funding(
        self,
        ticker: str,
        effective_before_or_at: datetime,
        limit: int = 24,
    ) -> list[FundingObservation]:
        payload = await self._get_json(
            f"historicalFunding/{quote(ticker, safe='')}",
            params={
                "limit": limit,
                "effectiveBeforeOrAt": format_effective_before(effective_before_or_at),
            },
        )
        return parse_historical_funding(ticker, payload)

    async def _get_json(self, path: str, params: dict | None = None) -> Any:
        """GET a path relative to the base URL and decode the JSON body."""
        try:
            response = await self.client.get(path, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise IndexerTransportError(
                f"GET {path} returned HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise IndexerTransportError(f"GET {path} failed: {e!r}") from e

        try:
            return response.json()
        except ValueError as e:
            raise IndexerPayloadError(f"GET {path} returned invalid JSON") from e
