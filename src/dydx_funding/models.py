"""Shared data models for the funding rate archiver.

CRITICAL: All rates use Decimal. Never use float for funding rates; the archive
must reproduce the indexer's value digit for digit.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

ACTIVE_STATUS = "ACTIVE"

# Naive UTC timestamp (whole seconds) -> rate, one entry per funding tick
PerMarketSeries = dict[datetime, Decimal]


class FetchStatus(str, Enum):
    """Result kind of a single indexer request."""

    SUCCESS = "success"
    EMPTY = "empty"
    ERROR = "error"


@dataclass(frozen=True)
class Market:
    """A perpetual market as listed by the indexer."""

    ticker: str
    status: str

    @property
    def is_active(self) -> bool:
        return self.status == ACTIVE_STATUS

    @property
    def is_valid_ticker(self) -> bool:
        """Tickers embedding commas (e.g. pump.fun composites) cannot be archived."""
        return "," not in self.ticker


@dataclass(frozen=True)
class FundingObservation:
    """One historical funding entry for a market.

    effective_at is timezone-aware UTC exactly as reported by the indexer;
    truncation to whole seconds happens when folding into a series.
    """

    ticker: str
    effective_at: datetime
    rate: Decimal
    price: Decimal | None = None
    effective_at_height: int | None = None


@dataclass
class FetchOutcome:
    """Outcome of fetching one market (or the catalog) for one day.

    Failures are carried as values so callers can count and log them
    without re-raising.
    """

    ticker: str | None
    status: FetchStatus
    observations: list[FundingObservation] = field(default_factory=list)
    error: str | None = None


@dataclass
class RunReport:
    """Counters collected over one archiver run."""

    markets: int = 0
    days: int = 0
    fetch_success: int = 0
    fetch_empty: int = 0
    fetch_error: int = 0
    observations_retained: int = 0
    files_written: int = 0
    lines_written: int = 0
    catalog_status: FetchStatus | None = None
    first_date: date | None = None
    last_date: date | None = None

    def record(self, outcome: FetchOutcome) -> None:
        """Count a per-market fetch outcome."""
        if outcome.status is FetchStatus.SUCCESS:
            self.fetch_success += 1
        elif outcome.status is FetchStatus.EMPTY:
            self.fetch_empty += 1
        else:
            self.fetch_error += 1
