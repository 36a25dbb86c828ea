"""Historical data layer.

Provides the per-market series accumulator, the CSV archive writer with
atomic replacement, and the processing date range.
"""

from dydx_funding.data.accumulator import SeriesAccumulator, truncate_to_second
from dydx_funding.data.archive import ArchiveWriter, archive_file_name, read_archive
from dydx_funding.data.date_range import DateRangeProvider, utc_today

__all__ = [
    "ArchiveWriter",
    "DateRangeProvider",
    "SeriesAccumulator",
    "archive_file_name",
    "read_archive",
    "truncate_to_second",
    "utc_today",
]
