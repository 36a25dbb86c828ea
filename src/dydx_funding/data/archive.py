"""Per-market CSV archive with merge-on-write and atomic replacement.

File layout:
    <root>/cryptofuture/dydx/margin_interest/<ticker lowercased, hyphens removed>.csv

Each line is `yyyyMMdd HH:mm:ss,<rate>` in ascending timestamp order, no
header. Rates are written in fixed-point notation so that reading a file back
and writing it again reproduces it byte for byte.

CRITICAL: the destination file is never opened for writing. The merged content
goes to a temporary file first and is moved over the destination with
os.replace(), so readers only ever see the old or the new archive.
"""

import os
import stat
import tempfile
from datetime import datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path

from dydx_funding.logging import get_logger
from dydx_funding.models import PerMarketSeries

logger = get_logger(__name__)

ARCHIVE_SUBDIR = Path("cryptofuture", "dydx", "margin_interest")
TIMESTAMP_FORMAT = "%Y%m%d %H:%M:%S"


def archive_file_name(ticker: str) -> str:
    """BTC-USD -> btcusd.csv"""
    return f"{ticker.replace('-', '').lower()}.csv"


def format_rate(rate: Decimal) -> str:
    """Render a rate in fixed-point form (never scientific notation)."""
    return format(rate, "f")


def format_line(timestamp: datetime, rate: Decimal) -> str:
    return f"{timestamp.strftime(TIMESTAMP_FORMAT)},{format_rate(rate)}"


def _published_mode(destination: Path) -> int:
    """Mode the archive file should carry: the current file's, else 0o666 minus umask."""
    try:
        return stat.S_IMODE(destination.stat().st_mode)
    except FileNotFoundError:
        umask = os.umask(0)
        os.umask(umask)
        return 0o666 & ~umask


def read_archive(path: Path) -> PerMarketSeries:
    """Parse an archive file, skipping blank and malformed lines.

    Returns an empty series when the file does not exist.
    """
    series: PerMarketSeries = {}
    if not path.exists():
        return series

    # undecodable bytes become U+FFFD and the line fails to parse below
    with path.open("r", encoding="utf-8", errors="replace") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue

            parts = line.split(",")
            if len(parts) < 2:
                continue

            try:
                timestamp = datetime.strptime(parts[0], TIMESTAMP_FORMAT)
                rate = Decimal(parts[1])
            except (ValueError, InvalidOperation):
                continue
            if not rate.is_finite():
                continue

            series[timestamp] = rate
    return series


class ArchiveWriter:
    """Merges new series into the on-disk archive, one file per market.

    Args:
        destination_root: Root the archive is written under.
        existing_data_root: Root of the merge baseline. Defaults to
            destination_root, i.e. the archive is extended in place.
        scratch_dir: Where temporary files are created. Defaults to the
            destination directory so the final rename never crosses filesystems.
    """

    def __init__(
        self,
        destination_root: str | Path,
        existing_data_root: str | Path | None = None,
        scratch_dir: str | Path | None = None,
    ) -> None:
        self._destination_dir = Path(destination_root) / ARCHIVE_SUBDIR
        baseline_root = existing_data_root if existing_data_root is not None else destination_root
        self._baseline_dir = Path(baseline_root) / ARCHIVE_SUBDIR
        self._scratch_dir = Path(scratch_dir) if scratch_dir is not None else None

    @property
    def destination_dir(self) -> Path:
        return self._destination_dir

    def destination_path(self, ticker: str) -> Path:
        return self._destination_dir / archive_file_name(ticker)

    def baseline_path(self, ticker: str) -> Path:
        return self._baseline_dir / archive_file_name(ticker)

    def persist(self, ticker: str, new_series: PerMarketSeries) -> int:
        """Merge new_series with the baseline archive and replace the destination.

        New values win on timestamp conflicts; archived values fill the gaps.
        new_series itself is not modified.

        Returns:
            Number of lines in the written file (0 when there was nothing to write).

        Raises:
            OSError: On any filesystem failure. The destination is left untouched.
        """
        merged: PerMarketSeries = dict(new_series)
        baseline = read_archive(self.baseline_path(ticker))
        for timestamp, rate in baseline.items():
            if timestamp not in merged:
                merged[timestamp] = rate

        if not merged:
            logger.debug("archive_nothing_to_write", ticker=ticker)
            return 0

        lines = [format_line(ts, merged[ts]) for ts in sorted(merged)]
        destination = self.destination_path(ticker)
        self._write_atomic(destination, lines)

        logger.debug(
            "archive_written",
            ticker=ticker,
            path=str(destination),
            lines=len(lines),
            new=len(new_series),
            baseline=len(baseline),
        )
        return len(lines)

    def _write_atomic(self, destination: Path, lines: list[str]) -> None:
        destination.parent.mkdir(parents=True, exist_ok=True)
        scratch = self._scratch_dir or destination.parent
        scratch.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(
            dir=scratch, prefix=f".{destination.stem}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
                f.write("\n".join(lines))
                f.write("\n")
                f.flush()
                os.fsync(f.fileno())
            # mkstemp creates 0600 files
            os.chmod(tmp_name, _published_mode(destination))
            os.replace(tmp_name, destination)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
