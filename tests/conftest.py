"""Shared test fixtures for the funding rate archiver."""

from datetime import date
from pathlib import Path

import pytest

from dydx_funding.config import AppSettings, ArchiveSettings, IndexerSettings

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture
def fixtures_dir() -> Path:
    return FIXTURES_DIR


@pytest.fixture
def mock_settings(tmp_path: Path) -> AppSettings:
    """Return AppSettings writing under tmp_path with a generous rate budget."""
    return AppSettings(
        log_level="DEBUG",
        indexer=IndexerSettings(
            base_url="https://indexer.test/v4",
            rate_limit_requests=1000,
            rate_limit_window_seconds=1.0,
        ),
        archive=ArchiveSettings(
            destination_root=str(tmp_path / "out"),
            start_date=date(2026, 1, 10),
        ),
    )
