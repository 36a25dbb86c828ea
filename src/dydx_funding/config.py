"""Configuration system using pydantic-settings with environment variable loading."""

from datetime import date

from pydantic_settings import BaseSettings, SettingsConfigDict


class IndexerSettings(BaseSettings):
    """dYdX v4 indexer REST connection settings."""

    model_config = SettingsConfigDict(env_prefix="INDEXER_")

    base_url: str = "https://indexer.dydx.trade/v4"
    rate_limit_requests: int = 25  # permits per window
    rate_limit_window_seconds: float = 10.0
    request_timeout_seconds: float = 30.0
    history_limit: int = 24  # hourly funding -> one day per request
    max_concurrency: int = 0  # 0 = unbounded, only the rate limiter gates


class ArchiveSettings(BaseSettings):
    """Archive layout and processing range.

    All fields configurable via ARCHIVE_ environment variable prefix.
    When deployment_date is set only that day is processed; otherwise every
    day from start_date through today (UTC) is fetched.
    """

    model_config = SettingsConfigDict(env_prefix="ARCHIVE_")

    destination_root: str = "output"
    existing_data_root: str | None = None  # merge baseline; defaults to destination_root
    scratch_dir: str | None = None  # temp files; defaults to the destination directory
    start_date: date = date(2023, 10, 18)  # first funding day on the v4 indexer
    deployment_date: date | None = None


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    indexer: IndexerSettings = IndexerSettings()
    archive: ArchiveSettings = ArchiveSettings()
