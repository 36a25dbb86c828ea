"""Custom exceptions for the funding rate archiver.

Transport-layer exceptions live here so the market catalog and the funding
fetcher can catch them without importing the concrete httpx client.
Filesystem failures are not wrapped: OSError propagates unchanged.
"""


class ArchiveToolError(Exception):
    """Base exception for all archiver errors."""


class IndexerError(ArchiveToolError):
    """Raised when a request to the indexer produced no usable data."""


class IndexerTransportError(IndexerError):
    """Raised on network failures, timeouts, and non-2xx HTTP responses."""


class IndexerPayloadError(IndexerError):
    """Raised when the indexer response is not JSON or has an unexpected shape."""
