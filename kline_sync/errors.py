"""
Exception hierarchy for kline synchronization.

Every error raised by the library derives from KlineSyncError so callers
(the CLI, a scheduler) can catch sync failures uniformly. Duplicate keys are
not errors: KlineStore.insert returns False for them.
"""

from typing import Optional


class KlineSyncError(Exception):
    """Base class for all kline-sync errors."""


class ConfigError(KlineSyncError):
    """Raised when a configuration file or value is invalid."""


class SourceError(KlineSyncError):
    """
    Network, HTTP or parse failure from the market data source.

    Retryable by the caller; the library never retries internally.
    """

    def __init__(
        self,
        message: str,
        *,
        symbol: Optional[str] = None,
        interval: Optional[str] = None,
        start_ms: Optional[int] = None,
        end_ms: Optional[int] = None,
    ) -> None:
        self.symbol = symbol
        self.interval = interval
        self.start_ms = start_ms
        self.end_ms = end_ms
        context = []
        if symbol is not None:
            context.append(f"symbol={symbol}")
        if interval is not None:
            context.append(f"interval={interval}")
        if start_ms is not None or end_ms is not None:
            context.append(f"window=[{start_ms}, {end_ms}]")
        if context:
            message = f"{message} ({', '.join(context)})"
        super().__init__(message)


class StorageError(KlineSyncError):
    """Read or write failure against the kline store."""

    def __init__(self, message: str, *, path: Optional[str] = None) -> None:
        self.path = path
        if path is not None:
            message = f"{message} [{path}]"
        super().__init__(message)


class SyncDeadlineExceeded(KlineSyncError):
    """Raised between pages once a run's deadline has passed."""


__all__ = [
    "KlineSyncError",
    "ConfigError",
    "SourceError",
    "StorageError",
    "SyncDeadlineExceeded",
]
