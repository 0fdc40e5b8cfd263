from .adapters import ExchangeAdapter, get_adapter, list_adapters
from .boundary import BoundaryTracker
from .config import SyncConfig, load_config
from .errors import ConfigError, KlineSyncError, SourceError, StorageError, SyncDeadlineExceeded
from .models import Bar, OldestBoundary, SyncState
from .source import MarketDataSource
from .store import KlineStore
from .sync import SyncOrchestrator, SyncReport, synchronize_kline_data

__version__ = "0.1.0"
__all__ = [
    "synchronize_kline_data",
    "SyncOrchestrator",
    "SyncReport",
    "SyncConfig",
    "load_config",
    "BoundaryTracker",
    "KlineStore",
    "MarketDataSource",
    "Bar",
    "OldestBoundary",
    "SyncState",
    "get_adapter",
    "list_adapters",
    "ExchangeAdapter",
    "KlineSyncError",
    "ConfigError",
    "SourceError",
    "StorageError",
    "SyncDeadlineExceeded",
]
