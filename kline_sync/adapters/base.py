"""
Base adapter class for exchange kline endpoints.

An adapter knows how one exchange spells its URL, query parameters, symbols
and intervals, and how to turn the raw JSON payload into Bar objects. The
HTTP round-trip itself lives in kline_sync.source.MarketDataSource.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ..models import Bar, to_interval_key


@dataclass(frozen=True)
class AdapterConfig:
    """Configuration for an exchange adapter."""
    api_url: str
    limit: int = 500
    max_limit: int = 1000
    timeout_seconds: int = 30


class ExchangeAdapter(ABC):
    """
    Abstract base class for exchange adapters.

    Each adapter encapsulates exchange-specific logic for:
    - API URL construction
    - Request parameter formatting
    - Response parsing into Bar objects
    - Symbol formatting
    - Interval translation
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the canonical name of this exchange (uppercase)."""
        pass

    @property
    @abstractmethod
    def config(self) -> AdapterConfig:
        """Return the adapter configuration."""
        pass

    @abstractmethod
    def get_supported_intervals(self) -> Dict[str, str]:
        """
        Return mapping of internal interval keys to exchange-specific formats.

        Internal keys: '1d'
        """
        pass

    def translate_interval(self, interval: str) -> str:
        """
        Translate internal interval to exchange-specific format.

        Raises ValueError if the interval is not supported.
        """
        key = to_interval_key(interval)
        supported = self.get_supported_intervals()
        if key not in supported:
            raise ValueError(
                f"Interval '{interval}' not supported by {self.name}. "
                f"Supported: {list(supported.keys())}"
            )
        return supported[key]

    @abstractmethod
    def format_symbol(self, symbol: str) -> str:
        """
        Format a symbol for this exchange's API.

        Args:
            symbol: The raw symbol (e.g., 'BTCUSDT', 'btc-usdt', 'BTC/USDT')

        Returns:
            Exchange-formatted symbol
        """
        pass

    @abstractmethod
    def build_url(self, symbol: str, interval: str) -> str:
        """Build the API endpoint URL for fetching klines."""
        pass

    @abstractmethod
    def build_params(
        self,
        symbol: str,
        interval: str,
        start: Optional[int] = None,
        end: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Build query parameters for the API request.

        Args:
            symbol: Exchange-formatted symbol
            interval: Exchange-formatted interval
            start: Start timestamp in milliseconds; None or 0 means unbounded
            end: End timestamp in milliseconds; None or 0 means unbounded
            limit: Maximum number of bars to fetch

        Returns:
            Dictionary of query parameters
        """
        pass

    @abstractmethod
    def parse_response(self, data: Any, interval: str) -> List[Bar]:
        """
        Parse API response data into Bar objects.

        The returned order is whatever the exchange sent; callers detect it.

        Raises:
            ValueError: If the payload or one of its rows is malformed
        """
        pass
