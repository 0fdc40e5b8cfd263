"""
Binance exchange adapter.

API Documentation: https://binance-docs.github.io/apidocs/spot/en/#kline-candlestick-data
"""

from typing import Any, Dict, List, Optional

from ..models import Bar, to_interval_key
from .base import AdapterConfig, ExchangeAdapter
from . import register_adapter


BINANCE_API_URL = "https://api.binance.com/api/v3/klines"
DEFAULT_LIMIT = 500
API_LIMIT = 1000
ROW_WIDTH = 11


@register_adapter
class BinanceAdapter(ExchangeAdapter):
    """
    Adapter for Binance public klines (candlestick) API.

    Binance kline format:
    [
        open_time, open, high, low, close, volume,
        close_time, quote_volume, trades, taker_buy_base, taker_buy_quote, ignore
    ]
    Prices and volumes arrive as strings, times and trade counts as numbers.
    """

    @property
    def name(self) -> str:
        return "BINANCE"

    @property
    def config(self) -> AdapterConfig:
        return AdapterConfig(
            api_url=BINANCE_API_URL,
            limit=DEFAULT_LIMIT,
            max_limit=API_LIMIT,
            timeout_seconds=30,
        )

    def get_supported_intervals(self) -> Dict[str, str]:
        return {'1d': '1d'}

    def format_symbol(self, symbol: str) -> str:
        """
        Format symbol for Binance API.

        Binance uses uppercase symbols without separators (e.g., BTCUSDT).
        """
        return symbol.upper().replace('-', '').replace('_', '').replace('/', '')

    def build_url(self, symbol: str, interval: str) -> str:
        """Binance klines URL (everything else goes in the query string)."""
        return BINANCE_API_URL

    def build_params(
        self,
        symbol: str,
        interval: str,
        start: Optional[int] = None,
        end: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Build query parameters for Binance API.

        Unset (None or 0) bounds are left out entirely; with only endTime the
        exchange answers with the newest `limit` bars at or before it.
        """
        params: Dict[str, Any] = {
            'symbol': symbol,
            'interval': interval,
        }
        if start:
            params['startTime'] = int(start)
        if end:
            params['endTime'] = int(end)
        if limit:
            params['limit'] = min(int(limit), API_LIMIT)
        return params

    def parse_response(self, data: Any, interval: str) -> List[Bar]:
        """Parse Binance kline arrays into Bar objects, keeping the response order."""
        if not isinstance(data, list):
            raise ValueError(f"Expected a JSON array of klines, got {type(data).__name__}")

        interval = to_interval_key(interval)
        bars = []
        for row in data:
            if not isinstance(row, (list, tuple)) or len(row) < ROW_WIDTH:
                raise ValueError(f"Malformed kline row: {row!r}")
            try:
                bar = Bar(
                    interval=interval,
                    open_time=int(row[0]),
                    open=float(row[1]),
                    high=float(row[2]),
                    low=float(row[3]),
                    close=float(row[4]),
                    volume=float(row[5]),
                    close_time=int(row[6]),
                    quote_volume=float(row[7]),
                    trade_count=int(row[8]),
                    taker_buy_base_volume=float(row[9]),
                    taker_buy_quote_volume=float(row[10]),
                )
            except (TypeError, ValueError) as e:
                raise ValueError(f"Invalid kline row {row!r}: {e}") from e
            bars.append(bar)
        return bars
