"""
HTTP market data source: one GET per page, parsed through an exchange adapter.
"""

from typing import List, Optional
from urllib.parse import urlencode

import requests

from .adapters import ExchangeAdapter, get_adapter
from .console import c_desc, c_rows, c_var, fmt_ms, log_info, log_success, poll_print
from .errors import SourceError
from .models import Bar, page_bounds, to_interval_key

USER_AGENT = "KlineSync/1.0"
HEADERS = {"User-Agent": USER_AGENT}


class MarketDataSource:
    """
    Fetch pages of bars for one exchange.

    Failures (network, HTTP status, JSON, row shape) raise SourceError with the
    requested window attached. Nothing is retried here; the orchestrator's
    caller decides whether to run again.
    """

    def __init__(
        self,
        adapter: ExchangeAdapter,
        *,
        timeout_seconds: Optional[float] = None,
        session: Optional[requests.Session] = None,
        polling: bool = False,
    ) -> None:
        self.adapter = adapter
        self.timeout_seconds = timeout_seconds or adapter.config.timeout_seconds
        self._owns_session = session is None
        self.session = session or requests.Session()
        self.session.headers.update(HEADERS)
        self.polling = polling

    @classmethod
    def for_exchange(cls, exchange: str, **kwargs) -> "MarketDataSource":
        return cls(get_adapter(exchange), **kwargs)

    def close(self) -> None:
        """Close the HTTP session if this source created it."""
        if self._owns_session:
            self.session.close()

    def __enter__(self) -> "MarketDataSource":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def fetch(
        self,
        symbol: str,
        interval: str,
        start_ms: Optional[int] = None,
        end_ms: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[Bar]:
        """
        Fetch up to `limit` bars between start_ms and end_ms (both optional).

        Omitting both bounds asks for the most recent `limit` bars. The
        returned list keeps the exchange's ordering.
        """
        context = dict(symbol=symbol, interval=interval, start_ms=start_ms, end_ms=end_ms)
        try:
            interval_key = to_interval_key(interval)
            ex_symbol = self.adapter.format_symbol(symbol)
            ex_interval = self.adapter.translate_interval(interval_key)
        except ValueError as e:
            raise SourceError(str(e), **context) from e

        limit = limit or self.adapter.config.limit
        if limit > self.adapter.config.max_limit:
            # A capped request would look like a short page to the walkers
            raise SourceError(
                f"Page size {limit} exceeds the {self.adapter.name} maximum of {self.adapter.config.max_limit}",
                **context,
            )

        url = self.adapter.build_url(ex_symbol, ex_interval)
        params = self.adapter.build_params(
            ex_symbol, ex_interval, start=start_ms, end=end_ms, limit=limit,
        )
        full = f"{url}?{urlencode(params)}"
        if self.polling:
            poll_print(f"Fetching: {c_var(full)}")
        else:
            log_info(f"GET {c_var(full)}")

        try:
            resp = self.session.get(url, params=params, timeout=self.timeout_seconds)
        except requests.RequestException as e:
            raise SourceError(f"Network error: {e}", **context) from e

        if resp.status_code != 200:
            raise SourceError(f"HTTP {resp.status_code}: {resp.text[:200]}", **context)

        try:
            data = resp.json()
        except ValueError as e:
            raise SourceError(f"Failed to decode JSON response: {e}", **context) from e

        try:
            bars = self.adapter.parse_response(data, interval_key)
        except ValueError as e:
            raise SourceError(f"Failed to parse klines: {e}", **context) from e

        self._report(bars)
        return bars

    def _report(self, bars: List[Bar]) -> None:
        if not bars:
            if self.polling:
                poll_print("API Returned [0 elements]")
            else:
                log_info("API returned 0 bars.")
            return
        first, last = page_bounds(bars)
        if self.polling:
            poll_print(f"API Returned [{c_rows(len(bars))} elements]")
            poll_print(f"  first: {fmt_ms(first.open_time)}")
            poll_print(f"  last : {fmt_ms(last.open_time)}")
        else:
            log_success(
                f"Received {c_rows(len(bars))} bars "
                f"({fmt_ms(first.open_time)} {c_desc('..')} {fmt_ms(last.open_time)})"
            )
