"""
Exchange adapter registry and factory.

Usage:
    from kline_sync.adapters import get_adapter, list_adapters

    adapter = get_adapter('binance')
    print(list_adapters())  # ['BINANCE']
"""

from typing import Dict, List, Type

from .base import AdapterConfig, ExchangeAdapter

# Registry of all available adapters
_ADAPTERS: Dict[str, Type[ExchangeAdapter]] = {}


def register_adapter(cls: Type[ExchangeAdapter]) -> Type[ExchangeAdapter]:
    """
    Decorator to register an adapter class in the global registry.

    Usage:
        @register_adapter
        class MyAdapter(ExchangeAdapter):
            ...
    """
    # Instantiate temporarily to get the name
    instance = cls()
    _ADAPTERS[instance.name.upper()] = cls
    return cls


def get_adapter(exchange: str) -> ExchangeAdapter:
    """
    Factory function to get an adapter instance by exchange name.

    Args:
        exchange: Exchange name (case-insensitive)

    Raises:
        ValueError: If no adapter is registered for the exchange
    """
    name = (exchange or "").upper()
    if name not in _ADAPTERS:
        raise ValueError(
            f"No adapter registered for exchange '{exchange}'. "
            f"Available adapters: {list_adapters()}"
        )
    return _ADAPTERS[name]()


def list_adapters() -> List[str]:
    """Return the sorted uppercase names of all registered adapters."""
    return sorted(_ADAPTERS.keys())


# Import adapters to trigger registration
from . import binance  # noqa: E402

__all__ = [
    'ExchangeAdapter',
    'AdapterConfig',
    'register_adapter',
    'get_adapter',
    'list_adapters',
]
