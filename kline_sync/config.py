"""Configuration for a sync run.

Example config file (kline_sync.yaml):

    exchange: BINANCE
    symbols:
      - BTCUSDT
      - ETHUSDT
    interval: 1d
    page_size: 500
    request_delay_ms: 1000
    horizon_days: 365
    data_root: ${KLINE_SYNC_ROOT:~/.kline_sync}
    timeout_seconds: 30
    deadline_seconds: null
"""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, List, Optional, Union

import yaml

from .adapters import get_adapter, list_adapters
from .errors import ConfigError
from .models import to_interval_key
from .store import ROOT_PATH

DEFAULT_PAGE_SIZE = 500
DEFAULT_REQUEST_DELAY_MS = 1000
DEFAULT_HORIZON_DAYS = 365


@dataclass
class SyncConfig:
    """Everything a SyncOrchestrator needs besides its collaborators."""

    exchange: str = "BINANCE"
    symbols: List[str] = field(default_factory=list)
    interval: str = "1d"
    page_size: int = DEFAULT_PAGE_SIZE
    request_delay_ms: int = DEFAULT_REQUEST_DELAY_MS
    horizon_days: int = DEFAULT_HORIZON_DAYS
    data_root: Path = ROOT_PATH
    timeout_seconds: float = 30
    deadline_seconds: Optional[float] = None
    polling: bool = False
    verbose: bool = False

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """Normalize fields in place.

        :raises ConfigError: If any value is out of range.
        """
        self.exchange = (self.exchange or "").upper()
        if self.exchange not in list_adapters():
            raise ConfigError(
                f"Unknown exchange '{self.exchange}'. Available: {list_adapters()}"
            )
        try:
            self.interval = to_interval_key(self.interval)
        except ValueError as e:
            raise ConfigError(str(e)) from e
        if isinstance(self.symbols, str):
            self.symbols = [self.symbols]
        self.symbols = [str(s).strip().upper() for s in self.symbols if str(s).strip()]
        self.data_root = Path(os.path.expanduser(str(self.data_root)))

        if int(self.page_size) <= 0:
            raise ConfigError(f"page_size must be positive, got {self.page_size}")
        max_limit = get_adapter(self.exchange).config.max_limit
        if int(self.page_size) > max_limit:
            raise ConfigError(
                f"page_size {self.page_size} exceeds the {self.exchange} maximum of {max_limit}"
            )
        if int(self.request_delay_ms) < 0:
            raise ConfigError(f"request_delay_ms must be >= 0, got {self.request_delay_ms}")
        if int(self.horizon_days) <= 0:
            raise ConfigError(f"horizon_days must be positive, got {self.horizon_days}")
        if float(self.timeout_seconds) <= 0:
            raise ConfigError(f"timeout_seconds must be positive, got {self.timeout_seconds}")
        if self.deadline_seconds is not None and float(self.deadline_seconds) <= 0:
            raise ConfigError(f"deadline_seconds must be positive, got {self.deadline_seconds}")
        self.page_size = int(self.page_size)
        self.request_delay_ms = int(self.request_delay_ms)
        self.horizon_days = int(self.horizon_days)

    def with_overrides(self, **overrides: Any) -> SyncConfig:
        """Return a copy with the non-None overrides applied."""
        data = asdict(self)
        data.update({k: v for k, v in overrides.items() if v is not None})
        return SyncConfig(**data)


def _substitute_env_vars(data: Any) -> Any:
    """Recursively substitute ${NAME} / ${NAME:default} strings from the environment."""
    if isinstance(data, dict):
        return {key: _substitute_env_vars(value) for key, value in data.items()}
    if isinstance(data, list):
        return [_substitute_env_vars(item) for item in data]
    if isinstance(data, str) and data.startswith("${") and data.endswith("}"):
        env_spec = data[2:-1]
        if ":" in env_spec:
            env_name, default_value = env_spec.split(":", 1)
        else:
            env_name, default_value = env_spec, None
        return os.getenv(env_name, default_value)
    return data


def load_config(path: Union[str, Path]) -> SyncConfig:
    """Load a SyncConfig from a YAML file.

    :param path: Path to the YAML file.
    :returns: Validated configuration.
    :raises ConfigError: If the file is missing, unreadable or invalid.
    """
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")

    try:
        with path.open("r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in config file {path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigError(f"Config file must contain a mapping, got {type(raw).__name__}")

    raw = _substitute_env_vars(raw)
    known = {f.name for f in fields(SyncConfig)}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise ConfigError(f"Unknown config keys: {unknown}")

    try:
        return SyncConfig(**raw)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid config in {path}: {e}") from e


def dump_config(config: SyncConfig) -> str:
    """Render a config as YAML (the CLI's --print-config)."""
    data = asdict(config)
    data["data_root"] = str(config.data_root)
    return yaml.safe_dump(data, sort_keys=False)
