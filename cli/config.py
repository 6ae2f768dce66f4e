from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_BASE_URL = "http://localhost:8000"
DEFAULT_TIMEOUT = 30.0
DEFAULT_THROTTLE_INTERVAL = 0.05

_BASE_URL_ENV = "API_BASE_URL"
_TIMEOUT_ENV = "CLI_TIMEOUT"
_THROTTLE_ENV = "CLI_THROTTLE_INTERVAL"


@dataclass(frozen=True)
class CLIConfig:
    base_url: str = DEFAULT_BASE_URL
    timeout: float = DEFAULT_TIMEOUT
    throttle_interval: float = DEFAULT_THROTTLE_INTERVAL


def _read_float(value: Optional[str], default: float) -> float:
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def load_config(
    base_url: Optional[str] = None,
    timeout: Optional[float] = None,
    throttle_interval: Optional[float] = None,
) -> CLIConfig:
    url = base_url or os.getenv(_BASE_URL_ENV) or DEFAULT_BASE_URL
    if timeout is None:
        timeout = _read_float(os.getenv(_TIMEOUT_ENV), DEFAULT_TIMEOUT)
    if throttle_interval is None:
        throttle_interval = _read_float(os.getenv(_THROTTLE_ENV), DEFAULT_THROTTLE_INTERVAL)
    return CLIConfig(
        base_url=url.rstrip("/"),
        timeout=timeout,
        throttle_interval=throttle_interval,
    )
