from __future__ import annotations

import os
from dataclasses import dataclass, field


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return bool(default)
    return str(raw).strip().lower() not in ("0", "false", "off", "no")


def _env_int(name: str, default: int) -> int:
    raw = str(os.getenv(name, "") or "").strip()
    try:
        return int(float(raw)) if raw else int(default)
    except ValueError:
        return int(default)


def _env_float(name: str, default: float) -> float:
    raw = str(os.getenv(name, "") or "").strip()
    try:
        return float(raw) if raw else float(default)
    except ValueError:
        return float(default)


DEFAULT_TIMEOUT = 5.0
DEFAULT_RETRY_COUNT = 3


@dataclass
class ApiConfig:
    # Panel
    api_host: str = field(default_factory=lambda: os.getenv("PANELSYNC_API_HOST", ""))
    node_id: int = field(default_factory=lambda: _env_int("PANELSYNC_NODE_ID", 0))
    key: str = field(default_factory=lambda: os.getenv("PANELSYNC_API_KEY", ""))
    node_type: str = field(default_factory=lambda: os.getenv("PANELSYNC_NODE_TYPE", "V2ray"))

    # Transport
    timeout: float = field(default_factory=lambda: _env_float("PANELSYNC_TIMEOUT", DEFAULT_TIMEOUT))
    retry_count: int = field(default_factory=lambda: _env_int("PANELSYNC_RETRY_COUNT", DEFAULT_RETRY_COUNT))
    verify_tls: bool = field(default_factory=lambda: _env_bool("PANELSYNC_VERIFY_TLS", True))

    # Node behavior
    enable_vless: bool = field(default_factory=lambda: _env_bool("PANELSYNC_ENABLE_VLESS", False))
    enable_xtls: bool = field(default_factory=lambda: _env_bool("PANELSYNC_ENABLE_XTLS", False))

    # Local overrides; 0 keeps what the panel sends. speed_limit is in Mbps.
    speed_limit: float = field(default_factory=lambda: _env_float("PANELSYNC_SPEED_LIMIT", 0.0))
    device_limit: int = field(default_factory=lambda: _env_int("PANELSYNC_DEVICE_LIMIT", 0))

    # One regex per line
    rule_list_path: str = field(default_factory=lambda: os.getenv("PANELSYNC_RULE_LIST_PATH", ""))

    @classmethod
    def from_env(cls) -> "ApiConfig":
        return cls()

    @property
    def effective_timeout(self) -> float:
        return float(self.timeout) if self.timeout and self.timeout > 0 else DEFAULT_TIMEOUT

    @property
    def effective_retry_count(self) -> int:
        return max(0, int(self.retry_count))
