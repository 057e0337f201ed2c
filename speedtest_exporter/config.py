"""Configuration loading helpers for the speedtest exporter."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

DEFAULT_CONFIG_NAME = "config.yaml"

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|s|m|h)")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


@dataclass
class SpeedtestConfig:
    binary: str = "speedtest"
    server_id: Optional[str] = None
    interface: Optional[str] = None
    source_ip: Optional[str] = None
    extra_args: List[str] = field(default_factory=list)
    timeout_seconds: Optional[float] = None


@dataclass
class CacheConfig:
    refresh_interval: str = "30m"

    @property
    def refresh_interval_seconds(self) -> float:
        return parse_duration(self.refresh_interval)


@dataclass
class MetricsConfig:
    namespace: str = "speedtest"
    show_server_labels: bool = False


@dataclass
class WebConfig:
    host: str = "0.0.0.0"
    port: int = 9876
    reverse_proxy_headers: bool = False


@dataclass
class LoggingConfig:
    level: str = "INFO"
    format: str = "console"
    log_dir: Optional[str] = None


@dataclass
class AppConfig:
    root_dir: Path
    speedtest: SpeedtestConfig = field(default_factory=SpeedtestConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    metrics: MetricsConfig = field(default_factory=MetricsConfig)
    web: WebConfig = field(default_factory=WebConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def log_dir(self) -> Optional[Path]:
        if not self.logging.log_dir:
            return None
        return (self.root_dir / self.logging.log_dir).resolve()


def parse_duration(raw: Any) -> float:
    """Convert a duration such as ``30m``, ``1h30m``, ``45s`` or ``90`` to seconds."""

    if isinstance(raw, bool):
        raise ValueError(f"Invalid duration: {raw!r}")
    if isinstance(raw, (int, float)):
        seconds = float(raw)
    else:
        text = str(raw).strip().lower()
        if not text:
            raise ValueError("Duration cannot be empty")
        try:
            seconds = float(text)
        except ValueError:
            seconds = 0.0
            position = 0
            for match in _DURATION_PART.finditer(text):
                if match.start() != position:
                    raise ValueError(f"Invalid duration: {raw!r}") from None
                seconds += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
                position = match.end()
            if position != len(text):
                raise ValueError(f"Invalid duration: {raw!r}") from None
    if not math.isfinite(seconds) or seconds <= 0:
        raise ValueError(f"Duration must be positive: {raw!r}")
    return seconds


def _section(cls, name: str, data: Dict[str, Any]):
    raw = data.get(name) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Configuration section '{name}' must be a mapping")
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise ValueError(f"Unknown keys in '{name}' section: {', '.join(unknown)}")
    return cls(**raw)


def _blank_to_none(value: Optional[Any]) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def load_config(path: Optional[str] = None) -> AppConfig:
    """Load application configuration from a YAML file.

    An explicit ``path`` must exist. Without one, ``config.yaml`` in the
    working directory is used when present and defaults apply otherwise.
    """

    if path:
        source_path = Path(path).resolve()
        if not source_path.exists():
            raise FileNotFoundError(f"Missing configuration file at {source_path}")
    else:
        source_path = Path.cwd() / DEFAULT_CONFIG_NAME
        if not source_path.exists():
            return AppConfig(root_dir=Path.cwd())

    with source_path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file {source_path} must contain a mapping")

    config = AppConfig(
        root_dir=source_path.parent,
        speedtest=_section(SpeedtestConfig, "speedtest", data),
        cache=_section(CacheConfig, "cache", data),
        metrics=_section(MetricsConfig, "metrics", data),
        web=_section(WebConfig, "web", data),
        logging=_section(LoggingConfig, "logging", data),
    )
    normalize(config)
    return config


def normalize(config: AppConfig) -> AppConfig:
    """Coerce loosely typed values and validate the result in place."""

    speedtest = config.speedtest
    speedtest.server_id = _blank_to_none(speedtest.server_id)
    speedtest.interface = _blank_to_none(speedtest.interface)
    speedtest.source_ip = _blank_to_none(speedtest.source_ip)
    speedtest.extra_args = [str(arg) for arg in speedtest.extra_args or []]
    if speedtest.timeout_seconds is not None and float(speedtest.timeout_seconds) <= 0:
        raise ValueError("speedtest.timeout_seconds must be positive")

    parse_duration(config.cache.refresh_interval)

    fmt = config.logging.format.lower()
    if fmt not in ("console", "json"):
        raise ValueError(f"Unsupported log format: {config.logging.format}")
    config.logging.format = fmt
    config.web.port = int(config.web.port)
    return config
