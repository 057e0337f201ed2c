"""Application bootstrap helpers."""

from __future__ import annotations

import logging
from functools import partial
from typing import Callable, Optional

from prometheus_client import CollectorRegistry, PlatformCollector, ProcessCollector

from .collector import SpeedtestCollector
from .config import AppConfig, load_config, normalize
from .logging_setup import configure_logging
from .measurements.cache import ResultCache
from .measurements.speedtest_runner import run_speedtest
from .web.app import create_web_app

__version__ = "1.0.0"

LOGGER = logging.getLogger(__name__)


class ApplicationContext:
    """Holds the wired components for one exporter process."""

    def __init__(self, config: AppConfig, debug: bool = False):
        self.config = config
        configure_logging(config, debug=debug)
        self.cache = ResultCache(
            partial(run_speedtest, config.speedtest),
            refresh_interval=config.cache.refresh_interval_seconds,
        )
        self.collector = SpeedtestCollector(
            self.cache,
            show_server_labels=config.metrics.show_server_labels,
            namespace=config.metrics.namespace,
        )
        self.registry = CollectorRegistry()
        ProcessCollector(registry=self.registry)
        PlatformCollector(registry=self.registry)
        self.registry.register(self.collector)
        self.web_app = create_web_app(config=config, registry=self.registry, cache=self.cache)

    def shutdown(self) -> None:
        self.cache.close()


def bootstrap(
    config_path: Optional[str] = None,
    overrides: Optional[Callable[[AppConfig], None]] = None,
    debug: bool = False,
) -> ApplicationContext:
    """Load configuration, apply command-line overrides and wire dependencies."""

    config = load_config(config_path)
    if overrides is not None:
        overrides(config)
        normalize(config)
    return ApplicationContext(config, debug=debug)
