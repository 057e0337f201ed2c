"""Centralized logging configuration.

Modules keep logging through the standard library; structlog's
ProcessorFormatter renders those records as console lines or JSON.
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler

import structlog

from .config import AppConfig


def _pre_chain(log_format: str) -> list:
    processors = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    if log_format == "json":
        processors.append(structlog.processors.format_exc_info)
    return processors


def build_formatter(log_format: str, colors: bool = False) -> structlog.stdlib.ProcessorFormatter:
    if log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=colors)

    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_pre_chain(log_format),
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )


def configure_logging(config: AppConfig, debug: bool = False) -> None:
    log_format = config.logging.format

    root_logger = logging.getLogger()
    level = logging.DEBUG if debug else getattr(logging, config.logging.level.upper(), logging.INFO)
    root_logger.setLevel(level)

    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(build_formatter(log_format, colors=sys.stderr.isatty()))
    root_logger.addHandler(console_handler)

    log_dir = config.log_dir
    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_dir / "speedtest-exporter.log", maxBytes=5 * 1024 * 1024, backupCount=5
        )
        file_handler.setFormatter(build_formatter(log_format))
        root_logger.addHandler(file_handler)

    if debug:
        logging.getLogger(__name__).debug("enabled debug mode")
