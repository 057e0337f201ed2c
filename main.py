"""Entry point for running the speedtest exporter."""

from __future__ import annotations

import argparse
import logging
from typing import Optional, Sequence, Tuple

from speedtest_exporter import __version__, bootstrap
from speedtest_exporter.config import AppConfig

LOGGER = logging.getLogger("speedtest_exporter")


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Prometheus exporter for the Ookla speedtest CLI")
    parser.add_argument("--config", default=None, help="Path to config.yaml")
    parser.add_argument("-b", "--bind", default=None, help="addr to bind the server (default :9876)")
    parser.add_argument("--debug", action="store_true", help="show debug logs")
    parser.add_argument("--log-format", choices=["json", "console"], default=None, help="log format to use")
    parser.add_argument("--refresh-interval", default=None, help="time between refreshes with speedtest (e.g. 30m)")
    parser.add_argument("-s", "--server", default=None, help="speedtest server id")
    parser.add_argument("--interface", default=None, help="network interface to bind the speedtest to")
    parser.add_argument("--source-ip", default=None, help="source IP address to bind the speedtest to")
    parser.add_argument(
        "--show-server-labels",
        action="store_true",
        default=None,
        help="annotate speedtest results with details of the server",
    )
    parser.add_argument("--version", action="version", version=f"speedtest-exporter version {__version__}")
    return parser.parse_args(argv)


def parse_bind(raw: str) -> Tuple[Optional[str], int]:
    """Split ``host:port`` or ``:port`` into its parts."""

    host, sep, port = raw.rpartition(":")
    if not sep:
        raise ValueError(f"Invalid bind address {raw!r}, expected host:port")
    try:
        port_number = int(port)
    except ValueError:
        raise ValueError(f"Invalid port in bind address {raw!r}") from None
    return (host.strip("[]") or None), port_number


def apply_overrides(args: argparse.Namespace, config: AppConfig) -> None:
    if args.bind:
        host, port = parse_bind(args.bind)
        config.web.host = host or "0.0.0.0"
        config.web.port = port
    if args.log_format:
        config.logging.format = args.log_format
    if args.refresh_interval:
        config.cache.refresh_interval = args.refresh_interval
    if args.server is not None:
        config.speedtest.server_id = args.server
    if args.interface is not None:
        config.speedtest.interface = args.interface
    if args.source_ip is not None:
        config.speedtest.source_ip = args.source_ip
    if args.show_server_labels:
        config.metrics.show_server_labels = True


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = parse_args(argv)
    context = bootstrap(args.config, overrides=lambda config: apply_overrides(args, config), debug=args.debug)
    config = context.config

    if config.speedtest.server_id:
        LOGGER.info("starting speedtest-exporter version=%s server=%s", __version__, config.speedtest.server_id)
    else:
        LOGGER.info("starting speedtest-exporter version=%s", __version__)

    LOGGER.info("listening on %s:%s", config.web.host, config.web.port)
    try:
        context.web_app.run(host=config.web.host, port=config.web.port, threaded=True)
    finally:
        context.shutdown()


if __name__ == "__main__":
    main()
