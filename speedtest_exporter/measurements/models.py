"""Shared dataclasses for measurements."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class Ping:
    latency_ms: float
    jitter_ms: float


@dataclass(frozen=True)
class Transfer:
    bandwidth: float
    bytes: float
    elapsed: float


@dataclass(frozen=True)
class InterfaceInfo:
    internal_ip: str = ""
    name: str = ""
    mac_addr: str = ""
    is_vpn: bool = False
    external_ip: str = ""


@dataclass(frozen=True)
class ServerInfo:
    id: int = 0
    name: str = ""
    location: str = ""
    country: str = ""
    host: str = ""
    port: int = 0
    ip: str = ""


@dataclass(frozen=True)
class ResultLink:
    id: str = ""
    url: str = ""


@dataclass(frozen=True)
class MeasurementResult:
    """One completed speedtest run.

    Bandwidth is in bytes per second, ping values in milliseconds and
    packet loss in percent, as reported by the CLI.
    """

    timestamp: datetime
    ping: Ping
    download: Transfer
    upload: Transfer
    packet_loss: float = 0.0
    isp: str = ""
    interface: InterfaceInfo = InterfaceInfo()
    server: ServerInfo = ServerInfo()
    result: ResultLink = ResultLink()
