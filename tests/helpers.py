from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone
from typing import Optional

from speedtest_exporter.measurements.models import (
    MeasurementResult,
    Ping,
    ResultLink,
    ServerInfo,
    Transfer,
)

SAMPLE_PAYLOAD = {
    "type": "result",
    "timestamp": "2024-05-01T10:00:00Z",
    "ping": {"jitter": 1.5, "latency": 23.4, "low": 21.0, "high": 26.0},
    "download": {"bandwidth": 12500000, "bytes": 150000000, "elapsed": 12000},
    "upload": {"bandwidth": 2500000, "bytes": 30000000, "elapsed": 10000},
    "packetLoss": 0.5,
    "isp": "Example ISP",
    "interface": {
        "internalIp": "192.168.1.10",
        "name": "eth0",
        "macAddr": "AA:BB:CC:DD:EE:FF",
        "isVpn": False,
        "externalIp": "203.0.113.7",
    },
    "server": {
        "id": 1234,
        "host": "speedtest.example.net",
        "port": 8080,
        "name": "Example Networks",
        "location": "Amsterdam",
        "country": "Netherlands",
        "ip": "198.51.100.1",
    },
    "result": {"id": "abc-123", "url": "https://www.speedtest.net/result/c/abc-123"},
}


def make_result(minutes: int = 0, latency_ms: float = 23.4, server_name: str = "Example Networks") -> MeasurementResult:
    return MeasurementResult(
        timestamp=datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc) + timedelta(minutes=minutes),
        ping=Ping(latency_ms=latency_ms, jitter_ms=1.5),
        download=Transfer(bandwidth=12500000.0, bytes=150000000.0, elapsed=12000.0),
        upload=Transfer(bandwidth=2500000.0, bytes=30000000.0, elapsed=10000.0),
        packet_loss=0.5,
        isp="Example ISP",
        server=ServerInfo(
            id=1234,
            name=server_name,
            location="Amsterdam",
            country="Netherlands",
            host="speedtest.example.net",
            port=8080,
            ip="198.51.100.1",
        ),
        result=ResultLink(id="abc-123", url="https://www.speedtest.net/result/c/abc-123"),
    )


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeRunner:
    """Stands in for run_speedtest.

    Outcomes are consumed in order, the last one repeating. Exceptions are
    raised, anything else returned. With a ``gate``, each call blocks until
    the gate is set.
    """

    def __init__(self, *outcomes, gate: Optional[threading.Event] = None):
        self.outcomes = list(outcomes)
        self.calls = 0
        self.gate = gate
        self.started = threading.Event()
        self._lock = threading.Lock()

    def __call__(self) -> MeasurementResult:
        with self._lock:
            self.calls += 1
            outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        self.started.set()
        if self.gate is not None and not self.gate.wait(timeout=5):
            raise RuntimeError("gate was never opened")
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome
