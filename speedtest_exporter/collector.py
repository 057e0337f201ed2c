"""Prometheus collector exposing the cached speedtest result."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Tuple

from prometheus_client.core import GaugeMetricFamily
from prometheus_client.registry import Collector

from .measurements.cache import ResultCache
from .measurements.errors import SpeedtestError
from .measurements.models import MeasurementResult

LOGGER = logging.getLogger(__name__)

SERVER_LABELS = ("server_name", "server_location", "server_country", "server_host")


@dataclass(frozen=True)
class MetricSample:
    name: str
    documentation: str
    value: float
    labels: Dict[str, str] = field(default_factory=dict)


class SpeedtestCollector(Collector):
    def __init__(
        self,
        cache: ResultCache,
        show_server_labels: bool = False,
        namespace: str = "speedtest",
    ) -> None:
        self.cache = cache
        self.show_server_labels = show_server_labels
        self.namespace = namespace

        # (name, help) in emission order; values filled in by _measurement_values
        self._up = (self._name("up"), "Whether using speedtest-cli is succeeding or not")
        self._scrape_duration = (
            self._name("scrape_duration_seconds"),
            "Returns how long the scrape took to complete in seconds",
        )
        self._measurement_metrics: List[Tuple[str, str]] = [
            (self._name("download_bytes_second"), "Download speed in B/s"),
            (self._name("upload_bytes_second"), "Upload speed in B/s"),
            (self._name("ping_latency_seconds"), "Ping latency"),
            (self._name("ping_jitter_seconds"), "Ping jitter"),
            (self._name("upload_bytes"), "Uploaded bytes"),
            (self._name("download_bytes"), "Downloaded bytes"),
            (self._name("packet_loss_pct"), "Packet loss percentage"),
        ]

    def _name(self, suffix: str) -> str:
        return f"{self.namespace}_{suffix}" if self.namespace else suffix

    def report(self) -> List[MetricSample]:
        """Fetch the latest result and turn it into samples for one scrape."""

        start = time.perf_counter()
        samples: List[MetricSample] = []
        success = 1
        try:
            result = self.cache.get_or_refresh()
        except SpeedtestError as exc:
            success = 0
            LOGGER.error("failed to collect: %s", exc)
        else:
            labels = self._labels(result)
            for (name, documentation), value in zip(self._measurement_metrics, self._measurement_values(result)):
                samples.append(MetricSample(name, documentation, value, dict(labels)))

        samples.append(MetricSample(*self._scrape_duration, time.perf_counter() - start))
        samples.append(MetricSample(*self._up, float(success)))
        return samples

    @staticmethod
    def _measurement_values(result: MeasurementResult) -> List[float]:
        return [
            result.download.bandwidth,
            result.upload.bandwidth,
            result.ping.latency_ms / 1000,
            result.ping.jitter_ms / 1000,
            result.upload.bytes,
            result.download.bytes,
            result.packet_loss,
        ]

    def _labels(self, result: MeasurementResult) -> Dict[str, str]:
        if not self.show_server_labels:
            return {}
        server = result.server
        return dict(zip(SERVER_LABELS, (server.name, server.location, server.country, server.host)))

    def describe(self) -> Iterator[GaugeMetricFamily]:
        label_names = list(SERVER_LABELS) if self.show_server_labels else []
        yield GaugeMetricFamily(*self._up)
        yield GaugeMetricFamily(*self._scrape_duration)
        for name, documentation in self._measurement_metrics:
            yield GaugeMetricFamily(name, documentation, labels=label_names)

    def collect(self) -> Iterator[GaugeMetricFamily]:
        for sample in self.report():
            label_names = list(sample.labels)
            family = GaugeMetricFamily(sample.name, sample.documentation, labels=label_names)
            family.add_metric([sample.labels[key] for key in label_names], sample.value)
            yield family
