from __future__ import annotations

import logging
import threading

import pytest
from prometheus_client import CollectorRegistry

from helpers import FakeRunner, make_result
from speedtest_exporter import ApplicationContext
from speedtest_exporter.collector import SpeedtestCollector
from speedtest_exporter.config import AppConfig
from speedtest_exporter.measurements.cache import ResultCache
from speedtest_exporter.measurements.errors import ExecutionFailed
from speedtest_exporter.web.app import create_web_app


def _client(tmp_path, *outcomes, runner=None):
    config = AppConfig(root_dir=tmp_path)
    cache = ResultCache(runner or FakeRunner(*outcomes), refresh_interval=60)
    registry = CollectorRegistry()
    registry.register(SpeedtestCollector(cache))
    app = create_web_app(config=config, registry=registry, cache=cache)
    app.config["TESTING"] = True
    return app.test_client()


def test_index_links_to_metrics(tmp_path):
    response = _client(tmp_path, make_result()).get("/")
    assert response.status_code == 200
    assert b'href="/metrics"' in response.data


def test_metrics_endpoint_serves_exposition_format(tmp_path):
    response = _client(tmp_path, make_result()).get("/metrics")

    assert response.status_code == 200
    assert response.headers["Content-Type"].startswith("text/plain")
    body = response.get_data(as_text=True)
    assert "speedtest_up 1.0" in body
    assert "speedtest_download_bytes_second 1.25e+07" in body


def test_metrics_endpoint_reports_failure_as_down(tmp_path):
    response = _client(tmp_path, ExecutionFailed("speedtest failed: exit status 1")).get("/metrics")

    assert response.status_code == 200
    body = response.get_data(as_text=True)
    assert "speedtest_up 0.0" in body
    assert "speedtest_ping_latency_seconds " not in body


def test_healthz_reflects_cache_state(tmp_path):
    client = _client(tmp_path, make_result())

    assert client.get("/healthz").get_json() == {"status": "ok", "cached": False, "refreshing": False}
    client.get("/metrics")
    assert client.get("/healthz").get_json() == {"status": "ok", "cached": True, "refreshing": False}


def test_healthz_answers_while_first_speedtest_runs(tmp_path):
    gate = threading.Event()
    runner = FakeRunner(make_result(), gate=gate)
    client = _client(tmp_path, runner=runner)
    scrape = threading.Thread(target=lambda: client.get("/metrics"))
    scrape.start()
    assert runner.started.wait(timeout=5)

    health = {}
    health_client = client.application.test_client()
    health_check = threading.Thread(target=lambda: health.update(health_client.get("/healthz").get_json()))
    health_check.start()
    health_check.join(timeout=2)
    finished_early = not health_check.is_alive()

    gate.set()
    scrape.join(timeout=5)
    health_check.join(timeout=5)
    assert finished_early
    assert health == {"status": "ok", "cached": False, "refreshing": False}


@pytest.fixture
def context(tmp_path):
    root_logger = logging.getLogger()
    handlers, level = list(root_logger.handlers), root_logger.level

    config = AppConfig(root_dir=tmp_path)
    config.speedtest.binary = str(tmp_path / "missing-speedtest")
    context = ApplicationContext(config)
    yield context
    context.shutdown()

    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)


def test_application_context_wires_registry(context):
    response = context.web_app.test_client().get("/metrics")
    body = response.get_data(as_text=True)

    assert "speedtest_up 0.0" in body
    assert "process_" in body or "python_info" in body
