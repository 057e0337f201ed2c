"""Flask application factory and HTTP routes."""

from __future__ import annotations

import logging

from flask import Flask, Response, jsonify
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, generate_latest
from werkzeug.middleware.proxy_fix import ProxyFix

from ..config import AppConfig
from ..measurements.cache import ResultCache

LOGGER = logging.getLogger(__name__)

INDEX_PAGE = """<html>
<head><title>Speedtest Exporter</title></head>
<body>
  <h1>Speedtest Exporter</h1>
  <p><a href="/metrics">Metrics</a></p>
</body>
</html>
"""


def create_web_app(config: AppConfig, registry: CollectorRegistry, cache: ResultCache) -> Flask:
    app = Flask(__name__)

    if config.web.reverse_proxy_headers:
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1)  # type: ignore

    @app.route("/")
    def index():
        return Response(INDEX_PAGE, mimetype="text/html")

    @app.get("/metrics")
    def metrics():
        return Response(generate_latest(registry), headers={"Content-Type": CONTENT_TYPE_LATEST})

    @app.get("/healthz")
    def healthz():
        return jsonify({"status": "ok", "cached": cache.entry is not None, "refreshing": cache.refreshing})

    return app
