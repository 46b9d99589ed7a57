"""Flask application factory and HTTP routes."""

from __future__ import annotations

import json
import logging
import os
from typing import Optional

from flask import Blueprint, Flask, Response, jsonify, request
from flask_cors import CORS
from werkzeug.middleware.proxy_fix import ProxyFix

from ..config import AppConfig
from ..network.isp_lookup import IspLookupClient
from ..rate_limit import FixedWindowRateLimiter
from ..telemetry.chart import ChartAggregator
from ..telemetry.models import EMPTY_ISP_INFO, TelemetryRecord
from ..telemetry.store import RecordNotFound, StoreError, TelemetryStore

LOGGER = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024
DEFAULT_CHUNKS = 8
MAX_CHUNKS = 1024
_DRAIN_SIZE = 64 * 1024


def create_web_app(
    config: AppConfig,
    store: Optional[TelemetryStore],
    aggregator: Optional[ChartAggregator],
    lookup_client: IspLookupClient,
    rate_limiter: FixedWindowRateLimiter,
) -> Flask:
    app = Flask(__name__)

    if config.server.reverse_proxy_headers:
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1)  # type: ignore

    CORS(app, origins="*", methods=["GET", "POST", "OPTIONS", "HEAD"], allow_headers="*")

    # Generated once so download tests do not pay for randomness per request.
    random_data = os.urandom(CHUNK_SIZE)

    routes = Blueprint("speedtest", __name__)

    @routes.post("/results/telemetry")
    @routes.post("/results/telemetry.php")
    def record_telemetry():
        if store is None:
            return Response("Telemetry is disabled", mimetype="text/plain")

        record = TelemetryRecord(
            ip_address=_client_address(),
            isp_info=request.form.get("ispinfo") or EMPTY_ISP_INFO,
            extra=request.form.get("extra", ""),
            user_agent=request.headers.get("User-Agent", ""),
            language=request.headers.get("Accept-Language", ""),
            download=request.form.get("dl", ""),
            upload=request.form.get("ul", ""),
            ping=request.form.get("ping", ""),
            jitter=request.form.get("jitter", ""),
            log=request.form.get("log", ""),
        )
        try:
            record_id = store.save(record)
        except StoreError as exc:
            LOGGER.error("Error inserting into database: %s", exc)
            return Response("Internal Server Error", status=500, mimetype="text/plain")

        return Response(f"id {record_id}", mimetype="text/plain")

    @routes.get("/api/chart-data")
    def chart_data():
        if not rate_limiter.allow():
            return jsonify({"error": "Too Many Requests"}), 429

        if aggregator is None:
            return jsonify([])

        try:
            points = aggregator.build_series(config.frontend.chart_list)
        except RecordNotFound:
            LOGGER.info("No telemetry recorded yet")
            return jsonify([])
        except StoreError as exc:
            LOGGER.error("Failed to build chart data: %s", exc)
            return jsonify({"error": "Internal Server Error"}), 500

        return jsonify([point.to_dict() for point in points])

    @routes.get("/getIP")
    @routes.get("/getIP.php")
    def get_ip():
        with_isp = request.args.get("isp") == "true"
        info = lookup_client.resolve(_client_address(), with_isp=with_isp)
        payload = info.to_dict()
        LOGGER.info(json.dumps(payload))
        return jsonify(payload)

    @routes.get("/garbage")
    @routes.get("/garbage.php")
    def garbage():
        chunks = DEFAULT_CHUNKS
        raw_size = request.args.get("ckSize", "")
        if raw_size:
            try:
                requested = int(raw_size)
            except ValueError:
                LOGGER.warning("Invalid chunk size: %s", raw_size)
                return Response(b"", mimetype="application/octet-stream")
            if requested > MAX_CHUNKS:
                chunks = MAX_CHUNKS
            elif requested > 0:
                chunks = requested

        def generate():
            for _ in range(chunks):
                yield random_data

        return Response(
            generate(),
            mimetype="application/octet-stream",
            headers={
                "Content-Description": "File Transfer",
                "Content-Disposition": "attachment; filename=random.dat",
                "Content-Transfer-Encoding": "binary",
            },
        )

    @routes.route("/empty", methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"])
    @routes.route("/empty.php", methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"])
    def empty():
        while request.stream.read(_DRAIN_SIZE):
            pass
        return Response(status=200, headers={"Connection": "keep-alive"})

    prefixes = ["/backend"]
    if config.server.base_path != "/backend":
        prefixes.append(config.server.base_path)
    for index, prefix in enumerate(prefixes):
        app.register_blueprint(routes, url_prefix=prefix, name=f"speedtest_{index}")

    return app


def _client_address() -> str:
    address = request.remote_addr or ""
    if address.startswith("::ffff:") and "." in address:
        address = address[len("::ffff:"):]
    return address
