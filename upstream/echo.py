from flask import Flask, jsonify, request
from flask_cors import CORS
from datetime import datetime, timezone
import logging
import time

from opentelemetry import trace, metrics

from telemetry import configure_logging, setup_telemetry
from upstream.config import Settings

logger = logging.getLogger(__name__)

ECHO_METHODS = ["GET", "POST", "PUT", "DELETE"]
BODY_METHODS = ("POST", "PUT")


def utc_timestamp():
    # ISO-8601 in UTC with a trailing Z, e.g. "2025-08-24T15:00:00.123456Z"
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def build_payload(method, body=None, service_id="upstream"):
    message = "Hello from upstream"
    if method != "GET":
        message = f"{message} ({method})"
    payload = {
        "timestamp": utc_timestamp(),
        "message": message,
        "serviceId": service_id,
    }
    if method in BODY_METHODS:
        payload["echoedPayload"] = body
    return payload


def create_app(settings=None):
    settings = settings or Settings.from_env()

    app = Flask(__name__)
    CORS(app)

    if settings.otel_enabled:
        setup_telemetry(app, settings.otel_service_name, settings.otlp_endpoint)

    # Create metrics
    meter = metrics.get_meter("upstream")
    echo_counter = meter.create_counter(
        "echo_requests_total",
        description="Total echo requests"
    )
    request_duration = meter.create_histogram(
        "echo_request_duration_seconds",
        description="Echo request duration in seconds"
    )

    @app.route("/echo", methods=ECHO_METHODS)
    def echo():
        tracer = trace.get_tracer(__name__)
        start_time = time.time()
        with tracer.start_as_current_span("echo") as span:
            method = request.method
            span.set_attribute("http.method", method)
            body = request.get_json(silent=True) if method in BODY_METHODS else None
            payload = build_payload(method, body, settings.service_id)
            echo_counter.add(1, {"method": method})
            request_duration.record(time.time() - start_time, {"endpoint": "/echo", "method": method})
            return jsonify(payload), 200

    @app.route("/health")
    def health():
        return jsonify({"status": "UP"})

    return app


def main():
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    app = create_app(settings)
    logger.info("Starting upstream on port %d", settings.port)
    app.run(host="0.0.0.0", port=settings.port, threaded=True)


if __name__ == "__main__":
    main()
