from flask import Flask, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException
import logging

from gateway.client import UpstreamClient
from gateway.config import Settings
from gateway.errors import InvalidMethod
from gateway.models import BODY_METHODS, SUPPORTED_METHODS
from gateway.observers import NullObserver, TracingObserver
from gateway.service import GatewayService
from telemetry import configure_logging, setup_telemetry

logger = logging.getLogger(__name__)


def build_service(settings, observer=None):
    if observer is None:
        observer = TracingObserver() if settings.otel_enabled else NullObserver()
    client = UpstreamClient(
        settings.upstream_url,
        request_timeout=settings.request_timeout,
        health_timeout=settings.health_timeout,
        observer=observer,
    )
    return GatewayService(client, service_id=settings.service_id)


def create_app(settings=None, service=None):
    # Initialize Flask app
    app = Flask(__name__)
    CORS(app)

    if service is None:
        settings = settings or Settings.from_env()
        if settings.otel_enabled:
            setup_telemetry(app, settings.otel_service_name, settings.otlp_endpoint, instrument_requests=True)
        service = build_service(settings)
    app.extensions["gateway"] = service

    @app.route("/proxy", methods=list(SUPPORTED_METHODS))
    def proxy():
        body = request.get_json(silent=True) if request.method in BODY_METHODS else None
        envelope = service.proxy(request.method, body)
        return jsonify(envelope.to_dict()), 200 if envelope.ok else 503

    @app.route("/health")
    def health():
        return jsonify(service.health().to_dict()), 200

    @app.errorhandler(InvalidMethod)
    def invalid_method(e):
        response = jsonify({"error": "Method Not Allowed", "message": str(e)})
        response.status_code = 405
        response.headers["Allow"] = ", ".join(SUPPORTED_METHODS)
        return response

    @app.errorhandler(HTTPException)
    def http_error(e):
        response = jsonify({"error": e.name, "message": e.description})
        response.status_code = e.code
        if getattr(e, "valid_methods", None):
            response.headers["Allow"] = ", ".join(e.valid_methods)
        return response

    return app


def main():
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    app = create_app(settings)
    logger.info(
        "Starting gateway on port %d, upstream %s (timeouts: request %gs, health %gs)",
        settings.port, settings.upstream_url, settings.request_timeout, settings.health_timeout,
    )
    app.run(host="0.0.0.0", port=settings.port, threaded=True)


if __name__ == "__main__":
    main()
