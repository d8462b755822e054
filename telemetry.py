import logging

# OpenTelemetry imports
from opentelemetry import trace, metrics
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.instrumentation.flask import FlaskInstrumentor
from opentelemetry.instrumentation.requests import RequestsInstrumentor

logger = logging.getLogger(__name__)


def configure_logging(level="INFO"):
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def setup_telemetry(app, service_name, otlp_endpoint, instrument_requests=False):
    """Install OTLP/HTTP trace and metric export and instrument the Flask app.

    Returns the meter provider so callers can create their own instruments.
    Outbound ``requests`` calls are instrumented only for services that make
    them, which is what carries the traceparent header to the next hop.
    """
    endpoint = otlp_endpoint.rstrip("/")
    resource = Resource.create({"service.name": service_name})

    # Initialize OpenTelemetry Tracing
    tracer_provider = TracerProvider(resource=resource)
    otlp_trace_exporter = OTLPSpanExporter(endpoint=f"{endpoint}/v1/traces")
    tracer_provider.add_span_processor(BatchSpanProcessor(otlp_trace_exporter))
    trace.set_tracer_provider(tracer_provider)

    # Initialize OpenTelemetry Metrics
    metric_reader = PeriodicExportingMetricReader(
        OTLPMetricExporter(endpoint=f"{endpoint}/v1/metrics")
    )
    meter_provider = MeterProvider(resource=resource, metric_readers=[metric_reader])
    metrics.set_meter_provider(meter_provider)

    FlaskInstrumentor().instrument_app(app)
    if instrument_requests:
        RequestsInstrumentor().instrument()

    logger.info("Exporting telemetry for %s to %s", service_name, endpoint)
    return meter_provider
