"""Side-channel hooks invoked around every outbound call to upstream.

An observer sees the call but never shapes its result: the client calls
``start`` before the request and ``finish`` after it, and any exception an
observer raises is logged and dropped by the caller.
"""
import time

from opentelemetry import context, metrics, trace
from opentelemetry.trace import Status, StatusCode


class NullObserver:
    def start(self, operation, method, url):
        return None

    def finish(self, handle, status_code=None, error=None):
        pass


class _SpanHandle:
    def __init__(self, span, token, started, attributes):
        self.span = span
        self.token = token
        self.started = started
        self.attributes = attributes


class TracingObserver:
    """Opens one span per outbound call and records call metrics.

    The span is made current for the duration of the call so the client span
    created by the requests instrumentation nests beneath it.
    """

    def __init__(self, tracer=None, meter=None):
        self.tracer = tracer or trace.get_tracer(__name__)
        meter = meter or metrics.get_meter("gateway")
        self.call_counter = meter.create_counter(
            "upstream_calls_total",
            description="Total outbound calls to upstream"
        )
        self.call_duration = meter.create_histogram(
            "upstream_call_duration_seconds",
            description="Outbound call duration in seconds"
        )

    def start(self, operation, method, url):
        attributes = {"operation": operation, "http.method": method}
        span = self.tracer.start_span(
            operation,
            attributes={"http.method": method, "upstream.url": url},
        )
        span.add_event("starting-upstream-call")
        token = context.attach(trace.set_span_in_context(span))
        return _SpanHandle(span, token, time.time(), attributes)

    def finish(self, handle, status_code=None, error=None):
        if handle is None:
            return
        span = handle.span
        try:
            if status_code is not None:
                span.set_attribute("http.status_code", status_code)
            if error is None:
                span.add_event("upstream-call-completed")
                span.set_status(Status(StatusCode.OK))
                outcome = "success"
            else:
                span.record_exception(error)
                span.set_status(Status(StatusCode.ERROR, str(error)))
                span.add_event("upstream-call-failed", {"error.kind": getattr(error, "kind", "error")})
                outcome = "error"
            labels = dict(handle.attributes, outcome=outcome)
            self.call_counter.add(1, labels)
            self.call_duration.record(time.time() - handle.started, labels)
        finally:
            context.detach(handle.token)
            span.end()
