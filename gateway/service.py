import logging

from gateway.errors import InvalidMethod, UpstreamError
from gateway.models import BODY_METHODS, DOWN, SUPPORTED_METHODS, UP, HealthStatus, ProxyEnvelope

logger = logging.getLogger(__name__)


class GatewayService:
    """Forward-and-wrap proxy plus the aggregate health check.

    Holds no per-request state, so one instance serves every request thread.
    """

    def __init__(self, client, service_id="backend"):
        self.client = client
        self.service_id = service_id

    def proxy(self, method, body=None):
        method = method.upper()
        if method not in SUPPORTED_METHODS:
            raise InvalidMethod(method)
        if method not in BODY_METHODS:
            body = None

        try:
            payload = self.client.echo(method, body)
        except UpstreamError as e:
            return ProxyEnvelope(self.service_id, method, error_detail=str(e))
        return ProxyEnvelope(self.service_id, method, upstream_result=payload)

    def health(self):
        try:
            latency_ms = self.client.probe()
        except UpstreamError as e:
            return HealthStatus(UP, DOWN, dependency_error=str(e))
        return HealthStatus(UP, UP, dependency_latency_ms=latency_ms)
