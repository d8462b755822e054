from dataclasses import dataclass
from typing import Any, Optional

from gateway.errors import DependencyBadResponse

SUPPORTED_METHODS = ("GET", "POST", "PUT", "DELETE")
BODY_METHODS = ("POST", "PUT")

UP = "UP"
DOWN = "DOWN"
UNKNOWN = "UNKNOWN"

_MISSING = object()


@dataclass(frozen=True)
class UpstreamPayload:
    timestamp: str
    message: str
    service_id: str
    echoed_payload: Any = _MISSING

    @classmethod
    def from_json(cls, data):
        if not isinstance(data, dict):
            raise DependencyBadResponse(
                f"Upstream returned {type(data).__name__} instead of a JSON object"
            )
        missing = [k for k in ("timestamp", "message", "serviceId") if not isinstance(data.get(k), str)]
        if missing:
            raise DependencyBadResponse(
                "Upstream response is missing fields: " + ", ".join(missing)
            )
        return cls(
            timestamp=data["timestamp"],
            message=data["message"],
            service_id=data["serviceId"],
            echoed_payload=data.get("echoedPayload", _MISSING),
        )

    def to_dict(self):
        out = {
            "timestamp": self.timestamp,
            "message": self.message,
            "serviceId": self.service_id,
        }
        # GET/DELETE payloads carry no echoedPayload key at all
        if self.echoed_payload is not _MISSING:
            out["echoedPayload"] = self.echoed_payload
        return out


@dataclass(frozen=True)
class ProxyEnvelope:
    origin_service_id: str
    http_method: str
    upstream_result: Optional[UpstreamPayload] = None
    error_detail: Optional[str] = None

    def __post_init__(self):
        if (self.upstream_result is None) == (self.error_detail is None):
            raise ValueError("exactly one of upstream_result and error_detail must be set")

    @property
    def ok(self):
        return self.upstream_result is not None

    def to_dict(self):
        return {
            "originServiceId": self.origin_service_id,
            "httpMethod": self.http_method,
            "upstreamResult": self.upstream_result.to_dict() if self.upstream_result else None,
            "errorDetail": self.error_detail,
        }


@dataclass(frozen=True)
class HealthStatus:
    self_status: str = UP
    dependency_status: str = UNKNOWN
    dependency_latency_ms: Optional[int] = None
    dependency_error: Optional[str] = None

    def to_dict(self):
        return {
            "selfStatus": self.self_status,
            "dependencyStatus": self.dependency_status,
            "dependencyLatencyMs": self.dependency_latency_ms,
            "dependencyError": self.dependency_error,
        }
