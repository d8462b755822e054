import os
from dataclasses import dataclass

from gateway.errors import ConfigurationError

DEFAULT_TIMEOUT_SECONDS = 5.0


def _port(env, default):
    raw = env.get("PORT")
    if raw is None or raw == "":
        return default
    try:
        port = int(raw)
    except ValueError:
        raise ConfigurationError(f"PORT must be an integer, got {raw!r}") from None
    if not 0 < port < 65536:
        raise ConfigurationError(f"PORT must be between 1 and 65535, got {raw!r}")
    return port


def _positive_float(env, name, default):
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from None
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {raw!r}")
    return value


@dataclass(frozen=True)
class Settings:
    upstream_url: str
    request_timeout: float = DEFAULT_TIMEOUT_SECONDS
    health_timeout: float = DEFAULT_TIMEOUT_SECONDS
    service_id: str = "backend"
    otel_service_name: str = "gateway"
    otlp_endpoint: str = "http://otel-collector:4318"
    otel_enabled: bool = True
    log_level: str = "INFO"
    port: int = 3010

    @classmethod
    def from_env(cls, environ=None):
        env = os.environ if environ is None else environ
        upstream_url = env.get("UPSTREAM_URL", "").strip()
        if not upstream_url:
            raise ConfigurationError("UPSTREAM_URL is required")
        return cls(
            upstream_url=upstream_url.rstrip("/"),
            request_timeout=_positive_float(env, "REQUEST_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS),
            health_timeout=_positive_float(env, "HEALTH_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS),
            service_id=env.get("SERVICE_ID", "backend"),
            otel_service_name=env.get("OTEL_SERVICE_NAME", "gateway"),
            otlp_endpoint=env.get("OTEL_EXPORTER_OTLP_ENDPOINT", "http://otel-collector:4318"),
            otel_enabled=env.get("OTEL_SDK_DISABLED", "false").lower() != "true",
            log_level=env.get("LOG_LEVEL", "INFO"),
            port=_port(env, 3010),
        )
