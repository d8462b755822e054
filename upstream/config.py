import os
from dataclasses import dataclass


class ConfigurationError(Exception):
    """Raised when the upstream environment is malformed."""


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


@dataclass(frozen=True)
class Settings:
    service_id: str = "upstream"
    otel_service_name: str = "upstream"
    otlp_endpoint: str = "http://otel-collector:4318"
    otel_enabled: bool = True
    log_level: str = "INFO"
    port: int = 3002

    @classmethod
    def from_env(cls, environ=None):
        env = os.environ if environ is None else environ
        return cls(
            service_id=env.get("SERVICE_ID", "upstream"),
            otel_service_name=env.get("OTEL_SERVICE_NAME", "upstream"),
            otlp_endpoint=env.get("OTEL_EXPORTER_OTLP_ENDPOINT", "http://otel-collector:4318"),
            otel_enabled=env.get("OTEL_SDK_DISABLED", "false").lower() != "true",
            log_level=env.get("LOG_LEVEL", "INFO"),
            port=_port(env, 3002),
        )
