class ConfigurationError(Exception):
    """Raised when the gateway environment is missing or malformed."""


class InvalidMethod(Exception):
    def __init__(self, method):
        super().__init__(f"Method {method} is not supported on /proxy")
        self.method = method


class UpstreamError(Exception):
    """Base class for failures talking to upstream.

    ``str(exc)`` is the human-readable cause returned to callers.
    """

    kind = "upstream_error"


class DependencyUnreachable(UpstreamError):
    kind = "unreachable"


class DependencyTimeout(UpstreamError):
    kind = "timeout"


class DependencyBadResponse(UpstreamError):
    kind = "bad_response"
