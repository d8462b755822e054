from concurrent import futures
import contextvars
import logging
import time

import requests

from gateway.errors import DependencyBadResponse, DependencyTimeout, DependencyUnreachable
from gateway.models import BODY_METHODS, UpstreamPayload
from gateway.observers import NullObserver

logger = logging.getLogger(__name__)


class UpstreamClient:
    """Blocking HTTP client for the upstream echo service.

    Each method makes exactly one request and raises an ``UpstreamError``
    subclass on any failure. Nothing is retried.

    The timeout is a wall-clock deadline for the whole call. ``requests`` only
    bounds each socket operation, so the call runs on a worker thread and the
    caller stops waiting when the deadline passes. A call abandoned that way
    finishes in the background, still bounded by the per-read timeout.

    ``http`` is anything with a ``requests.request``-compatible ``request``
    function; the ``requests`` module itself by default, so the requests
    instrumentation sees every call and propagates trace context.
    """

    def __init__(self, base_url, request_timeout=5.0, health_timeout=5.0, http=None, observer=None):
        self.base_url = base_url.rstrip("/")
        self.request_timeout = request_timeout
        self.health_timeout = health_timeout
        self.http = http or requests
        self.observer = observer or NullObserver()

    def echo(self, method, body=None):
        json_body = body if method in BODY_METHODS else None
        payload, _ = self._call(
            "proxy-request",
            method,
            f"{self.base_url}/echo",
            self.request_timeout,
            json_body=json_body,
            parse=_parse_payload,
        )
        return payload

    def probe(self):
        """Hit upstream's health endpoint and return the latency in ms."""
        _, latency_ms = self._call("upstream-health-probe", "GET", f"{self.base_url}/health", self.health_timeout)
        return latency_ms

    def _call(self, operation, method, url, timeout, json_body=None, parse=None):
        """Make the call and return ``(parsed result, latency in ms)``."""
        handle = self._observer_start(operation, method, url)
        status_code = None
        error = None
        started = time.monotonic()
        try:
            response = self._request_within(method, url, json_body, timeout)
            latency_ms = max(0, int(round((time.monotonic() - started) * 1000)))
            status_code = response.status_code
            if not 200 <= status_code < 300:
                raise DependencyBadResponse(f"Upstream returned HTTP {status_code} for {method} {url}")
            return (parse(response) if parse else None), latency_ms
        except (futures.TimeoutError, requests.exceptions.Timeout) as exc:
            error = DependencyTimeout(f"Upstream did not respond within {timeout:g}s ({method} {url})")
            raise error from exc
        except requests.exceptions.RequestException as exc:
            error = DependencyUnreachable(f"Failed to connect to upstream service at {url}: {exc}")
            raise error from exc
        except DependencyBadResponse as exc:
            error = exc
            raise
        finally:
            if error is not None:
                logger.warning("%s %s failed: %s", operation, method, error)
            self._observer_finish(handle, status_code, error)

    def _request_within(self, method, url, json_body, timeout):
        executor = futures.ThreadPoolExecutor(max_workers=1, thread_name_prefix="upstream-call")
        try:
            # run in a copy of the current context so the client span keeps its parent
            ctx = contextvars.copy_context()
            future = executor.submit(ctx.run, self.http.request, method, url, json=json_body, timeout=timeout)
            return future.result(timeout=timeout)
        finally:
            executor.shutdown(wait=False)

    def _observer_start(self, operation, method, url):
        try:
            return self.observer.start(operation, method, url)
        except Exception:
            logger.exception("Observer failed while starting %s", operation)
            return None

    def _observer_finish(self, handle, status_code, error):
        try:
            self.observer.finish(handle, status_code=status_code, error=error)
        except Exception:
            logger.exception("Observer failed while finishing call")


def _parse_payload(response):
    try:
        data = response.json()
    except ValueError:
        raise DependencyBadResponse("Upstream returned a body that is not valid JSON") from None
    return UpstreamPayload.from_json(data)
