from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional
import logging
import time

import requests

logger = logging.getLogger(__name__)

HISTORY_CAPACITY = 10
HEALTH_POLL_SECONDS = 5
CHECKING = "CHECKING"


@dataclass(frozen=True)
class RequestHistoryEntry:
    timestamp: str
    method: str
    status_code: int
    round_trip_ms: int

    def to_dict(self):
        return {
            "timestamp": self.timestamp,
            "method": self.method,
            "statusCode": self.status_code,
            "roundTripMs": self.round_trip_ms,
        }


class RequestHistory:
    """Newest-first list of recent requests; the oldest entry drops off when full."""

    def __init__(self, capacity=HISTORY_CAPACITY):
        self._entries = deque(maxlen=capacity)

    def record(self, entry):
        self._entries.appendleft(entry)

    def entries(self):
        return list(self._entries)

    def __iter__(self):
        return iter(list(self._entries))

    def __len__(self):
        return len(self._entries)


@dataclass
class HealthSnapshot:
    gateway: str = CHECKING
    upstream: str = CHECKING
    gateway_ms: Optional[int] = None
    upstream_ms: Optional[int] = None
    gateway_report: dict = field(default_factory=dict)

    def to_dict(self):
        return {
            "backend": self.gateway,
            "upstream": self.upstream,
            "backendResponseTime": self.gateway_ms,
            "upstreamResponseTime": self.upstream_ms,
            "backendReport": self.gateway_report,
        }


class Dashboard:
    """Polls the gateway and upstream and drives requests through /proxy."""

    def __init__(self, gateway_url, upstream_url, timeout=5.0, http=None, clock=time.monotonic):
        self.gateway_url = gateway_url.rstrip("/")
        self.upstream_url = upstream_url.rstrip("/")
        self.timeout = timeout
        self.http = http or requests
        self.clock = clock
        self.history = RequestHistory()
        self.health = HealthSnapshot()
        self.last_response = None

    def _elapsed_ms(self, started):
        return max(0, int(round((self.clock() - started) * 1000)))

    def _probe(self, url):
        started = self.clock()
        try:
            resp = self.http.request("GET", url, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.info("Health check %s failed: %s", url, e)
            return "DOWN", None, None
        if not 200 <= resp.status_code < 300:
            return "DOWN", None, None
        return "UP", self._elapsed_ms(started), resp

    def check_health(self):
        gateway, gateway_ms, resp = self._probe(f"{self.gateway_url}/health")
        report = {}
        if resp is not None:
            try:
                report = resp.json()
            except ValueError:
                report = {}
        upstream, upstream_ms, _ = self._probe(f"{self.upstream_url}/health")
        self.health = HealthSnapshot(gateway, upstream, gateway_ms, upstream_ms, report)
        return self.health

    def make_request(self, method):
        method = method.upper()
        body = None
        if method in ("POST", "PUT"):
            body = {"request": f"from frontend using {method}"}

        started = self.clock()
        try:
            resp = self.http.request(method, f"{self.gateway_url}/proxy", json=body, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            status_code = 0
            data = {"error": "Request failed", "message": str(e)}
        else:
            status_code = resp.status_code
            try:
                data = resp.json()
            except ValueError:
                data = {"error": "Request failed", "message": f"HTTP {status_code} with a non-JSON body"}

        entry = RequestHistoryEntry(
            timestamp=datetime.now().strftime("%H:%M:%S"),
            method=method,
            status_code=status_code,
            round_trip_ms=self._elapsed_ms(started),
        )
        self.history.record(entry)
        self.last_response = data
        return entry, data

    def run_continuous(self, interval=5, count=None, sleep=time.sleep, on_response=None):
        """Send GETs every ``interval`` seconds, the first one immediately.

        Health is re-checked whenever HEALTH_POLL_SECONDS have passed.
        Stops after ``count`` requests when given; returns how many were sent.
        """
        sent = 0
        last_health = None
        while count is None or sent < count:
            if last_health is None or self.clock() - last_health >= HEALTH_POLL_SECONDS:
                self.check_health()
                last_health = self.clock()
            entry, data = self.make_request("GET")
            sent += 1
            if on_response is not None:
                on_response(entry, data)
            if count is not None and sent >= count:
                break
            sleep(interval)
        return sent
