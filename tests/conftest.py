import socket
import threading
from unittest.mock import MagicMock
from urllib.parse import urlsplit

import pytest

from gateway.app import create_app as create_gateway_app
from gateway.client import UpstreamClient
from gateway.service import GatewayService
from upstream.config import Settings as UpstreamSettings
from upstream.echo import create_app as create_upstream_app

UPSTREAM_URL = "http://upstream:3002"


def fake_response(status_code=200, json_data=None, json_error=None):
    resp = MagicMock()
    resp.status_code = status_code
    if json_error is not None:
        resp.json.side_effect = json_error
    else:
        resp.json.return_value = json_data
    return resp


def upstream_payload(method="GET", body=None):
    data = {
        "timestamp": "2025-08-24T15:00:00.000000Z",
        "message": "Hello from upstream" if method == "GET" else f"Hello from upstream ({method})",
        "serviceId": "upstream",
    }
    if method in ("POST", "PUT"):
        data["echoedPayload"] = body
    return data


class FlaskTransport:
    """Routes ``requests.request``-style calls into a Flask test client."""

    def __init__(self, app):
        self.client = app.test_client()
        self.calls = []

    def request(self, method, url, json=None, timeout=None):
        self.calls.append((method, url, json, timeout))
        resp = self.client.open(urlsplit(url).path, method=method, json=json)
        return _TransportResponse(resp)


class _TransportResponse:
    def __init__(self, resp):
        self.status_code = resp.status_code
        self._resp = resp

    def json(self):
        data = self._resp.get_json(silent=True)
        if data is None:
            raise ValueError("response body is not JSON")
        return data


@pytest.fixture
def http():
    return MagicMock()


@pytest.fixture
def client(http):
    return UpstreamClient(UPSTREAM_URL, request_timeout=5.0, health_timeout=2.0, http=http)


@pytest.fixture
def gateway_service(client):
    return GatewayService(client, service_id="backend")


@pytest.fixture
def gateway_app(gateway_service):
    app = create_gateway_app(service=gateway_service)
    app.testing = True
    return app


@pytest.fixture
def gateway_client(gateway_app):
    return gateway_app.test_client()


@pytest.fixture
def upstream_app():
    app = create_upstream_app(UpstreamSettings(otel_enabled=False))
    app.testing = True
    return app


@pytest.fixture
def upstream_client(upstream_app):
    return upstream_app.test_client()


class TricklingUpstream:
    """Raw socket server: sends a 200 header at once, then the body one byte per ``delay``."""

    def __init__(self, body, delay):
        self.body = body
        self.delay = delay
        self.stop = threading.Event()
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self.sock.bind(("127.0.0.1", 0))
        self.sock.listen(5)
        self.sock.settimeout(0.1)
        self.thread = threading.Thread(target=self._serve, daemon=True)
        self.thread.start()

    @property
    def url(self):
        host, port = self.sock.getsockname()
        return f"http://{host}:{port}"

    def _serve(self):
        while not self.stop.is_set():
            try:
                conn, _ = self.sock.accept()
            except socket.timeout:
                continue
            except OSError:
                return
            threading.Thread(target=self._reply, args=(conn,), daemon=True).start()

    def _reply(self, conn):
        head = (
            "HTTP/1.1 200 OK\r\n"
            "Content-Type: application/json\r\n"
            f"Content-Length: {len(self.body)}\r\n"
            "Connection: close\r\n\r\n"
        ).encode()
        with conn:
            try:
                conn.recv(65536)
                conn.sendall(head)
                for byte in self.body:
                    if self.stop.wait(self.delay):
                        return
                    conn.sendall(bytes([byte]))
            except OSError:
                return

    def close(self):
        self.stop.set()
        self.sock.close()
        self.thread.join(timeout=2)


@pytest.fixture
def trickling_upstream():
    servers = []

    def start(body, delay):
        server = TricklingUpstream(body, delay)
        servers.append(server)
        return server

    yield start
    for server in servers:
        server.close()
