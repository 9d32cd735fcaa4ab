"""
Unit tests for the relay engine.

Each test wires a Relay between two socket pairs:

    client_app ◄──► client_side  [Relay]  target_side ◄──► target_app

The test plays both the browser (client_app) and the server (target_app).
"""

import socket
import threading
import time

import pytest

from proxybricks.core.relay import Relay, RelayStats, CLIENT, TARGET
from proxybricks.core.rewrite import RewriteStrategy, TargetRewrite, ChainedRewrite
from proxybricks.http.message import HTTPParseError


class StripCookies(RewriteStrategy):
    def rewrite_response(self, response):
        response.headers.remove("Set-Cookie")


class RelayRun:
    """Runs Relay.run() in a thread and keeps its outcome."""

    def __init__(self, relay: Relay, client: socket.socket, request, target: socket.socket):
        self.stats: RelayStats = None
        self.error: Exception = None
        self._thread = threading.Thread(
            target=self._run, args=(relay, client, request, target), daemon=True
        )
        self._thread.start()

    def _run(self, relay, client, request, target):
        try:
            self.stats = relay.run(client, request, target)
        except Exception as e:
            self.error = e

    def join(self, timeout: float = 5.0) -> None:
        self._thread.join(timeout)
        assert not self._thread.is_alive(), "relay did not finish"


@pytest.fixture
def wired(socket_pairs):
    """Return (client_app, client_side, target_side, target_app)."""
    client_app, client_side = socket_pairs()
    target_side, target_app = socket_pairs()
    return client_app, client_side, target_side, target_app


class TestRelayExchange:
    """Full exchanges through the relay."""

    def test_simple_proxy(self, wired, wire, parsed_request, sample_get_request):
        """Test a JIRA session request relayed to the target."""
        client_app, client_side, target_side, target_app = wired
        request = parsed_request(sample_get_request)

        run = RelayRun(Relay(TargetRewrite("jira.domain.com")), client_side, request, target_side)

        assert wire.read_head(target_app) == (
            b"GET /rest/auth/1/session HTTP/1.1\r\n"
            b"Host: jira.domain.com\r\n"
            b"Connection: close\r\n"
            b"\r\n"
        )

        target_app.sendall(
            b"HTTP/1.1 200 OK\r\n"
            b"Content-Type: application/json\r\n"
            b"Content-Length: 2\r\n"
            b"\r\n"
            b"{}"
        )
        target_app.close()

        run.join()
        client_side.close()

        assert wire.read_until_closed(client_app) == (
            b"HTTP/1.1 200 OK\r\n"
            b"Content-Type: application/json\r\n"
            b"Content-Length: 2\r\n"
            b"Connection: close\r\n"
            b"\r\n"
            b"{}"
        )
        assert run.error is None
        assert run.stats.closed_by == TARGET
        assert run.stats.target_to_client_bytes > 0

    def test_split_response_head_with_cookie_stripping(self, wired, wire, parsed_request):
        """Test a head split mid-name is held, rewritten, then sent once."""
        client_app, client_side, target_side, target_app = wired
        request = parsed_request(b"GET /x HTTP/1.1\r\nHost: localhost:8080\r\n\r\n")
        strategy = ChainedRewrite(TargetRewrite("example.org"), StripCookies())

        run = RelayRun(Relay(strategy), client_side, request, target_side)
        wire.read_head(target_app)

        target_app.sendall(b"HTTP/1.1 200 OK\r\nSet-Co")
        time.sleep(0.1)
        target_app.sendall(b"okie: a=1\r\n\r\nBODY")
        time.sleep(0.1)
        target_app.sendall(b"MORE")
        target_app.close()

        run.join()
        client_side.close()

        assert wire.read_until_closed(client_app) == (
            b"HTTP/1.1 200 OK\r\n"
            b"Connection: close\r\n"
            b"\r\n"
            b"BODYMORE"
        )

    def test_default_relay_forwards_heads_unchanged(self, wired, wire, parsed_request, sample_get_request):
        """Test that a relay without a strategy leaves Host and Connection alone."""
        client_app, client_side, target_side, target_app = wired
        request = parsed_request(sample_get_request)

        run = RelayRun(Relay(), client_side, request, target_side)
        assert wire.read_head(target_app) == sample_get_request

        target_app.sendall(b"HTTP/1.1 204 No Content\r\nConnection: keep-alive\r\n\r\n")
        target_app.close()
        run.join()
        client_side.close()

        assert wire.read_until_closed(client_app) == (
            b"HTTP/1.1 204 No Content\r\nConnection: keep-alive\r\n\r\n"
        )

    def test_request_body_forwarded(self, wired, wire, parsed_request):
        """Test buffered body bytes and later client bytes both reach the target."""
        client_app, client_side, target_side, target_app = wired
        request = parsed_request(
            b"POST /upload HTTP/1.1\r\n"
            b"Content-Length: 10\r\n"
            b"\r\n"
            b"01234"
        )

        run = RelayRun(Relay(), client_side, request, target_side)

        client_app.sendall(b"56789")
        client_app.shutdown(socket.SHUT_WR)

        received = wire.read_until_closed(target_app)
        run.join()

        assert received == (
            b"POST /upload HTTP/1.1\r\n"
            b"Content-Length: 10\r\n"
            b"\r\n"
            b"0123456789"
        )
        assert run.stats.closed_by == CLIENT
        assert run.stats.client_to_target_bytes == len(received)

    def test_client_close_ends_exchange(self, wired, wire, parsed_request, sample_get_request):
        """Test the target is closed once the client goes away."""
        client_app, client_side, target_side, target_app = wired
        request = parsed_request(sample_get_request)

        run = RelayRun(Relay(), client_side, request, target_side)
        wire.read_head(target_app)

        client_app.shutdown(socket.SHUT_WR)
        run.join()

        assert run.stats.closed_by == CLIENT
        target_app.settimeout(5.0)
        assert target_app.recv(1024) == b""

    def test_body_after_head_is_not_parsed(self, wired, wire, parsed_request, sample_get_request):
        """Test that a second header-looking block is relayed as opaque bytes."""
        client_app, client_side, target_side, target_app = wired
        request = parsed_request(sample_get_request)

        run = RelayRun(Relay(TargetRewrite("t")), client_side, request, target_side)
        wire.read_head(target_app)

        target_app.sendall(b"HTTP/1.1 200 OK\r\n\r\nHTTP/1.1 500 Nope\r\nX: y\r\n\r\n")
        target_app.close()
        run.join()
        client_side.close()

        assert wire.read_until_closed(client_app) == (
            b"HTTP/1.1 200 OK\r\n"
            b"Connection: close\r\n"
            b"\r\n"
            b"HTTP/1.1 500 Nope\r\nX: y\r\n\r\n"
        )


class TestRelayFailures:
    """Error paths of the relay."""

    def test_bad_response_head_raises(self, wired, wire, parsed_request, sample_get_request):
        client_app, client_side, target_side, target_app = wired
        request = parsed_request(sample_get_request)

        run = RelayRun(Relay(), client_side, request, target_side)
        wire.read_head(target_app)

        target_app.sendall(b"SSH-2.0-OpenSSH\r\n\r\n")
        run.join()

        assert isinstance(run.error, HTTPParseError)
        assert run.error.status_code == 502

        # Nothing reached the client and the target was closed
        client_app.setblocking(False)
        with pytest.raises(BlockingIOError):
            client_app.recv(1024)
        target_app.settimeout(5.0)
        assert target_app.recv(1024) == b""

    def test_oversized_response_head_raises(self, wired, wire, parsed_request, sample_get_request):
        client_app, client_side, target_side, target_app = wired
        request = parsed_request(sample_get_request)

        run = RelayRun(Relay(max_header_size=1024), client_side, request, target_side)
        wire.read_head(target_app)

        target_app.sendall(b"HTTP/1.1 200 OK\r\nX-Big: " + b"a" * 4096)
        run.join()

        assert isinstance(run.error, HTTPParseError)
        assert run.error.status_code == 431

    def test_target_closes_before_answering(self, wired, wire, parsed_request, sample_get_request):
        client_app, client_side, target_side, target_app = wired
        request = parsed_request(sample_get_request)

        run = RelayRun(Relay(), client_side, request, target_side)
        wire.read_head(target_app)
        target_app.close()
        run.join()
        client_side.close()

        assert run.error is None
        assert run.stats.closed_by == TARGET
        assert run.stats.target_to_client_bytes == 0
        assert wire.read_until_closed(client_app) == b""

    def test_client_socket_left_open(self, wired, wire, parsed_request, sample_get_request):
        """Test the relay closes the target only."""
        client_app, client_side, target_side, target_app = wired
        request = parsed_request(sample_get_request)

        run = RelayRun(Relay(), client_side, request, target_side)
        wire.read_head(target_app)
        target_app.close()
        run.join()

        assert client_side.fileno() != -1
        assert target_side.fileno() == -1
