"""
pytest configuration and fixtures.
"""

import socket
import threading
from types import SimpleNamespace
from typing import Callable, Generator, List, Tuple
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from proxybricks import ProxyServer, ServerConfig
from proxybricks.http import Request


@pytest.fixture
def sample_get_request() -> bytes:
    """Request a browser sends to the proxy for a JIRA session."""
    return (
        b"GET /rest/auth/1/session HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_response() -> bytes:
    """Response with a cookie and a short body."""
    return (
        b"HTTP/1.1 200 OK\r\n"
        b"Content-Type: text/plain\r\n"
        b"Set-Cookie: a=1\r\n"
        b"Content-Length: 4\r\n"
        b"\r\n"
        b"BODY"
    )


def read_until_closed(sock: socket.socket, timeout: float = 5.0) -> bytes:
    """Read everything until the peer closes."""
    sock.settimeout(timeout)
    chunks = []
    while True:
        chunk = sock.recv(65536)
        if not chunk:
            return b"".join(chunks)
        chunks.append(chunk)


def read_head(sock: socket.socket, timeout: float = 5.0) -> bytes:
    """Read until a full message head has arrived."""
    sock.settimeout(timeout)
    data = b""
    while b"\r\n\r\n" not in data:
        chunk = sock.recv(65536)
        if not chunk:
            break
        data += chunk
    return data


@pytest.fixture
def wire():
    """Socket reading helpers: wire.read_head(sock), wire.read_until_closed(sock)."""
    return SimpleNamespace(read_head=read_head, read_until_closed=read_until_closed)


@pytest.fixture
def parsed_request() -> Callable[[bytes], Request]:
    """Parse a complete request head in one feed."""
    def parse(data: bytes) -> Request:
        request = Request()
        request.feed(data)
        assert request.headers_read
        return request
    return parse


@pytest.fixture
def socket_pairs() -> Generator[Callable[[], Tuple[socket.socket, socket.socket]], None, None]:
    """Factory for connected socket pairs, all closed after the test."""
    created: List[socket.socket] = []

    def make() -> Tuple[socket.socket, socket.socket]:
        a, b = socket.socketpair()
        created.extend((a, b))
        return a, b

    yield make

    for sock in created:
        try:
            sock.close()
        except OSError:
            pass


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


class Backend:
    """
    Single-shot plain HTTP target running in a background thread.

    Records the raw request head it receives and answers with a fixed
    list of chunks, then closes.
    """

    def __init__(self, chunks: List[bytes]):
        self.chunks = chunks
        self.received = b""
        self._listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self._listener.bind(("127.0.0.1", 0))
        self._listener.listen(1)
        self._listener.settimeout(5.0)
        self.port = self._listener.getsockname()[1]
        self._thread = threading.Thread(target=self._serve, daemon=True)

    def start(self) -> "Backend":
        self._thread.start()
        return self

    def _serve(self):
        try:
            conn, _ = self._listener.accept()
        except OSError:
            return
        with conn:
            self.received = read_head(conn)
            for chunk in self.chunks:
                conn.sendall(chunk)

    def stop(self):
        self._listener.close()
        self._thread.join(timeout=5.0)


@pytest.fixture
def backend() -> Generator[Callable[[List[bytes]], Backend], None, None]:
    started: List[Backend] = []

    def make(chunks: List[bytes]) -> Backend:
        b = Backend(chunks).start()
        started.append(b)
        return b

    yield make

    for b in started:
        b.stop()


class TestServer:
    """Test server helper that runs in a background thread."""

    def __init__(self, server: ProxyServer):
        self.server = server
        self._thread: threading.Thread = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()
        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def request(self, data: bytes, half_close: bool = False) -> bytes:
        """Send raw bytes and return everything the server answers."""
        with socket.create_connection(("127.0.0.1", self.port), timeout=5.0) as s:
            s.sendall(data)
            if half_close:
                s.shutdown(socket.SHUT_WR)
            return read_until_closed(s)

    def stop(self):
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)


@pytest.fixture
def test_server() -> Generator[Callable[[ProxyServer], TestServer], None, None]:
    """Start a configured ProxyServer; stopped after the test."""
    running: List[TestServer] = []

    def start(server: ProxyServer) -> TestServer:
        srv = TestServer(server)
        srv.start()
        running.append(srv)
        return srv

    yield start

    for srv in running:
        srv.stop()


@pytest.fixture
def server_config() -> ServerConfig:
    """Config listening on an OS-chosen port."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,
        request_timeout=5.0,
        log_level="WARNING",
        target_tls=False,
    )
