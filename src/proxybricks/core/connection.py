"""
=============================================================================
CLIENT CONNECTION
=============================================================================

Wraps an accepted client socket with the few operations a handler needs:
read the request head, send bytes, close properly.

=============================================================================
TCP IS A BYTE STREAM
=============================================================================

    Client sends:    "GET /rest/auth/1/session HTTP/1.1\\r\\nHost: x\\r\\n\\r\\n"

    Server may see:  recv() → "GET /rest/au"
                     recv() → "th/1/session HTTP/1.1\\r\\nHo"
                     recv() → "st: x\\r\\n\\r\\n"

read_request() keeps feeding a Request parser until the head is complete.
It does NOT wait for the body: any body bytes that happened to arrive
with the head stay in the parser's buffer, and the rest is the handler's
business (a proxy streams it, a file server ignores it).

=============================================================================
CONNECTION STATES
=============================================================================

    NEW ──► READING ──► HANDLING ──► CLOSING ──► CLOSED
              │                          ▲
              └──────────────────────────┘  (client went away, parse error)

One connection carries one request. There is no keep-alive loop.

=============================================================================
"""

import socket
import time
import logging
import uuid
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional

from ..http.message import DEFAULT_MAX_HEADER_SIZE
from ..http.request import Request


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Connection lifecycle states, for logging and cleanup."""
    NEW = "new"              # Just accepted
    READING = "reading"      # Reading the request head
    HANDLING = "handling"    # Handler owns the socket (file, relay, error)
    CLOSING = "closing"      # Shutdown sequence running
    CLOSED = "closed"        # Socket released


@dataclass
class Connection:
    """
    An accepted client connection.

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        id: Short identifier used as a log prefix.
        state: Current lifecycle state.
        created_at: Accept timestamp.
        buffer_size: Bytes requested per recv().
        timeout: Timeout while reading the request head. None = wait forever.
        max_header_size: Largest request head accepted.
    """

    socket: socket.socket
    address: tuple

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)

    buffer_size: int = 16384
    timeout: Optional[float] = 30.0
    max_header_size: Optional[int] = DEFAULT_MAX_HEADER_SIZE

    def __post_init__(self):
        self.socket.setblocking(True)
        self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        return self.address[0] if self.address else ""

    @property
    def client_port(self) -> int:
        return self.address[1] if self.address else 0

    @property
    def age(self) -> float:
        """Seconds since the connection was accepted."""
        return time.time() - self.created_at

    def read_request(self) -> Optional[Request]:
        """
        Read from the socket until the request head is complete.

        Returns:
            The parsed Request, or None if the client closed the connection
            before finishing its request head.

        Raises:
            HTTPParseError: If the head is malformed or too large.
            socket.timeout: If the client stalls longer than ``timeout``.
        """
        self.state = ConnectionState.READING
        request = Request(max_header_size=self.max_header_size)

        while not request.headers_read:
            chunk = self._recv()
            if not chunk:
                if request.buffer:
                    logger.debug(f"[{self.id}] Client closed mid-request after {len(request.buffer)} bytes")
                return None
            request.feed(chunk)

        self.state = ConnectionState.HANDLING
        return request

    def _recv(self) -> bytes:
        try:
            return self.socket.recv(self.buffer_size)
        except (ConnectionResetError, BrokenPipeError):
            return b""

    def send(self, data: bytes) -> bool:
        """
        Send all of ``data`` to the client.

        Returns:
            True if sent, False if the client is gone.
        """
        try:
            self.socket.sendall(data)
            return True
        except (ConnectionResetError, BrokenPipeError, OSError) as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False

    def close(self):
        """
        Close the connection gracefully.

        1. shutdown(SHUT_WR): FIN tells the client the response is over
        2. Drain: unread client bytes left in the kernel would turn the
           close into a RST, which can destroy the response in flight
        3. close(): release the file descriptor
        """
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Already disconnected

        try:
            self.socket.settimeout(0.5)
            while self.socket.recv(1024):
                pass
        except (socket.timeout, OSError):
            pass

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.age:.3f}s")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
