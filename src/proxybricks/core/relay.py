"""
=============================================================================
RELAY ENGINE
=============================================================================

Runs one request/response exchange between a client and a target while
letting a rewrite strategy edit both message heads in flight.

=============================================================================
THE EXCHANGE
=============================================================================

    client                      Relay                        target
      │                           │                             │
      │  (request already parsed) │                             │
      │                           │ rewrite_request(request)    │
      │                           │ ──── request.to_bytes() ──► │
      │                           │                             │
      │                      ┌────┴─────┐                       │
      │                      │  poller  │  wait on BOTH sockets │
      │                      └────┬─────┘                       │
      │                           │                             │
      │ ── more body bytes ─────► │ ── forwarded verbatim ────► │
      │                           │                             │
      │                           │ ◄── "HTTP/1.1 200 OK\\r\\nSe" │
      │                           │     held in Response parser │
      │                           │ ◄── "t-Cookie: a=1\\r\\n\\r\\nBO"│
      │                           │     headers complete!       │
      │                           │ rewrite_response(response)  │
      │ ◄── response.to_bytes() ─ │                             │
      │                           │                             │
      │ ◄── forwarded verbatim ── │ ◄── "DY..."                 │
      │                           │                             │
      │                      either side closes                 │
      │                           │ ──── close() ─────────────► │

=============================================================================
WHY HOLD THE RESPONSE HEAD?
=============================================================================

The rewrite hook may add, drop or edit headers. If the first fragment
were forwarded as it arrived, the client would already have bytes of the
ORIGINAL head that no longer match the edited one. So nothing goes to the
client until the head is complete; then the canonical serialized form
(status-line + edited headers + any body bytes already received) replaces
everything read so far.

The price: a target that dribbles its headers makes us hold them in
memory. The parser's max_header_size caps that; past the cap the exchange
fails with HTTPParseError.

=============================================================================
WHAT THE RELAY DOES NOT DO
=============================================================================

- Parse anything after the response head, or anything the client sends
  after its first request head. Those bytes are opaque.
- Time out. A peer that neither sends nor closes holds the exchange open.
- Close the client socket. That belongs to the connection handler.

=============================================================================
"""

import logging
import socket
import ssl
from dataclasses import dataclass
from typing import Optional

from ..http.message import DEFAULT_MAX_HEADER_SIZE
from ..http.request import Request
from ..http.response import Response
from .poller import ReadinessPoller
from .rewrite import RewriteStrategy


logger = logging.getLogger(__name__)


CLIENT = "client"
TARGET = "target"


@dataclass
class RelayStats:
    """
    Byte counters for one exchange. Observability only; the relay never
    makes decisions based on them.
    """

    client_to_target_bytes: int = 0
    target_to_client_bytes: int = 0
    closed_by: Optional[str] = None


class Relay:
    """
    Bidirectional relay for a single proxied exchange.

    Usage:
        relay = Relay(TargetRewrite("jira.domain.com"))
        stats = relay.run(client_sock, request, target_sock)

    The target socket is always closed when run() returns or raises.

    Without a strategy the relay forwards both heads unchanged. Host and
    Connection rewriting happen only when a TargetRewrite (or a chain
    containing one) is passed in; ProxyHandler does that by default.
    """

    def __init__(
        self,
        strategy: Optional[RewriteStrategy] = None,
        buffer_size: int = 16384,
        max_header_size: Optional[int] = DEFAULT_MAX_HEADER_SIZE,
        connection_id: str = "-",
    ):
        self.strategy = strategy or RewriteStrategy()
        self.buffer_size = buffer_size
        self.max_header_size = max_header_size
        self.connection_id = connection_id

    def run(
        self,
        client: socket.socket,
        request: Request,
        target: socket.socket,
    ) -> RelayStats:
        """
        Relay ``request`` to ``target`` and pump bytes until one side closes.

        Args:
            client: Client socket the request was read from.
            request: Parsed request, possibly with body bytes buffered.
            target: Connected target socket (plain or TLS).

        Returns:
            Byte counters for the exchange.

        Raises:
            HTTPParseError: If the target's response head is malformed or
                            too large. Nothing has reached the client yet.
        """
        stats = RelayStats()
        try:
            self.strategy.rewrite_request(request)

            request_data = request.to_bytes()
            target.sendall(request_data)
            stats.client_to_target_bytes += len(request_data)
            logger.debug(f"[{self.connection_id}] >>> {request.start_line}")

            response = Response(max_header_size=self.max_header_size)

            # The relay phase has no timeouts; readiness comes from the poller
            client.settimeout(None)
            target.settimeout(None)

            with ReadinessPoller() as poller:
                poller.register(client, CLIENT)
                poller.register(target, TARGET)

                while stats.closed_by is None:
                    for source in poller.wait():
                        if source == CLIENT:
                            self._pump_client(client, target, stats)
                        else:
                            self._pump_target(target, client, response, stats)
                        if stats.closed_by is not None:
                            break

            logger.info(
                f"[{self.connection_id}] Closing proxied request "
                f"(closed by {stats.closed_by}): "
                f"client_to_server_bytes={stats.client_to_target_bytes}, "
                f"server_to_client_bytes={stats.target_to_client_bytes}"
            )
            return stats
        finally:
            _close_quietly(target)

    def _pump_client(self, client: socket.socket, target: socket.socket, stats: RelayStats) -> None:
        data = self._recv(client)
        if data is None:
            return
        if not data:
            stats.closed_by = CLIENT
            return

        if not self._send(target, data):
            stats.closed_by = TARGET
            return
        stats.client_to_target_bytes += len(data)
        logger.debug(f"[{self.connection_id}] >>> {len(data)} bytes")

    def _pump_target(
        self,
        target: socket.socket,
        client: socket.socket,
        response: Response,
        stats: RelayStats,
    ) -> None:
        data = self._recv(target)
        if data is None:
            return
        if not data:
            stats.closed_by = TARGET
            return

        if not response.headers_read:
            if not response.feed(data):
                return  # Wait for the end of the header block

            self.strategy.rewrite_response(response)
            logger.debug(f"[{self.connection_id}] <<< {response.start_line}")
            data = response.to_bytes()

        if not self._send(client, data):
            stats.closed_by = CLIENT
            return
        stats.target_to_client_bytes += len(data)
        logger.debug(f"[{self.connection_id}] <<< {len(data)} bytes")

    def _recv(self, sock: socket.socket) -> Optional[bytes]:
        """
        Read one chunk from a ready socket.

        Returns:
            The bytes read, b"" if the peer closed or reset the connection,
            or None if a TLS socket had only part of a record buffered.
        """
        try:
            return sock.recv(self.buffer_size)
        except ssl.SSLWantReadError:
            return None
        except (ConnectionResetError, BrokenPipeError):
            return b""

    def _send(self, sock: socket.socket, data: bytes) -> bool:
        """Write all of ``data``; False if the peer has gone away."""
        try:
            sock.sendall(data)
            return True
        except (ConnectionResetError, BrokenPipeError) as e:
            logger.debug(f"[{self.connection_id}] Send failed: {e}")
            return False


def _close_quietly(sock: socket.socket) -> None:
    try:
        sock.close()
    except OSError:
        pass
