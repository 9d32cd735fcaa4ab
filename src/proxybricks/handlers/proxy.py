"""
=============================================================================
PROXY HANDLER
=============================================================================

Relays a request to a fixed target and streams the answer back.

    client ──► proxybricks ──TLS──► jira.domain.com:443

    1. connect to the target (TargetConnector)
    2. hand client socket, parsed request and target socket to a Relay
    3. the Relay applies the rewrite strategy and pumps bytes until one
       side closes, then closes the target

=============================================================================
FAILURES
=============================================================================

    ┌────────────────────────────────┬──────────────────────────────────┐
    │  What went wrong               │  Client gets                     │
    ├────────────────────────────────┼──────────────────────────────────┤
    │  Connect / TLS handshake fails │  502 Bad Gateway                 │
    │  Target sends a broken head    │  502 Bad Gateway                 │
    │  Either side closes mid-relay  │  whatever was relayed so far     │
    └────────────────────────────────┴──────────────────────────────────┘

A broken head can only be detected before anything from the target was
forwarded, so the 502 never collides with a half-sent response.

=============================================================================
"""

import logging
from typing import Optional

from ..core.connection import Connection
from ..core.connector import TargetConnector
from ..core.relay import Relay, RelayStats
from ..core.rewrite import RewriteStrategy, TargetRewrite
from ..http.message import HTTPParseError, DEFAULT_MAX_HEADER_SIZE
from ..http.request import Request
from ..http.response import Response
from ..http.status_codes import HTTPStatus
from .base import RequestHandler


logger = logging.getLogger(__name__)


class ProxyHandler(RequestHandler):
    """
    Forward requests to ``target_host:target_port``.

    Args:
        target_host: Host name to connect to; also the default Host header.
        target_port: Target port (443 for HTTPS).
        rewrite: Strategy applied to both message heads. Defaults to
                 TargetRewrite(target_host). Wrap it in a ChainedRewrite
                 to add behavior on top of the default.
        connector: Opens target sockets. Defaults to verified TLS.
        buffer_size: Bytes per recv() during the relay.
        max_header_size: Limit on the target's response head.
    """

    def __init__(
        self,
        target_host: str,
        target_port: int = 443,
        rewrite: Optional[RewriteStrategy] = None,
        connector: Optional[TargetConnector] = None,
        buffer_size: int = 16384,
        max_header_size: Optional[int] = DEFAULT_MAX_HEADER_SIZE,
    ):
        self.target_host = target_host
        self.target_port = target_port
        self.rewrite = rewrite or TargetRewrite(target_host)
        self.connector = connector or TargetConnector()
        self.buffer_size = buffer_size
        self.max_header_size = max_header_size

    def handle(self, connection: Connection, request: Request) -> Optional[RelayStats]:
        logger.debug(f"[{connection.id}] Proxy request to {self.target_host}:{self.target_port}")

        try:
            target = self.connector.connect(self.target_host, self.target_port)
        except OSError as e:
            logger.warning(
                f"[{connection.id}] Cannot reach {self.target_host}:{self.target_port}: {e}"
            )
            self._bad_gateway(connection)
            return None

        relay = Relay(
            strategy=self.rewrite,
            buffer_size=self.buffer_size,
            max_header_size=self.max_header_size,
            connection_id=connection.id,
        )

        try:
            return relay.run(connection.socket, request, target)
        except HTTPParseError as e:
            logger.warning(f"[{connection.id}] Bad response from {self.target_host}: {e}")
            self._bad_gateway(connection)
            return None

    def _bad_gateway(self, connection: Connection) -> None:
        body = f"Bad gateway: {self.target_host}:{self.target_port}\n".encode("utf-8")
        response = Response.create(HTTPStatus.BAD_GATEWAY, body, content_type="text/plain; charset=utf-8")
        connection.send(response.to_bytes())
