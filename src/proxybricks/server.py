"""
=============================================================================
PROXY SERVER
=============================================================================

Ties the pieces together: accept a connection, read the request head,
route it by URI prefix, let the handler answer, close.

=============================================================================
REQUEST LIFECYCLE
=============================================================================

    1. SocketServer accepts a TCP connection, starts a thread for it
    2. Connection.read_request() feeds a Request parser until the head
       is complete (body bytes that came along stay buffered)
    3. PrefixRouter picks the first handler whose prefix starts the URI
    4. The handler writes its answer:
         StaticFilesHandler → a file or 404
         ProxyHandler       → a relayed, rewritten exchange
    5. The connection is closed, whatever happened above

=============================================================================
ERROR POLICY
=============================================================================

    ┌──────────────────────────────┬────────────────────────────────────┐
    │  Failure                     │  Result                            │
    ├──────────────────────────────┼────────────────────────────────────┤
    │  Malformed request head      │  400 (431 if too large), close     │
    │  Client stalls before head   │  close                             │
    │  No route for the URI        │  404 "No handler for <uri>."       │
    │  Handler raises              │  logged with traceback, close      │
    └──────────────────────────────┴────────────────────────────────────┘

Every failure is scoped to its own connection; nothing is retried.

=============================================================================
"""

import logging
import socket
from typing import Optional

from .config import ServerConfig
from .core import SocketServer, Connection, TargetConnector
from .handlers import RequestHandler, ProxyHandler, StaticFilesHandler
from .http import HTTPParseError, HTTPStatus, PrefixRouter, Response


logger = logging.getLogger(__name__)


class ProxyServer:
    """
    Prefix-routed HTTP server for static files and rewriting proxies.

    =========================================================================
    USAGE
    =========================================================================

        server = ProxyServer(ServerConfig(port=8080))
        server.add_handler("/rest", ProxyHandler("jira.domain.com"))
        server.add_handler("/", StaticFilesHandler("./public"))
        server.run()

    or let create_server() build the routes from the configuration.

    =========================================================================
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        self.config = config or ServerConfig()
        self.config.validate()

        self._socket_server = SocketServer(self.config)
        self._router = PrefixRouter()

    @property
    def router(self) -> PrefixRouter:
        return self._router

    @property
    def address(self):
        return self._socket_server.address

    def add_handler(self, prefix: str, handler: RequestHandler) -> "ProxyServer":
        """
        Route URIs starting with ``prefix`` to ``handler``.

        Earlier registrations win over later ones.
        """
        self._router.add(prefix, handler)
        return self

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    def run(self, host: Optional[str] = None, port: Optional[int] = None):
        """Start serving (blocking) until shutdown() or Ctrl+C."""
        if host:
            self.config.host = host
        if port is not None:
            self.config.port = port

        self._setup_logging()

        for route in self._router.routes:
            logger.info(f"Route {route.prefix} -> {type(route.handler).__name__}")

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Interrupted")
        finally:
            logger.info("Quitting.")

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        return self._socket_server.wait_until_ready(timeout)

    def shutdown(self):
        self._socket_server.shutdown()

    def _setup_logging(self):
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        logging.getLogger("proxybricks").setLevel(level)

    # =========================================================================
    # CONNECTION HANDLING (one thread per connection)
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        logger.debug(f"[{conn.id}] Reading from {conn.client_ip}:{conn.client_port}")

        with conn:
            try:
                request = conn.read_request()
                if request is None:
                    return

                logger.info(f"[{conn.id}] {request.start_line}")
                self._dispatch(conn, request)

            except HTTPParseError as e:
                logger.warning(f"[{conn.id}] Bad request from {conn.client_ip}:{conn.client_port}: {e}")
                self._send_error(conn, HTTPStatus(e.status_code), str(e))

            except socket.timeout:
                logger.warning(f"[{conn.id}] Timed out reading request from {conn.client_ip}:{conn.client_port}")

            except Exception as e:
                logger.exception(
                    f"[{conn.id}] ERROR handling request from {conn.client_ip}:{conn.client_port}: {e}"
                )

    def _dispatch(self, conn: Connection, request):
        handler = self._router.match(request.uri)
        if handler is None:
            logger.info(f"[{conn.id}] No handler for {request.uri}")
            self._send_error(conn, HTTPStatus.NOT_FOUND, f"No handler for {request.uri}.")
            return

        handler.handle(conn, request)

    def _send_error(self, conn: Connection, status: HTTPStatus, message: str):
        body = f"{message}\n".encode("utf-8")
        response = Response.create(status, body, content_type="text/plain; charset=utf-8")
        conn.send(response.to_bytes())


def create_server(config: Optional[ServerConfig] = None) -> ProxyServer:
    """
    Build a ProxyServer with the routes described by ``config``.

    Proxy routes are registered first, in order, then the static route.
    """
    config = config or ServerConfig()
    server = ProxyServer(config)

    connector = TargetConnector(
        use_tls=config.target_tls,
        verify=config.verify_tls,
        timeout=config.connect_timeout,
    )

    for route in config.proxy_routes:
        server.add_handler(route.prefix, ProxyHandler(
            route.host,
            route.port,
            connector=connector,
            buffer_size=config.buffer_size,
            max_header_size=config.max_header_size,
        ))

    if config.static_dir:
        server.add_handler(config.static_prefix, StaticFilesHandler(config.static_dir))

    return server
