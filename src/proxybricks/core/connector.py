"""
=============================================================================
TARGET CONNECTOR
=============================================================================

Opens the connection from the proxy to the target server.

    ProxyHandler ── connect("jira.domain.com", 443) ──► TargetConnector
                                                            │
                                          TCP connect ──────┤
                                          TLS handshake ────┤  (if use_tls)
                                                            ▼
                                                 connected socket

The relay never cares whether the socket it gets is encrypted: an
ssl.SSLSocket and a plain socket offer the same recv()/sendall()/close().

A failure at any step raises (OSError, ssl.SSLError) and leaves no
socket open behind it. There are no retries.

=============================================================================
"""

import logging
import socket
import ssl
from typing import Optional


logger = logging.getLogger(__name__)


class TargetConnector:
    """
    Factory for connected target sockets.

    Args:
        use_tls: Wrap the TCP connection in TLS.
        verify: Check the target's certificate and host name.
                Turn off only for test servers with self-signed certs.
        timeout: Connect + handshake timeout in seconds. None = OS default.
        ssl_context: Pre-built context; overrides ``verify``.
    """

    def __init__(
        self,
        use_tls: bool = True,
        verify: bool = True,
        timeout: Optional[float] = 10.0,
        ssl_context: Optional[ssl.SSLContext] = None,
    ):
        self.use_tls = use_tls
        self.timeout = timeout
        self._context = ssl_context
        if use_tls and self._context is None:
            self._context = ssl.create_default_context()
            if not verify:
                self._context.check_hostname = False
                self._context.verify_mode = ssl.CERT_NONE

    def connect(self, host: str, port: int) -> socket.socket:
        """
        Connect to ``host:port`` and return a ready-to-use socket.

        The returned socket is in blocking mode with no timeout.
        """
        sock = socket.create_connection((host, port), timeout=self.timeout)
        try:
            sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
            if self.use_tls:
                sock = self._context.wrap_socket(sock, server_hostname=host)
            sock.settimeout(None)
        except Exception:
            sock.close()
            raise

        logger.debug(f"Connected to {host}:{port} ({'tls' if self.use_tls else 'plain'})")
        return sock
