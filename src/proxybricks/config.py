"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Everything the proxy server can be told, in one dataclass.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m proxybricks --proxy /rest=jira.domain.com       │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── PROXYBRICKS_PORT=9000 python -m proxybricks               │
    │                                                                      │
    │   3. Default values (in this dataclass)                             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
ROUTES
=============================================================================

A proxy route is written PREFIX=HOST[:PORT]:

    /rest=jira.domain.com          → /rest*  relayed to jira.domain.com:443
    /api=localhost:9000            → /api*   relayed to localhost:9000

Proxy routes are registered before the static route, in the order given,
and the first matching prefix wins.

=============================================================================
"""

import os
from dataclasses import dataclass, field
from typing import List, Optional

from .http.message import DEFAULT_MAX_HEADER_SIZE


DEFAULT_TARGET_PORT = 443


@dataclass
class ProxyRoute:
    """A URI prefix relayed to a target host."""

    prefix: str
    host: str
    port: int = DEFAULT_TARGET_PORT

    @classmethod
    def parse(cls, text: str) -> "ProxyRoute":
        """
        Parse ``PREFIX=HOST[:PORT]``.

        Raises:
            ValueError: If the route string is malformed.
        """
        prefix, sep, target = text.partition("=")
        if not sep or not prefix or not target:
            raise ValueError(f"Invalid proxy route {text!r}, expected PREFIX=HOST[:PORT]")

        host, sep, port = target.rpartition(":")
        if not sep:
            return cls(prefix=prefix, host=target)
        if not host or not port.isdigit():
            raise ValueError(f"Invalid proxy target {target!r}, expected HOST[:PORT]")
        return cls(prefix=prefix, host=host, port=int(port))


@dataclass
class ServerConfig:
    """
    Configuration for the proxy server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK         host, port, backlog, buffer_size, request_timeout
    HTTP            max_header_size
    ROUTING         proxy_routes, static_dir, static_prefix
    TARGETS         target_tls, verify_tls, connect_timeout
    LOGGING         log_level

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """Address to listen on. "0.0.0.0" for all interfaces."""

    port: int = 8080
    """Port to listen on."""

    backlog: int = 128
    """Maximum number of connections waiting in the accept queue."""

    buffer_size: int = 16384
    """Bytes requested per recv(), both while reading and while relaying."""

    request_timeout: Optional[float] = 30.0
    """
    Seconds a client may take to send its request head.
    None = wait forever. The relay phase itself never times out.
    """

    # ─────────────────────────────────────────────────────────────────────
    # HTTP SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    max_header_size: Optional[int] = DEFAULT_MAX_HEADER_SIZE
    """
    Largest header block accepted from a client or a target, in bytes.
    Bigger heads are a parse error (431 for clients, 502 for targets).
    """

    # ─────────────────────────────────────────────────────────────────────
    # ROUTING
    # ─────────────────────────────────────────────────────────────────────

    proxy_routes: List[ProxyRoute] = field(default_factory=list)
    """Prefixes relayed to remote targets, first match wins."""

    static_dir: Optional[str] = None
    """Directory served for static_prefix. None = no static files."""

    static_prefix: str = "/"
    """URI prefix routed to the static file handler (not stripped)."""

    # ─────────────────────────────────────────────────────────────────────
    # TARGET CONNECTIONS
    # ─────────────────────────────────────────────────────────────────────

    target_tls: bool = True
    """Connect to targets over TLS."""

    verify_tls: bool = True
    """Verify target certificates. Disable only for test targets."""

    connect_timeout: Optional[float] = 10.0
    """Seconds allowed for TCP connect + TLS handshake to a target."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """DEBUG shows every relayed chunk; INFO shows one line per request."""

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        PROXYBRICKS_HOST             Listen address (default: 127.0.0.1)
        PROXYBRICKS_PORT             Listen port (default: 8080)
        PROXYBRICKS_PROXY            Comma-separated PREFIX=HOST[:PORT] routes
        PROXYBRICKS_STATIC_DIR       Static files directory
        PROXYBRICKS_STATIC_PREFIX    Static files prefix (default: /)
        PROXYBRICKS_TARGET_TLS       "0" to talk plain TCP to targets
        PROXYBRICKS_VERIFY_TLS       "0" to skip certificate checks
        PROXYBRICKS_MAX_HEADER_SIZE  Header block limit in bytes
        PROXYBRICKS_LOG_LEVEL        Logging level (default: INFO)

        =====================================================================
        """
        routes = os.getenv("PROXYBRICKS_PROXY", "")
        return cls(
            host=os.getenv("PROXYBRICKS_HOST", "127.0.0.1"),
            port=int(os.getenv("PROXYBRICKS_PORT", "8080")),
            proxy_routes=[ProxyRoute.parse(r.strip()) for r in routes.split(",") if r.strip()],
            static_dir=os.getenv("PROXYBRICKS_STATIC_DIR"),
            static_prefix=os.getenv("PROXYBRICKS_STATIC_PREFIX", "/"),
            target_tls=os.getenv("PROXYBRICKS_TARGET_TLS", "1") != "0",
            verify_tls=os.getenv("PROXYBRICKS_VERIFY_TLS", "1") != "0",
            max_header_size=int(os.getenv("PROXYBRICKS_MAX_HEADER_SIZE", str(DEFAULT_MAX_HEADER_SIZE))),
            log_level=os.getenv("PROXYBRICKS_LOG_LEVEL", "INFO"),
        )

    def validate(self) -> None:
        """Fail fast on values that would only break at the first request."""
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.request_timeout is not None and self.request_timeout <= 0:
            raise ValueError("request_timeout must be > 0")

        if self.max_header_size is not None and self.max_header_size < 1024:
            raise ValueError("max_header_size must be >= 1024")

        for route in self.proxy_routes:
            if not route.prefix.startswith("/"):
                raise ValueError(f"Proxy prefix must start with '/': {route.prefix!r}")
            if not 0 < route.port < 65536:
                raise ValueError(f"Invalid target port for {route.prefix!r}: {route.port}")

        if self.static_dir is not None and not os.path.isdir(self.static_dir):
            raise ValueError(f"Static directory does not exist: {self.static_dir}")
