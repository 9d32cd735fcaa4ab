"""
=============================================================================
PROXYBRICKS - Header-Rewriting HTTP Relay Built From Sockets
=============================================================================

A small HTTP/1.x server for development and testing setups: serve local
files under some prefixes, relay others to a remote (usually HTTPS) server
while rewriting the message heads on the way through.

=============================================================================
PROJECT OVERVIEW
=============================================================================

    browser ──► proxybricks :8080
                   │
                   ├── /rest/*  ──► ProxyHandler ──TLS──► jira.domain.com
                   │                  Host: jira.domain.com
                   │                  Connection: close
                   │
                   └── /*       ──► StaticFilesHandler ──► ./public

    1. INCREMENTAL PARSING
       - Heads are parsed from arbitrarily fragmented reads
       - Parsing happens exactly once; bodies are never parsed

    2. STREAMING RELAY
       - Both sockets are serviced at once via a readiness poller
       - The response head is held until complete, rewritten, re-serialized
       - Everything after the head is passed through untouched

    3. REWRITE STRATEGIES
       - rewrite_request / rewrite_response hooks, called once each
       - Default: Host → target, Connection: close both ways

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    proxybricks/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m proxybricks)
    ├── server.py            # ProxyServer, create_server()
    ├── config.py            # ServerConfig, ProxyRoute
    ├── core/
    │   ├── socket_server.py # Accept loop, thread per connection
    │   ├── connection.py    # Client socket wrapper
    │   ├── connector.py     # TLS/plain target connections
    │   ├── poller.py        # Readiness multiplexing
    │   ├── relay.py         # The relay engine
    │   └── rewrite.py       # Rewrite strategies
    ├── http/
    │   ├── headers.py       # Ordered header collection
    │   ├── message.py       # Incremental message parser
    │   ├── request.py       # Request-line grammar
    │   ├── response.py      # Status-line grammar
    │   ├── router.py        # Prefix routing
    │   ├── status_codes.py  # Local status codes
    │   └── mime_types.py    # Content-Type lookup
    └── handlers/
        ├── base.py          # RequestHandler
        ├── static.py        # Static files
        └── proxy.py         # Relaying proxy

=============================================================================
QUICK START
=============================================================================

    from proxybricks import ProxyServer, ServerConfig
    from proxybricks.handlers import ProxyHandler, StaticFilesHandler

    server = ProxyServer(ServerConfig(port=8080))
    server.add_handler("/rest", ProxyHandler("jira.domain.com"))
    server.add_handler("/", StaticFilesHandler("./public"))
    server.run()

=============================================================================
"""

__version__ = "1.0.0"

from .server import ProxyServer, create_server
from .config import ServerConfig, ProxyRoute

__all__ = ["ProxyServer", "create_server", "ServerConfig", "ProxyRoute", "__version__"]
