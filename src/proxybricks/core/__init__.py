"""
=============================================================================
CORE SERVER COMPONENTS
=============================================================================

The socket-level machinery behind the proxy.

    ┌─────────────────────────────────────────────────────────────────────┐
    │  SocketServer    accept loop, one thread per connection              │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │  Connection      client socket: read request head, send, close       │
    └─────────────────────────────────────────────────────────────────────┘
                                    │  (proxied prefixes)
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │  TargetConnector opens the (TLS) socket to the target                │
    │  Relay           pumps bytes both ways, rewrites both message heads  │
    │  ReadinessPoller waits on client and target at the same time         │
    │  RewriteStrategy the hooks the relay calls                           │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState
from .connector import TargetConnector
from .poller import ReadinessPoller
from .relay import Relay, RelayStats
from .rewrite import RewriteStrategy, TargetRewrite, ChainedRewrite

__all__ = [
    "SocketServer",
    "Connection",
    "ConnectionState",
    "TargetConnector",
    "ReadinessPoller",
    "Relay",
    "RelayStats",
    "RewriteStrategy",
    "TargetRewrite",
    "ChainedRewrite",
]
