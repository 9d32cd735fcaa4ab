"""
Request handlers.

    RequestHandler       base class: handle(connection, request)
    StaticFilesHandler   serve files from a directory
    ProxyHandler         relay to a remote target with header rewriting
"""

from .base import RequestHandler
from .static import StaticFilesHandler
from .proxy import ProxyHandler

__all__ = [
    "RequestHandler",
    "StaticFilesHandler",
    "ProxyHandler",
]
