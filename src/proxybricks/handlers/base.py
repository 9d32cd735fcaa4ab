"""
Base class for request handlers.

A handler receives the client connection and the parsed request head and
writes whatever it wants to the socket. The server closes the connection
afterwards, whether the handler returned or raised.
"""

from ..core.connection import Connection
from ..http.request import Request


class RequestHandler:
    """Handles one request on one connection."""

    def handle(self, connection: Connection, request: Request) -> None:
        raise NotImplementedError(f"{type(self).__name__} must implement handle()")
