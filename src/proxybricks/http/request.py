"""
=============================================================================
HTTP REQUEST
=============================================================================

Request-line grammar on top of the incremental message parser.

    GET /rest/auth/1/session HTTP/1.1\\r\\n
    ─┬─ ──────────┬───────── ──┬─ ┬─
     │            │            │  │
   Method        URI      Protocol Version

The URI is kept exactly as received. Routing matches on it and a proxy
forwards it untouched unless a rewrite hook assigns a new one.

Every field has a setter. Assigning one rebuilds the start-line, so the
line that goes out on the wire always agrees with the fields:

    request.uri = "/api/v2/session"
    request.start_line  →  "GET /api/v2/session HTTP/1.1"

=============================================================================
"""

import re
from typing import Optional

from .message import MessageParser, HTTPParseError


class Request(MessageParser):
    """
    An HTTP request being read from a client.

    Attributes are None until the headers are complete, and assigning
    one before then raises ValueError.
    """

    REQUEST_LINE_PATTERN = re.compile(r"^(\w+)\s+(\S+)\s+(\w+)/(1\.\d)$")

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._method: Optional[str] = None
        self._uri: Optional[str] = None
        self._protocol: Optional[str] = None
        self._version: Optional[str] = None

    def _parse_start_line(self, line: str) -> None:
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request: {line!r}")
        self._method, self._uri, self._protocol, self._version = match.groups()

    def _update_request_line(self) -> None:
        self.start_line = f"{self._method} {self._uri} {self._protocol}/{self._version}"

    @property
    def method(self) -> Optional[str]:
        return self._method

    @method.setter
    def method(self, value: str) -> None:
        self._require_headers("edit the request line")
        self._method = value
        self._update_request_line()

    @property
    def uri(self) -> Optional[str]:
        return self._uri

    @uri.setter
    def uri(self, value: str) -> None:
        self._require_headers("edit the request line")
        self._uri = value
        self._update_request_line()

    @property
    def protocol(self) -> Optional[str]:
        return self._protocol

    @protocol.setter
    def protocol(self, value: str) -> None:
        self._require_headers("edit the request line")
        self._protocol = value
        self._update_request_line()

    @property
    def version(self) -> Optional[str]:
        return self._version

    @version.setter
    def version(self, value: str) -> None:
        self._require_headers("edit the request line")
        self._version = value
        self._update_request_line()
