"""
=============================================================================
HTTP RESPONSE
=============================================================================

Status-line grammar on top of the incremental message parser, plus a
small factory for the responses the proxy writes itself (404s, files).

    HTTP/1.1 200 OK\\r\\n
    ──┬─ ┬─ ─┬─ ┬
      │  │   │  └── Reason phrase (optional, may contain spaces)
      │  │   └───── Status code (3 digits)
      │  └───────── Version
      └──────────── Protocol

Like Request, every field has a setter that rebuilds the start-line:

    response.status_code = 302
    response.reason = "Found"
    response.start_line  →  "HTTP/1.1 302 Found"

=============================================================================
"""

import re
from typing import Optional

from .message import MessageParser, HTTPParseError
from .status_codes import HTTPStatus


class Response(MessageParser):
    """An HTTP response, either read from a target or built locally."""

    STATUS_LINE_PATTERN = re.compile(r"^(\w+)/(1\.\d)\s+(\d{3})(?:\s+(.*))?$")

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._protocol: Optional[str] = None
        self._version: Optional[str] = None
        self._status_code: Optional[int] = None
        self._reason: Optional[str] = None

    @classmethod
    def create(
        cls,
        status: HTTPStatus,
        body: bytes = b"",
        content_type: Optional[str] = None,
    ) -> "Response":
        """
        Build a complete HTTP/1.1 response in memory.

        The result is already in the headers-complete state, so headers can
        be added and to_bytes() called straight away. Content-Length and
        Connection: close are always set; the proxy answers one request per
        connection.

        Example:
            response = Response.create(HTTPStatus.NOT_FOUND, b"Nope\\n")
            conn.send(response.to_bytes())
        """
        response = cls(max_header_size=None)
        response.feed(f"HTTP/1.1 {int(status)} {status.phrase}\r\n\r\n".encode("ascii"))
        if content_type:
            response.headers.add("Content-Type", content_type)
        response.headers.add("Content-Length", str(len(body)))
        response.headers.add("Connection", "close")
        response.feed(body)
        return response

    def _parse_start_line(self, line: str) -> None:
        match = self.STATUS_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid status line: {line!r}", status_code=502)
        self._protocol, self._version, status_code, reason = match.groups()
        self._status_code = int(status_code)
        self._reason = reason or ""

    def _update_status_line(self) -> None:
        line = f"{self._protocol}/{self._version} {self._status_code}"
        self.start_line = f"{line} {self._reason}" if self._reason else line

    @property
    def protocol(self) -> Optional[str]:
        return self._protocol

    @protocol.setter
    def protocol(self, value: str) -> None:
        self._require_headers("edit the status line")
        self._protocol = value
        self._update_status_line()

    @property
    def version(self) -> Optional[str]:
        return self._version

    @version.setter
    def version(self, value: str) -> None:
        self._require_headers("edit the status line")
        self._version = value
        self._update_status_line()

    @property
    def status_code(self) -> Optional[int]:
        return self._status_code

    @status_code.setter
    def status_code(self, value: int) -> None:
        self._require_headers("edit the status line")
        self._status_code = int(value)
        self._update_status_line()

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    @reason.setter
    def reason(self, value: str) -> None:
        self._require_headers("edit the status line")
        self._reason = value
        self._update_status_line()
