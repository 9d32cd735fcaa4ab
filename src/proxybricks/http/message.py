"""
=============================================================================
INCREMENTAL HTTP MESSAGE PARSER
=============================================================================

Turns a fragmented byte stream into a start-line, a header collection and
whatever body bytes have arrived so far.

=============================================================================
WHY INCREMENTAL?
=============================================================================

TCP hands us bytes in arbitrary slices. A response may show up as:

    recv() → "HTTP/1.1 200 OK\\r\\nSet-Co"
    recv() → "okie: a=1\\r\\n\\r\\nBODY"

We cannot parse anything until the header block is complete, and we must
not wait for the whole body either (it may be gigabytes, or never end).
So the parser accumulates bytes until it sees the blank line, parses the
head ONCE, and from then on only collects body bytes.

=============================================================================
STATE MACHINE
=============================================================================

    ┌──────────────────┐   buffer contains \\r\\n\\r\\n   ┌──────────────────┐
    │ AWAITING HEADERS │ ───────────────────────────► │ HEADERS COMPLETE │
    │                  │                              │                  │
    │ buffer = head    │                              │ buffer = body    │
    │ bytes so far     │                              │ bytes so far     │
    └──────────────────┘                              └──────────────────┘
            ▲     │                                        ▲      │
            └─────┘ feed() without terminator              └──────┘ feed()
                                                         appends to body

The transition fires exactly once. On firing, everything BEFORE the
terminator is parsed and everything AFTER it becomes a brand-new body
buffer (the head buffer is dropped, never shared).

=============================================================================
HEADER LINE GRAMMAR
=============================================================================

    Content-Type: text/html          ← new field (name: letters/digits/-)
    X-Long: first part               ← new field
        second part                  ← continuation, appended to X-Long

    Folding result:  X-Long = "first partsecond part"

Anything else (no colon, illegal name, a continuation with nothing to
continue) is a fatal HTTPParseError for this message.

=============================================================================
"""

import re
from typing import Optional

from .headers import HeaderCollection, CRLF


HEADER_TERMINATOR = b"\r\n\r\n"

# Header text is handled as ISO-8859-1 so every byte round-trips unchanged
HEADER_ENCODING = "iso-8859-1"

DEFAULT_MAX_HEADER_SIZE = 64 * 1024


class HTTPParseError(Exception):
    """
    Raised when an HTTP message cannot be parsed.

    Carries the HTTP status the connection handler should answer with
    when the broken message came from the client:

        400 Bad Request                      - Malformed start-line or header
        431 Request Header Fields Too Large  - Header block over the limit
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


class MessageParser:
    """
    Generic HTTP/1.x message parser.

    Subclasses interpret the start-line (see Request and Response); the
    base class only splits it off and handles headers and body.

    Usage:
        parser = MessageParser()
        while not parser.headers_read:
            parser.feed(sock.recv(16384))
        parser.headers.replace("Connection", "close")
        out.sendall(parser.to_bytes())

    Attributes:
        start_line: First line of the message, set when headers complete.
        headers: Parsed header fields.
        max_header_size: Largest header block accepted, in bytes.
                         None means unbounded.
    """

    HEADER_PATTERN = re.compile(r"^([a-z0-9-]+):\s*(.*)$", re.IGNORECASE)
    CONTINUATION_PATTERN = re.compile(r"^[ \t]+(.*)$")

    def __init__(self, max_header_size: Optional[int] = DEFAULT_MAX_HEADER_SIZE):
        self.max_header_size = max_header_size
        self.start_line: Optional[str] = None
        self.headers = HeaderCollection()
        self._buffer = bytearray()
        self._headers_read = False
        self._scanned = 0

    @property
    def headers_read(self) -> bool:
        """True once the header block has been parsed. Never reverts."""
        return self._headers_read

    @property
    def buffer(self) -> bytes:
        """
        Unparsed bytes held by the parser.

        Before headers complete this is the partial head; afterwards it is
        the body received so far.
        """
        return bytes(self._buffer)

    def feed(self, data: bytes) -> bool:
        """
        Add a chunk of received bytes.

        Args:
            data: Bytes exactly as read from the socket.

        Returns:
            Whether the headers are complete after this chunk.

        Raises:
            HTTPParseError: If the head is malformed or grows past
                            max_header_size without a terminator.
        """
        self._buffer += data

        if self._headers_read:
            return True

        # Resume the search a few bytes back so a terminator split across
        # two chunks is still found without rescanning the whole buffer.
        start = max(0, self._scanned - len(HEADER_TERMINATOR) + 1)
        end = self._buffer.find(HEADER_TERMINATOR, start)

        if end == -1:
            self._scanned = len(self._buffer)
            # The tail may be the start of a terminator, which is not header
            self._check_header_size(max(0, len(self._buffer) - len(HEADER_TERMINATOR) + 1))
            return False

        self._check_header_size(end)

        self._parse_head(self._buffer[:end].decode(HEADER_ENCODING))

        self._buffer = bytearray(self._buffer[end + len(HEADER_TERMINATOR):])
        self._headers_read = True
        return True

    def to_bytes(self) -> bytes:
        """
        Serialize the message as it currently stands.

        start-line CRLF headers CRLF body-so-far

        This is the canonical form: it reflects any edits made to the
        start-line fields or headers since parsing.
        """
        self._require_headers("serialize a message")

        head = self.start_line + CRLF + self.headers.to_text() + CRLF
        return head.encode(HEADER_ENCODING) + bytes(self._buffer)

    def _require_headers(self, action: str) -> None:
        if not self._headers_read:
            raise ValueError(f"Cannot {action} before the headers are complete")

    def _check_header_size(self, size: int) -> None:
        if self.max_header_size is not None and size > self.max_header_size:
            raise HTTPParseError(
                f"Header block too large: {size} bytes (limit {self.max_header_size})",
                status_code=431,
            )

    def _parse_head(self, head: str) -> None:
        lines = head.split(CRLF)
        self.start_line = lines[0]
        self._parse_header_lines(lines[1:])
        self._parse_start_line(self.start_line)

    def _parse_header_lines(self, lines: list) -> None:
        name = None
        value = None

        for line in lines:
            match = self.HEADER_PATTERN.match(line)
            if match:
                if name is not None:
                    self.headers.add(name, value)
                name, value = match.group(1), match.group(2).strip()
                continue

            match = self.CONTINUATION_PATTERN.match(line)
            if match:
                if name is None:
                    raise HTTPParseError(f"Invalid header, unexpected continuation: {line!r}")
                value += match.group(1).strip()
                continue

            raise HTTPParseError(f"Invalid header line: {line!r}")

        if name is not None:
            self.headers.add(name, value)

    def _parse_start_line(self, line: str) -> None:
        """Hook for subclasses; the generic parser accepts any start-line."""
        if not line:
            raise HTTPParseError("Empty start line")

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(start_line={self.start_line!r}, "
            f"headers_read={self._headers_read}, buffered={len(self._buffer)})"
        )
