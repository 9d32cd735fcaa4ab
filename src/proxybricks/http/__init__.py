"""
=============================================================================
HTTP PROTOCOL COMPONENTS
=============================================================================

Everything that understands HTTP/1.x bytes:

    headers.py       Ordered, duplicate-friendly header collection
    message.py       Incremental parser (start-line, headers, body so far)
    request.py       Request-line grammar   (method, uri, protocol, version)
    response.py      Status-line grammar    (protocol, version, status, reason)
    router.py        First-match prefix routing
    status_codes.py  Status codes for locally generated responses
    mime_types.py    Content-Type lookup for static files

Only the message HEAD is ever parsed. Bodies are opaque bytes: no chunked
decoding, no compression, no length reconciliation.

=============================================================================
"""

from .headers import HeaderField, HeaderCollection
from .message import MessageParser, HTTPParseError, DEFAULT_MAX_HEADER_SIZE
from .request import Request
from .response import Response
from .router import PrefixRouter, PrefixRoute
from .status_codes import HTTPStatus
from .mime_types import get_mime_type, get_content_type

__all__ = [
    # Headers
    "HeaderField",
    "HeaderCollection",

    # Parsing
    "MessageParser",
    "HTTPParseError",
    "DEFAULT_MAX_HEADER_SIZE",
    "Request",
    "Response",

    # Routing
    "PrefixRouter",
    "PrefixRoute",

    # Status codes
    "HTTPStatus",

    # MIME types
    "get_mime_type",
    "get_content_type",
]
