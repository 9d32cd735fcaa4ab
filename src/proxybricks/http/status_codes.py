"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The handful of status codes the proxy itself ever produces. Everything a
proxied server sends is relayed as-is and never looked up here.

    400 Bad Request                      - Client sent a malformed request
    404 Not Found                        - No handler / no such static file
    431 Request Header Fields Too Large  - Header block over the limit
    502 Bad Gateway                      - Target could not be reached

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    Status codes used by locally generated responses.

        >>> HTTPStatus.NOT_FOUND == 404
        True
        >>> HTTPStatus.NOT_FOUND.phrase
        'Not Found'
    """

    OK = 200
    BAD_REQUEST = 400
    NOT_FOUND = 404
    REQUEST_HEADER_FIELDS_TOO_LARGE = 431
    BAD_GATEWAY = 502

    @property
    def phrase(self) -> str:
        """Reason phrase for the status line."""
        return _STATUS_PHRASES.get(self, "Unknown")


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.REQUEST_HEADER_FIELDS_TOO_LARGE: "Request Header Fields Too Large",
    HTTPStatus.BAD_GATEWAY: "Bad Gateway",
}
