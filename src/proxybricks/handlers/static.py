"""
=============================================================================
STATIC FILE HANDLER
=============================================================================

Serves files from a base directory, one file per connection.

=============================================================================
URI → FILE
=============================================================================

The routing prefix is NOT stripped, so the URI path maps straight onto
the base directory:

    base_dir = /srv/www, registered at "/"

    GET /index.html          → /srv/www/index.html
    GET /app/main.js?v=3     → /srv/www/app/main.js   (query ignored)
    GET /../etc/passwd       → 404 (resolves outside base_dir)
    GET /missing.png         → 404

=============================================================================
SECURITY: PATH TRAVERSAL
=============================================================================

    full_path = (base_dir / user_path).resolve()
    full_path.relative_to(base_dir)     # ValueError if outside!

resolve() follows ".." and symlinks BEFORE the check, so neither can be
used to step out of base_dir.

=============================================================================
"""

import logging
from pathlib import Path
from urllib.parse import unquote, urlsplit

from ..core.connection import Connection
from ..http.mime_types import get_content_type
from ..http.request import Request
from ..http.response import Response
from ..http.status_codes import HTTPStatus
from .base import RequestHandler


logger = logging.getLogger(__name__)


class StaticFilesHandler(RequestHandler):
    """
    Serve files below ``base_dir``.

    Usage:
        server.add_handler("/", StaticFilesHandler("./public"))
    """

    def __init__(self, base_dir: str):
        self.base_dir = Path(base_dir).resolve()
        if not self.base_dir.is_dir():
            raise ValueError(f"Static root directory does not exist: {base_dir}")

    def resolve(self, uri: str):
        """
        Map a request URI to a file below base_dir.

        Returns:
            The file path, or None if the URI points outside base_dir or
            at something that is not a regular file.
        """
        path = unquote(urlsplit(uri).path).lstrip("/")
        full_path = (self.base_dir / path).resolve()

        try:
            full_path.relative_to(self.base_dir)
        except ValueError:
            logger.warning(f"Path traversal attempt: {uri}")
            return None

        if not full_path.is_file():
            return None
        return full_path

    def handle(self, connection: Connection, request: Request) -> None:
        logger.debug(f"[{connection.id}] Local request")

        path = self.resolve(request.uri)
        if path is None:
            logger.info(f"[{connection.id}] Invalid request URI: {request.uri}")
            response = Response.create(HTTPStatus.NOT_FOUND)
            response.reason = "Not found"
            connection.send(response.to_bytes())
            return

        logger.debug(f"[{connection.id}] Sending file {path}")

        data = path.read_bytes()
        response = Response.create(HTTPStatus.OK, data, content_type=get_content_type(path))
        connection.send(response.to_bytes())

        logger.info(f"[{connection.id}] Sent {request.uri} => {len(data)} bytes")
