"""
=============================================================================
PROXYBRICKS CLI ENTRY POINT
=============================================================================

    # Relay /rest to a JIRA instance, serve everything else from ./public
    python -m proxybricks --proxy /rest=jira.domain.com --static ./public

    # Plain-HTTP target on a custom port, verbose relay logging
    python -m proxybricks --proxy /api=localhost:9000 --plain --log-level DEBUG

    # Self-signed test target
    python -m proxybricks --proxy /=staging.local:8443 --insecure

Arguments are layered over ServerConfig.from_env(), so PROXYBRICKS_*
variables supply anything not given on the command line.

=============================================================================
"""

import argparse
import sys
from typing import List, Optional

from . import __version__
from .config import ProxyRoute, ServerConfig
from .server import create_server


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="proxybricks",
        description="Static file server and header-rewriting HTTP relay",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m proxybricks --proxy /rest=jira.domain.com --static ./public
  python -m proxybricks --proxy /api=localhost:9000 --plain
  python -m proxybricks --port 3000 --static . --log-level DEBUG
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=None,
        help="Host to bind to (default: 127.0.0.1)"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=None,
        help="Port to listen on (default: 8080)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # ROUTING ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--proxy", "-x",
        action="append",
        default=[],
        metavar="PREFIX=HOST[:PORT]",
        help="Relay URIs starting with PREFIX to HOST (repeatable, first match wins)"
    )

    parser.add_argument(
        "--static", "-s",
        default=None,
        metavar="DIR",
        help="Serve files from DIR"
    )

    parser.add_argument(
        "--static-prefix",
        default=None,
        help="URI prefix for static files (default: /)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # TARGET ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--plain",
        action="store_true",
        help="Talk plain HTTP to targets instead of TLS"
    )

    parser.add_argument(
        "--insecure", "-k",
        action="store_true",
        help="Do not verify target TLS certificates"
    )

    parser.add_argument(
        "--max-header-size",
        type=int,
        default=None,
        help="Largest accepted header block in bytes (default: 65536)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # META ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: INFO)"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"proxybricks {__version__}"
    )

    return parser


def config_from_args(args: argparse.Namespace) -> ServerConfig:
    """Overlay parsed CLI arguments on the environment configuration."""
    config = ServerConfig.from_env()

    if args.host:
        config.host = args.host
    if args.port is not None:
        config.port = args.port
    if args.proxy:
        config.proxy_routes = [ProxyRoute.parse(route) for route in args.proxy]
    if args.static:
        config.static_dir = args.static
    if args.static_prefix:
        config.static_prefix = args.static_prefix
    if args.plain:
        config.target_tls = False
    if args.insecure:
        config.verify_tls = False
    if args.max_header_size is not None:
        config.max_header_size = args.max_header_size
    if args.log_level:
        config.log_level = args.log_level

    return config


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = config_from_args(args)
        server = create_server(config)
    except ValueError as e:
        parser.error(str(e))

    if not server.router.routes:
        parser.error("nothing to serve: give at least one --proxy or --static")

    try:
        server.run()
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
