"""
=============================================================================
PREFIX ROUTER
=============================================================================

Maps a request URI to the handler that owns it.

=============================================================================
MATCHING RULES
=============================================================================

    router.add("/rest", jira_proxy)
    router.add("/", static_files)

    ┌──────────────────────────────┬─────────────────────────────────────┐
    │  URI                         │  Handler                            │
    ├──────────────────────────────┼─────────────────────────────────────┤
    │  /rest/auth/1/session        │  jira_proxy   (first match wins)    │
    │  /index.html                 │  static_files                       │
    │  /restaurant                 │  jira_proxy   (plain string prefix) │
    └──────────────────────────────┴─────────────────────────────────────┘

1. Routes are tried in registration order; the FIRST prefix that starts
   the URI wins. Register specific prefixes before general ones.
2. The prefix is NOT stripped. The handler sees the URI exactly as the
   client sent it, which is what a proxy must forward.
3. No match → the server answers 404.

=============================================================================
"""

from dataclasses import dataclass
from typing import Any, List, Optional


@dataclass
class PrefixRoute:
    """A registered prefix and the handler it dispatches to."""

    prefix: str
    handler: Any

    def matches(self, uri: str) -> bool:
        return uri.startswith(self.prefix)


class PrefixRouter:
    """First-match-wins router over URI prefixes."""

    def __init__(self):
        self._routes: List[PrefixRoute] = []

    def add(self, prefix: str, handler: Any) -> "PrefixRouter":
        """
        Register a handler for every URI starting with ``prefix``.

        Returns:
            Self for method chaining.
        """
        self._routes.append(PrefixRoute(prefix, handler))
        return self

    def match(self, uri: str) -> Optional[Any]:
        """Return the handler for ``uri``, or None if nothing claims it."""
        for route in self._routes:
            if route.matches(uri):
                return route.handler
        return None

    @property
    def routes(self) -> List[PrefixRoute]:
        return list(self._routes)

    def __len__(self) -> int:
        return len(self._routes)
