"""
=============================================================================
READINESS POLLER
=============================================================================

Waits on several sockets at once and reports which ones can be read.

=============================================================================
WHY NOT JUST CALL recv() ON EACH SOCKET?
=============================================================================

A relay has two byte sources, and either may talk at any moment:

    client ──► proxy ──► target       (request body, uploads)
    client ◄── proxy ◄── target       (response headers and body)

    Sequential blocking reads:

        client.recv()   ← blocks here while the target is streaming a
        target.recv()     response nobody is reading. Deadlock-ish.

    Readiness multiplexing:

        ready = poller.wait()     ← wakes when ANY source has data
        for source in ready:
            source.recv()         ← guaranteed not to wait

=============================================================================
POLLING POLICY
=============================================================================

1. wait() blocks until at least one source is readable.
2. Every source ready at that moment is returned, so each is serviced
   once per cycle. Neither side can starve the other.
3. Within one cycle, sources come back in REGISTRATION order.
4. A TLS socket may hold already-decrypted bytes that select() cannot
   see (the kernel buffer is empty). Such sockets count as ready and
   wait() does not block while any exist.
5. A peer that closed its side is "readable": recv() returns b"".

=============================================================================
"""

import selectors
import socket
from typing import Any, Hashable, List, Tuple


def has_pending_bytes(sock: socket.socket) -> bool:
    """True if a TLS socket holds decrypted bytes not yet returned by recv()."""
    pending = getattr(sock, "pending", None)
    return pending is not None and pending() > 0


class ReadinessPoller:
    """
    Readiness multiplexing over a fixed set of sockets.

    Usage:
        with ReadinessPoller() as poller:
            poller.register(client, "client")
            poller.register(target, "target")
            while True:
                for tag in poller.wait():
                    ...
    """

    def __init__(self):
        self._selector = selectors.DefaultSelector()
        self._sources: List[Tuple[socket.socket, Hashable]] = []

    def register(self, sock: socket.socket, tag: Hashable) -> None:
        """Watch ``sock`` for readability; wait() reports it as ``tag``."""
        self._selector.register(sock, selectors.EVENT_READ, tag)
        self._sources.append((sock, tag))

    def wait(self) -> List[Any]:
        """Block until at least one source is readable and return their tags."""
        while True:
            buffered = {tag for sock, tag in self._sources if has_pending_bytes(sock)}
            timeout = 0 if buffered else None

            ready = {key.data for key, _ in self._selector.select(timeout)}
            ready |= buffered

            if ready:
                return [tag for _, tag in self._sources if tag in ready]

    def close(self) -> None:
        self._selector.close()
        self._sources.clear()

    def __enter__(self) -> "ReadinessPoller":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
