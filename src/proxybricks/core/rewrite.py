"""
=============================================================================
REWRITE STRATEGIES
=============================================================================

A rewrite strategy is how a caller edits the messages flowing through a
relay. The relay calls each hook exactly ONCE per exchange, after the
message head is parsed and before any of its bytes are sent on:

    rewrite_request(request)     before the request goes to the target
    rewrite_response(response)   before the response head goes to the client

Both hooks get full read/write access to the start-line fields and the
header collection.

=============================================================================
COMPOSITION, NOT INHERITANCE
=============================================================================

The default behavior lives in TargetRewrite. A custom strategy that wants
it calls it explicitly:

    class StripCookies(RewriteStrategy):
        def __init__(self, target_host):
            self.target = TargetRewrite(target_host)

        def rewrite_request(self, request):
            self.target.rewrite_request(request)

        def rewrite_response(self, response):
            self.target.rewrite_response(response)
            response.headers.remove("Set-Cookie")

or stacks strategies with ChainedRewrite:

    ChainedRewrite(TargetRewrite("jira.domain.com"), StripCookies())

=============================================================================
"""

from ..http.request import Request
from ..http.response import Response


class RewriteStrategy:
    """Base strategy: both hooks leave the message untouched."""

    def rewrite_request(self, request: Request) -> None:
        pass

    def rewrite_response(self, response: Response) -> None:
        pass


class TargetRewrite(RewriteStrategy):
    """
    Make a request acceptable to the target and pin both sides to one
    exchange per connection.

    - Host refers to the proxy, not the target, so it is replaced.
    - The relay only parses the first request and response on a
      connection, so Connection: close is forced both ways.
    """

    def __init__(self, target_host: str):
        self.target_host = target_host

    def rewrite_request(self, request: Request) -> None:
        request.headers.replace("Host", self.target_host)
        request.headers.replace("Connection", "close")

    def rewrite_response(self, response: Response) -> None:
        response.headers.replace("Connection", "close")


class ChainedRewrite(RewriteStrategy):
    """Apply several strategies in order."""

    def __init__(self, *strategies: RewriteStrategy):
        self.strategies = list(strategies)

    def rewrite_request(self, request: Request) -> None:
        for strategy in self.strategies:
            strategy.rewrite_request(request)

    def rewrite_response(self, response: Response) -> None:
        for strategy in self.strategies:
            strategy.rewrite_response(response)
