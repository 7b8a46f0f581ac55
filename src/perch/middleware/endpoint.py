"""SimpleEndpoint: answer matching requests inline, forward the rest.

Handy for health checks, robots.txt, or a one-off API hook in front of a
larger app, without touching the app's router.
"""

import logging
from collections.abc import Callable
from typing import Any, TypeAlias

from perch._internal.asgi import ASGIApp, Receive, Scope, Send
from perch._internal.invoke import invoke_positional
from perch.http.request import Request
from perch.http.response import ResponseBuilder
from perch.http.sender import send_response
from perch.routing.rules import (
    Handled,
    NotMatched,
    Pass,
    RouteRule,
    compile_rules,
    first_match,
    to_result,
)

logger = logging.getLogger("perch.endpoint")

Endpoint: TypeAlias = Callable[..., Any]


class SimpleEndpoint:
    """ASGI middleware that intercepts requests matching a set of rules.

    The endpoint callback receives ``(request, response, captures)``,
    trimmed to however many positional arguments it declares. Its return
    value decides what happens next:

    - ``str`` / ``bytes`` / ``Handled(body)``: sent as the body, unless
      the callback already wrote to ``response``
    - ``None``: send whatever was written to ``response``
    - anything else: sent as ``str(value)``
    - ``PASS``: forward to the downstream app as if nothing matched

    Usage::

        app = SimpleEndpoint(app, {"/ping": "GET"}, lambda: "pong")

        def item(request, response, captures):
            response["X-Item"] = captures[0]
            return f"item {captures[0]}"

        app = SimpleEndpoint(app, re.compile(r"^/items/(\\d+)$"), item)
    """

    __slots__ = ("app", "endpoint", "rules")

    def __init__(self, app: ASGIApp, rules: Any, endpoint: Endpoint) -> None:
        self.app = app
        self.rules: tuple[RouteRule, ...] = compile_rules(rules)
        self.endpoint = endpoint

    async def dispatch(
        self, request: Request, response: ResponseBuilder
    ) -> Handled | Pass | NotMatched:
        """Match *request* and run the endpoint if a rule applies."""
        outcome = first_match(self.rules, request)
        if not outcome.matched:
            return NotMatched()
        value = await invoke_positional(self.endpoint, request, response, outcome.captures)
        return to_result(value)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request.from_asgi(scope, receive)
        response = ResponseBuilder()
        result = await self.dispatch(request, response)

        match result:
            case NotMatched():
                await self.app(scope, receive, send)
            case Pass():
                logger.debug("endpoint passed on %s %s", request.method, request.path)
                await self.app(scope, request.replay(), send)
            case Handled(body=body):
                logger.debug("endpoint answered %s %s", request.method, request.path)
                await send_response(
                    response.finish(body), send, head=request.method == "HEAD"
                )
