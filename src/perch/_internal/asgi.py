"""ASGI type aliases and small scope helpers.

Middleware in perch speaks raw ASGI: ``await app(scope, receive, send)``.
Users never build these by hand outside of tests.
"""

from collections.abc import Awaitable, Callable, MutableMapping
from typing import Any, TypeAlias

Scope: TypeAlias = MutableMapping[str, Any]
Message: TypeAlias = MutableMapping[str, Any]
Receive: TypeAlias = Callable[[], Awaitable[Message]]
Send: TypeAlias = Callable[[Message], Awaitable[None]]
ASGIApp: TypeAlias = Callable[[Scope, Receive, Send], Awaitable[None]]

# Per-request dict shared between middleware and the app
CONTEXT_KEY = "perch.context"


def scope_context(scope: Scope) -> dict[str, Any]:
    """Return the per-request context dict, creating it on first use."""
    context = scope.get(CONTEXT_KEY)
    if context is None:
        context = {}
        scope[CONTEXT_KEY] = context
    return context


class BodyRecorder:
    """Wrap a ``receive`` callable and keep every body chunk it yields.

    ``complete`` turns true once the final ``http.request`` message
    (``more_body`` false) or a disconnect has been seen.
    """

    __slots__ = ("_chunks", "_receive", "complete")

    def __init__(self, receive: Receive) -> None:
        self._receive = receive
        self._chunks: list[bytes] = []
        self.complete = False

    async def __call__(self) -> Message:
        message = await self._receive()
        self._observe(message)
        return message

    def _observe(self, message: Message) -> None:
        if message.get("type") == "http.disconnect":
            self.complete = True
            return
        if message.get("type") != "http.request":
            return
        chunk = message.get("body", b"")
        if chunk:
            self._chunks.append(chunk)
        if not message.get("more_body", False):
            self.complete = True

    @property
    def body(self) -> bytes:
        """Everything recorded so far."""
        return b"".join(self._chunks)

    async def drain(self) -> bytes:
        """Read whatever the app left unread, then return the full body."""
        while not self.complete:
            self._observe(await self._receive())
        return self.body
