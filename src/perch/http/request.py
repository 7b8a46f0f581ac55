"""Read-only HTTP request view.

Frozen metadata over an ASGI scope with async body access. The request
never writes to the scope except through ``context``, the per-request
dict middleware use to leave observable flags for callers.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from dataclasses import dataclass, field
from typing import Any

from perch._internal.asgi import Message, Receive, Scope, scope_context
from perch.http.headers import Headers


@dataclass(frozen=True, slots=True)
class Request:
    """An immutable HTTP request.

    Metadata (method, path, headers, etc.) is frozen at creation.
    Body is read asynchronously via ``.body()`` or ``.text()`` and cached,
    so ``replay()`` can hand the same bytes to a downstream app.
    """

    method: str
    path: str
    headers: Headers
    query_string: bytes
    http_version: str
    scheme: str
    root_path: str
    server: tuple[str, int] | None
    client: tuple[str, int] | None

    # Private: the ASGI scope and receive callable this view wraps
    _scope: Scope = field(repr=False, compare=False)
    _receive: Receive = field(repr=False, compare=False)

    # Private: mutable cache for the body
    _cache: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    # -- Computed properties --

    @property
    def content_type(self) -> str | None:
        return self.headers.get("content-type")

    @property
    def url(self) -> str:
        """Path plus query string."""
        if self.query_string:
            return f"{self.path}?{self.query_string.decode('latin-1')}"
        return self.path

    @property
    def context(self) -> dict[str, Any]:
        """Per-request dict stored in the ASGI scope.

        Middleware record outcomes here (``mail.sent``) and apps can
        leave requests for middleware (``mail.exception``).
        """
        return scope_context(self._scope)

    # -- Async body access --

    async def body(self) -> bytes:
        """Read the full request body.

        Result is cached. The ASGI receive is consumed once.
        """
        if "_body" in self._cache:
            return self._cache["_body"]
        chunks = [chunk async for chunk in self.stream()]
        result = b"".join(chunks)
        self._cache["_body"] = result
        return result

    async def stream(self) -> AsyncGenerator[bytes]:
        """Stream the request body in chunks."""
        while True:
            message = await self._receive()
            if message.get("type") != "http.request":
                break
            body = message.get("body", b"")
            if body:
                yield body
            if not message.get("more_body", False):
                break

    async def text(self) -> str:
        """Read the body as text (UTF-8)."""
        raw = await self.body()
        return raw.decode("utf-8")

    def replay(self) -> Receive:
        """A ``receive`` for handing this request to another app.

        Returns the original callable when the body was never read.
        Otherwise the cached body is served once before delegating.
        """
        if "_body" not in self._cache:
            return self._receive

        body: bytes = self._cache["_body"]
        receive = self._receive
        sent = False

        async def replay_receive() -> Message:
            nonlocal sent
            if not sent:
                sent = True
                return {"type": "http.request", "body": body, "more_body": False}
            return await receive()

        return replay_receive

    # -- Factory --

    @classmethod
    def from_asgi(cls, scope: Scope, receive: Receive) -> Request:
        """Create a Request from an ASGI scope and receive callable."""
        server = scope.get("server")
        client = scope.get("client")
        return cls(
            method=scope["method"].upper(),
            path=scope["path"],
            headers=Headers(tuple(scope.get("headers", ()))),
            query_string=scope.get("query_string", b""),
            http_version=scope.get("http_version", "1.1"),
            scheme=scope.get("scheme", "http"),
            root_path=scope.get("root_path", ""),
            server=tuple(server) if server else None,
            client=tuple(client) if client else None,
            _scope=scope,
            _receive=receive,
        )
