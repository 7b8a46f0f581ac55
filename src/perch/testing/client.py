"""Async test client and mock-request builders for ASGI apps.

Drives an app through the ASGI interface directly, with no HTTP
involved, and returns the same ``Response`` type the middleware send.
"""

from typing import Any

from perch._internal.asgi import ASGIApp, Message, Receive, Scope
from perch.http.response import Response


def scope_for(
    path: str,
    *,
    method: str = "GET",
    headers: dict[str, str] | None = None,
) -> dict[str, Any]:
    """Build an HTTP scope for *path* (query string allowed).

    Header names are lowercased as ASGI requires. Extra entries can be
    added to the returned dict before use.
    """
    if "?" in path:
        path_part, query_string = path.split("?", 1)
    else:
        path_part = path
        query_string = ""

    raw_headers: list[tuple[bytes, bytes]] = []
    for name, value in (headers or {}).items():
        raw_headers.append((name.lower().encode("latin-1"), value.encode("latin-1")))

    return {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": method.upper(),
        "scheme": "http",
        "path": path_part,
        "raw_path": path_part.encode("latin-1"),
        "query_string": query_string.encode("latin-1"),
        "root_path": "",
        "headers": raw_headers,
        "server": ("testserver", 80),
        "client": ("127.0.0.1", 0),
    }


def receive_for(body: str | bytes = b"", *, chunk_size: int | None = None) -> Receive:
    """A ``receive`` callable that serves *body*, then ``http.disconnect``.

    With *chunk_size*, the body arrives in several ``more_body`` messages.
    """
    data = body.encode("utf-8") if isinstance(body, str) else body
    size = chunk_size or max(len(data), 1)
    chunks = [data[i : i + size] for i in range(0, len(data), size)] or [b""]
    position = 0

    async def receive() -> Message:
        nonlocal position
        if position < len(chunks):
            chunk = chunks[position]
            position += 1
            return {
                "type": "http.request",
                "body": chunk,
                "more_body": position < len(chunks),
            }
        return {"type": "http.disconnect"}

    return receive


class TestClient:
    __test__ = False  # Tell pytest this is not a test class
    """Async test client for ASGI apps.

    Usage::

        async with TestClient(app) as client:
            response = await client.get("/")
            assert response.status == 200

    ``last_scope`` holds the scope of the most recent request, so flags
    middleware leave in the request context can be checked even when
    the request raised.
    """

    __slots__ = ("app", "last_scope")

    def __init__(self, app: ASGIApp) -> None:
        self.app = app
        self.last_scope: Scope | None = None

    async def __aenter__(self) -> "TestClient":
        return self

    async def __aexit__(self, *args: object) -> None:
        return None

    async def get(self, path: str, *, headers: dict[str, str] | None = None) -> Response:
        """Send a GET request."""
        return await self.request("GET", path, headers=headers)

    async def head(self, path: str, *, headers: dict[str, str] | None = None) -> Response:
        """Send a HEAD request."""
        return await self.request("HEAD", path, headers=headers)

    async def post(
        self,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        body: str | bytes | None = None,
    ) -> Response:
        """Send a POST request."""
        return await self.request("POST", path, headers=headers, body=body)

    async def put(
        self,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        body: str | bytes | None = None,
    ) -> Response:
        """Send a PUT request."""
        return await self.request("PUT", path, headers=headers, body=body)

    async def delete(self, path: str, *, headers: dict[str, str] | None = None) -> Response:
        """Send a DELETE request."""
        return await self.request("DELETE", path, headers=headers)

    async def request(
        self,
        method: str,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        body: str | bytes | None = None,
    ) -> Response:
        """Send an arbitrary request through the ASGI app."""
        scope = scope_for(path, method=method, headers=headers)
        self.last_scope = scope

        response_status = 200
        response_headers: list[tuple[bytes, bytes]] = []
        response_body_parts: list[bytes] = []

        async def send(message: Message) -> None:
            nonlocal response_status, response_headers
            if message["type"] == "http.response.start":
                response_status = message["status"]
                response_headers = list(message.get("headers", []))
            elif message["type"] == "http.response.body":
                response_body_parts.append(message.get("body", b""))

        await self.app(scope, receive_for(body or b""), send)

        return Response(
            body=b"".join(response_body_parts),
            status=response_status,
            headers=tuple(
                (name.decode("latin-1"), value.decode("latin-1"))
                for name, value in response_headers
            ),
        )
