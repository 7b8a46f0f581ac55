"""HTTP responses.

``Response`` is the frozen result that gets sent (and what the test
client returns). ``ResponseBuilder`` is the mutable object handed to
endpoint callbacks: set the status, set headers, write body chunks,
then ``finish()`` into a ``Response``.
"""

from collections.abc import Mapping
from dataclasses import dataclass, replace

from perch.http.headers import MutableHeaders

DEFAULT_CONTENT_TYPE = "text/html; charset=utf-8"


def _to_bytes(chunk: str | bytes) -> bytes:
    return chunk.encode("utf-8") if isinstance(chunk, str) else chunk


@dataclass(frozen=True, slots=True)
class Response:
    """An HTTP response. Each ``.with_*()`` call returns a new one."""

    body: bytes = b""
    status: int = 200
    headers: tuple[tuple[str, str], ...] = ()

    def with_status(self, status: int) -> "Response":
        return replace(self, status=status)

    def with_header(self, name: str, value: str) -> "Response":
        return replace(self, headers=(*self.headers, (name, value)))

    def header(self, name: str) -> str | None:
        """First value for *name*, compared case-insensitively."""
        lowered = name.lower()
        for hname, hvalue in self.headers:
            if hname.lower() == lowered:
                return hvalue
        return None

    @property
    def text(self) -> str:
        return self.body.decode("utf-8")


class ResponseBuilder:
    """Mutable response handed to endpoint callbacks.

    Supports item access for headers::

        def endpoint(request, response):
            response["X-Foo"] = "bar"
            response.status = 201
            response.write("created")
    """

    __slots__ = ("_chunks", "headers", "status")

    def __init__(
        self,
        status: int = 200,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        self.status = status
        self.headers = MutableHeaders(headers)
        self._chunks: list[bytes] = []

    def __getitem__(self, name: str) -> str:
        return self.headers[name]

    def __setitem__(self, name: str, value: str) -> None:
        self.headers[name] = value

    def __contains__(self, name: object) -> bool:
        return name in self.headers

    def write(self, chunk: str | bytes) -> None:
        """Append a chunk to the body."""
        self._chunks.append(_to_bytes(chunk))

    @property
    def written(self) -> bool:
        """True once anything has been written to the body."""
        return bool(self._chunks)

    @property
    def body(self) -> bytes:
        return b"".join(self._chunks)

    def finish(self, body: str | bytes | None = None) -> Response:
        """Freeze into a ``Response``.

        *body* is used only when nothing was written. Content-Length is
        always set to the byte length of the final body.
        """
        if body is not None and not self._chunks:
            self.write(body)
        payload = self.body
        if "content-type" not in self.headers:
            self.headers["Content-Type"] = DEFAULT_CONTENT_TYPE
        self.headers["Content-Length"] = str(len(payload))
        return Response(body=payload, status=self.status, headers=self.headers.to_tuple())
