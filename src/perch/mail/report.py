"""Plain-text exception reports.

Rendered with plain string formatting and no template engine, so a
broken template setup can never stop an error report from going out.

A report reads::

    A TestError occurred: Suffering Succotash!

    ===================================================================
    Request Body:
    ===================================================================
      THE BODY

    ===================================================================
    Environment:
    ===================================================================
      PID:  "4242"
      PWD:  "/srv/app"
      HTTP_AUTHORIZATION:  "Basic *filtered*"
      HTTP_FOO:  "BAR"
      PATH_INFO:  "/foo"
      ...

    ===================================================================
    Backtrace:
    ===================================================================
      Traceback (most recent call last):
      ...
"""

import json
import os
import re
import traceback
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Any

from perch._internal.asgi import Scope
from perch.mail.config import MailConfig

FILTERED = "*filtered*"
_RULE = "=" * 67

# "<Scheme> <credentials>", e.g. "Basic xyzzy12345" or "Bearer abc.def"
_SCHEME_VALUE = re.compile(r"^([A-Za-z][A-Za-z0-9_-]*) +\S")

# Authorization schemes (RFC 7235 registry) safe to keep in front of *filtered*
AUTH_SCHEMES = frozenset({
    "basic",
    "bearer",
    "digest",
    "negotiate",
    "ntlm",
    "hoba",
    "mutual",
    "vapid",
    "scram-sha-1",
    "scram-sha-256",
    "aws4-hmac-sha256",
})


def exception_text(exc: BaseException) -> str:
    """``str(exc)``, or a placeholder when the exception cannot print itself."""
    try:
        return str(exc)
    except Exception:
        return f"<unprintable {type(exc).__name__}>"


def subject_line(template: str, exc: BaseException) -> str:
    """Fill *template* with the error message folded onto one line.

    Mail headers may not contain line breaks.
    """
    return template % (" ".join(exception_text(exc).split()),)


@dataclass(frozen=True, slots=True)
class ExceptionReport:
    """One rendered report, built fresh for each failure."""

    subject: str
    recipients: tuple[str, ...]
    sender: str
    body: str

    def to_message(self) -> EmailMessage:
        message = EmailMessage()
        message["Subject"] = self.subject
        message["From"] = self.sender
        message["To"] = ", ".join(self.recipients)
        message.set_content(self.body, charset="utf-8")
        return message


# -- Environment --


def _header_key(name: str) -> str:
    key = name.upper().replace("-", "_")
    if key in ("CONTENT_TYPE", "CONTENT_LENGTH"):
        return key
    return f"HTTP_{key}"


def environ_from_scope(scope: Scope) -> dict[str, str]:
    """Flatten an ASGI scope into CGI-style environment entries.

    Repeated headers are joined with ``", "``. The scope is not modified.
    """
    environ: dict[str, str] = {
        "REQUEST_METHOD": str(scope.get("method", "")),
        "SCRIPT_NAME": str(scope.get("root_path", "")),
        "PATH_INFO": str(scope.get("path", "")),
        "QUERY_STRING": bytes(scope.get("query_string", b"")).decode("latin-1"),
        "SERVER_PROTOCOL": f"HTTP/{scope.get('http_version', '1.1')}",
        "asgi.url_scheme": str(scope.get("scheme", "http")),
    }

    asgi = scope.get("asgi") or {}
    if "version" in asgi:
        environ["asgi.version"] = str(asgi["version"])

    server = scope.get("server")
    if server:
        environ["SERVER_NAME"] = str(server[0])
        if len(server) > 1 and server[1] is not None:
            environ["SERVER_PORT"] = str(server[1])

    client = scope.get("client")
    if client:
        environ["REMOTE_ADDR"] = str(client[0])

    for raw_name, raw_value in scope.get("headers", ()):
        key = _header_key(raw_name.decode("latin-1"))
        value = raw_value.decode("latin-1")
        environ[key] = f"{environ[key]}, {value}" if key in environ else value

    return environ


def redact(value: str) -> str:
    """Hide credentials, keeping a known authorization scheme if present.

    ``"Basic xyzzy12345"`` becomes ``"Basic *filtered*"``; anything not
    led by a registered scheme is filtered whole.
    """
    found = _SCHEME_VALUE.match(value)
    if found and found.group(1).lower() in AUTH_SCHEMES:
        return f"{found.group(1)} {FILTERED}"
    return FILTERED


def redacted(environ: Mapping[str, str], sensitive: Iterable[str]) -> dict[str, str]:
    """Copy of *environ* with every *sensitive* key redacted (case-sensitive)."""
    sensitive = frozenset(sensitive)
    return {
        key: redact(value) if key in sensitive else value for key, value in environ.items()
    }


# -- Formatting --


def _quote(value: Any) -> str:
    if isinstance(value, bytes):
        value = value.decode("latin-1")
    return json.dumps(str(value), ensure_ascii=False)


def _section(title: str, lines: Iterable[str]) -> list[str]:
    return ["", _RULE, f"{title}:", _RULE, *(f"  {line}" for line in lines)]


def format_body(exc: BaseException, environ: Mapping[str, str], body: bytes) -> str:
    """Render the report text for *exc* raised while serving *environ*."""
    lines = [f"A {type(exc).__name__} occurred: {exception_text(exc)}"]

    if body:
        lines += _section("Request Body", body.decode("utf-8", errors="replace").splitlines())

    env_lines = [f"PID:  {_quote(os.getpid())}", f"PWD:  {_quote(os.getcwd())}"]
    env_lines += [f"{key}:  {_quote(environ[key])}" for key in sorted(environ)]
    lines += _section("Environment", env_lines)

    trace = "".join(traceback.format_exception(exc)).rstrip("\n")
    lines += _section("Backtrace", trace.splitlines())

    return "\n".join(lines) + "\n"


def build_report(
    exc: BaseException,
    scope: Scope,
    config: MailConfig,
    body: bytes = b"",
) -> ExceptionReport:
    """Build the report for *exc*. Reads *scope*, never writes it."""
    environ = redacted(environ_from_scope(scope), config.sensitive_headers)
    return ExceptionReport(
        subject=subject_line(str(config.subject), exc),
        recipients=config.recipients,
        sender=str(config.sender),
        body=format_body(exc, environ, body),
    )
