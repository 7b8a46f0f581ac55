"""Perch: small ASGI middleware for the edges of an app.

Two components, usable in front of any ASGI 3 application:

- ``MailExceptions`` emails a diagnostic report for every unhandled
  error and re-raises it.
- ``SimpleEndpoint`` answers requests matching a path (string or
  pattern) and optional methods, and forwards everything else.

Basic usage::

    import re
    from perch import MailConfig, MailExceptions, SimpleEndpoint, SMTPSettings

    app = SimpleEndpoint(app, {"/ping": "GET"}, lambda: "pong")
    app = MailExceptions(app, MailConfig(
        to="ops@example.org",
        sender="app@example.org",
        subject="[ERROR] %s",
        smtp=SMTPSettings(server="smtp.example.org"),
    ))
"""

__version__ = "0.1.0"
__all__ = [
    "PASS",
    "ConfigurationError",
    "DeliveryError",
    "Handled",
    "MailConfig",
    "MailExceptions",
    "MemoryTransport",
    "PerchError",
    "Request",
    "Response",
    "ResponseBuilder",
    "SMTPSettings",
    "SimpleEndpoint",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import perch`` fast while providing a clean top-level API.
    """
    if name in ("MailExceptions", "SimpleEndpoint"):
        from perch import middleware as _mw

        return getattr(_mw, name)

    if name in ("MailConfig", "SMTPSettings", "MemoryTransport"):
        from perch import mail as _mail

        return getattr(_mail, name)

    if name in ("PASS", "Handled"):
        from perch.routing import rules as _rules

        return getattr(_rules, name)

    if name == "Request":
        from perch.http.request import Request

        return Request

    if name in ("Response", "ResponseBuilder"):
        from perch.http import response as _resp

        return getattr(_resp, name)

    if name in ("PerchError", "ConfigurationError", "DeliveryError"):
        from perch import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
