"""Middleware: plain ASGI callables that wrap another ASGI app.

Each one is constructed as ``Middleware(app, ...)`` and called as
``await middleware(scope, receive, send)``.

Built-in middleware:
    MailExceptions -- Email a diagnostic report for unhandled errors, then re-raise
    SimpleEndpoint -- Answer requests matching a path (and method) inline
"""

from perch.middleware.endpoint import SimpleEndpoint
from perch.middleware.mail_exceptions import MAIL_EXCEPTION, MAIL_SENT, MailExceptions

__all__ = [
    "MAIL_EXCEPTION",
    "MAIL_SENT",
    "MailExceptions",
    "SimpleEndpoint",
]
