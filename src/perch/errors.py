"""Perch exception hierarchy.

Shared by the middleware, the mail layer, and the transports so callers
can catch one family of library errors. Application errors raised by a
wrapped app are never converted into these.
"""


class PerchError(Exception):
    """Base for all perch-specific errors."""


class ConfigurationError(PerchError):
    """Raised when middleware or mail configuration is invalid.

    Always raised at construction time, before the first request.
    """


class DeliveryError(PerchError):
    """Raised by a transport that could not deliver a report.

    The underlying ``smtplib`` or socket error is chained as ``__cause__``.
    """
