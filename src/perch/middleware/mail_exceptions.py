"""MailExceptions: email a report for every unhandled error, then re-raise.

The middleware never swallows the application's error. It only adds a
side effect on the way out.
"""

import logging

import anyio.to_thread

from perch._internal.asgi import ASGIApp, BodyRecorder, Receive, Scope, Send, scope_context
from perch.mail.config import MailConfig
from perch.mail.report import build_report
from perch.mail.transport import MemoryTransport, SMTPTransport, Transport

logger = logging.getLogger("perch.mail")

# Keys in the per-request context (``request.context`` / scope["perch.context"])
MAIL_SENT = "mail.sent"
MAIL_EXCEPTION = "mail.exception"


class MailExceptions:
    """ASGI middleware that mails a diagnostic report on failure.

    On an exception from the wrapped app:

    1. the rest of the request body is drained so it can go in the report
    2. a report is rendered (error, request body, environment, backtrace)
    3. the report is delivered on a worker thread
    4. ``context["mail.sent"]`` is set once delivery succeeds
    5. the original exception is re-raised, untouched

    An app can also ask for a report without failing the request by
    storing an exception in ``request.context["mail.exception"]``.

    A delivery failure is logged and otherwise ignored: the caller
    always sees the application's own exception.

    Usage::

        app = MailExceptions(app, MailConfig(
            to="ops@example.org",
            sender="app@example.org",
            subject="[ERROR] %s",
            smtp=SMTPSettings(server="smtp.example.org"),
        ))
    """

    __slots__ = ("_smtp_transport", "_test_transport", "app", "config", "transport")

    def __init__(
        self,
        app: ASGIApp,
        config: MailConfig,
        *,
        transport: Transport | None = None,
    ) -> None:
        config.validate()
        self.app = app
        self.config = config
        self._smtp_transport: Transport = transport or SMTPTransport(config.smtp_settings)
        self._test_transport: MemoryTransport | None = None
        self.transport: Transport = self._smtp_transport

    # -- Test mode --

    def enable_test_mode(self) -> MemoryTransport:
        """Record deliveries in memory instead of sending them.

        Returns the ``MemoryTransport`` so tests can inspect ``deliveries``.
        """
        if self._test_transport is None:
            self._test_transport = MemoryTransport()
        self.transport = self._test_transport
        return self._test_transport

    def disable_test_mode(self) -> None:
        self.transport = self._smtp_transport

    @property
    def test_mode(self) -> bool:
        return self.transport is self._test_transport

    # -- Delivery --

    async def notify(self, exc: BaseException, scope: Scope, body: bytes = b"") -> bool:
        """Build and deliver a report for *exc*. Returns True on success."""
        try:
            report = build_report(exc, scope, self.config, body)
            await anyio.to_thread.run_sync(self.transport.deliver, report.to_message())
        except Exception:
            logger.exception(
                "failed to build or deliver exception report for %s %s",
                scope.get("method", "?"),
                scope.get("path", "?"),
            )
            return False
        scope_context(scope)[MAIL_SENT] = True
        logger.info("exception report sent to %s: %s", ", ".join(report.recipients), report.subject)
        return True

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        recorder = BodyRecorder(receive)
        try:
            await self.app(scope, recorder, send)
        except Exception as exc:
            try:
                body = await recorder.drain()
            except Exception:
                logger.exception("could not read the rest of the request body")
                body = recorder.body
            await self.notify(exc, scope, body)
            raise

        requested = scope_context(scope).get(MAIL_EXCEPTION)
        if isinstance(requested, BaseException):
            await self.notify(requested, scope, recorder.body)
