"""Report transports.

A transport delivers one ``EmailMessage`` and blocks until it is done.
``SMTPTransport`` talks to a real server; ``MemoryTransport`` records
deliveries in a list for tests and never opens a socket.
"""

import logging
import smtplib
import threading
from email.message import EmailMessage
from typing import Protocol

from perch.errors import DeliveryError
from perch.mail.config import SMTPSettings

logger = logging.getLogger("perch.mail")

# authentication setting -> (SMTP AUTH mechanism, smtplib authobject method)
_MECHANISMS = {
    "plain": ("PLAIN", "auth_plain"),
    "login": ("LOGIN", "auth_login"),
    "cram_md5": ("CRAM-MD5", "auth_cram_md5"),
}


class Transport(Protocol):
    """Anything that can deliver a message, raising on failure."""

    def deliver(self, message: EmailMessage) -> None: ...


class SMTPTransport:
    """Deliver over SMTP using ``smtplib``.

    One connection per message: reports are rare and a long-lived
    connection would mostly sit idle and time out.
    """

    __slots__ = ("settings",)

    def __init__(self, settings: SMTPSettings) -> None:
        self.settings = settings

    def _authenticate(self, server: smtplib.SMTP) -> None:
        cfg = self.settings
        if cfg.authentication is None or not cfg.user_name:
            return
        mechanism, method = _MECHANISMS[cfg.authentication]
        server.user, server.password = cfg.user_name, cfg.password or ""
        server.auth(mechanism, getattr(server, method))

    def deliver(self, message: EmailMessage) -> None:
        cfg = self.settings
        try:
            with smtplib.SMTP(
                cfg.server,
                cfg.port,
                local_hostname=cfg.domain,
                timeout=cfg.timeout,
            ) as server:
                server.ehlo()
                if cfg.enable_starttls and server.has_extn("starttls"):
                    server.starttls()
                    server.ehlo()
                self._authenticate(server)
                server.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            msg = f"SMTP delivery to {cfg.server}:{cfg.port} failed: {exc}"
            raise DeliveryError(msg) from exc


class MemoryTransport:
    """Record messages instead of sending them.

    Usage::

        transport = MemoryTransport()
        ...
        assert len(transport.deliveries) == 1
        assert transport.deliveries[0]["Subject"] == "[ERROR] boom"
    """

    __slots__ = ("_lock", "deliveries")

    def __init__(self) -> None:
        self.deliveries: list[EmailMessage] = []
        self._lock = threading.Lock()

    def deliver(self, message: EmailMessage) -> None:
        with self._lock:
            self.deliveries.append(message)
        logger.debug("recorded test delivery: %s", message["Subject"])

    def clear(self) -> None:
        with self._lock:
            self.deliveries.clear()
