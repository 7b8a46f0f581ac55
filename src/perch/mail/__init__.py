"""Exception report mail: configuration, rendering, and transports."""

from perch.mail.config import DEFAULT_SENSITIVE_HEADERS, MailConfig, SMTPSettings
from perch.mail.report import ExceptionReport, build_report
from perch.mail.transport import MemoryTransport, SMTPTransport, Transport

__all__ = [
    "DEFAULT_SENSITIVE_HEADERS",
    "ExceptionReport",
    "MailConfig",
    "MemoryTransport",
    "SMTPSettings",
    "SMTPTransport",
    "Transport",
    "build_report",
]
