"""Mail configuration.

``MailConfig`` and ``SMTPSettings`` are frozen dataclasses: assembled
once, validated when the middleware is built, read-only afterwards.
"""

import os
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from perch.errors import ConfigurationError

AUTH_MECHANISMS = ("plain", "login", "cram_md5")


@dataclass(frozen=True, slots=True)
class SMTPSettings:
    """Where and how reports are delivered.

    Mirrors the classic settings map (``server``, ``port``, ``domain``,
    ``authentication``, ``user_name``, ``password``)::

        SMTPSettings(server="smtp.example.com", port=587,
                     authentication="login", user_name="joe", password="secret")
    """

    server: str = "localhost"
    port: int = 25
    domain: str | None = None  # HELO/EHLO name; defaults to the local FQDN
    authentication: str | None = None  # "plain", "login", "cram_md5"
    user_name: str | None = None
    password: str | None = field(default=None, repr=False)
    enable_starttls: bool = False
    timeout: float = 30.0

    def validate(self) -> None:
        if not self.server:
            msg = "SMTP server must not be empty"
            raise ConfigurationError(msg)
        if not 0 < self.port < 65536:
            msg = f"SMTP port out of range: {self.port}"
            raise ConfigurationError(msg)
        if self.authentication is not None:
            if self.authentication not in AUTH_MECHANISMS:
                msg = (
                    f"unknown SMTP authentication {self.authentication!r}; "
                    f"expected one of {', '.join(AUTH_MECHANISMS)}"
                )
                raise ConfigurationError(msg)
            if not self.user_name:
                msg = "SMTP authentication requires user_name"
                raise ConfigurationError(msg)

    @classmethod
    def from_mapping(cls, settings: Mapping[str, Any]) -> "SMTPSettings":
        """Build from a settings map, accepting the classic key names.

        ``address`` is an alias for ``server`` and ``enable_starttls_auto``
        for ``enable_starttls``. Unknown keys are a configuration error.
        """
        aliases = {"address": "server", "enable_starttls_auto": "enable_starttls"}
        known = set(cls.__dataclass_fields__)
        kwargs: dict[str, Any] = {}
        for key, value in settings.items():
            name = aliases.get(str(key), str(key))
            if name not in known:
                msg = f"unknown SMTP setting {key!r}"
                raise ConfigurationError(msg)
            kwargs[name] = value
        if "port" in kwargs:
            kwargs["port"] = int(kwargs["port"])
        if kwargs.get("authentication") is not None:
            kwargs["authentication"] = str(kwargs["authentication"]).lower()
        return cls(**kwargs)

    @classmethod
    def from_env(
        cls, prefix: str = "PERCH_SMTP_", environ: Mapping[str, str] | None = None
    ) -> "SMTPSettings":
        """Read settings from ``PERCH_SMTP_SERVER``, ``PERCH_SMTP_PORT``, ...

        Variables that are not set keep the dataclass default.
        """
        env = os.environ if environ is None else environ
        kwargs: dict[str, Any] = {}
        for name in ("server", "domain", "authentication", "user_name", "password"):
            value = env.get(prefix + name.upper())
            if value:
                kwargs[name] = value
        if port := env.get(prefix + "PORT"):
            kwargs["port"] = port
        if timeout := env.get(prefix + "TIMEOUT"):
            kwargs["timeout"] = float(timeout)
        if starttls := env.get(prefix + "ENABLE_STARTTLS"):
            kwargs["enable_starttls"] = starttls.lower() in ("true", "1", "yes", "on")
        return cls.from_mapping(kwargs)


# CGI-style environment keys whose values never appear in a report
DEFAULT_SENSITIVE_HEADERS = (
    "HTTP_AUTHORIZATION",
    "HTTP_PROXY_AUTHORIZATION",
    "HTTP_COOKIE",
    "HTTP_X_API_KEY",
    "HTTP_X_AUTH_TOKEN",
)


@dataclass(frozen=True, slots=True)
class MailConfig:
    """Exception report configuration. All four main fields are required.

    ``subject`` carries one ``%s`` slot, filled with the error message::

        MailConfig(
            to="ops@example.org",
            sender="app@example.org",
            subject="[ERROR] %s",
            smtp=SMTPSettings(server="smtp.example.org"),
        )
    """

    to: str | Sequence[str] | None = None
    sender: str | None = None
    subject: str | None = None
    smtp: SMTPSettings | Mapping[str, Any] | None = None
    sensitive_headers: tuple[str, ...] = DEFAULT_SENSITIVE_HEADERS

    @property
    def recipients(self) -> tuple[str, ...]:
        if self.to is None:
            return ()
        if isinstance(self.to, str):
            return (self.to,)
        return tuple(self.to)

    @property
    def smtp_settings(self) -> SMTPSettings:
        if isinstance(self.smtp, SMTPSettings):
            return self.smtp
        if self.smtp is None:
            msg = "missing mail option: smtp"
            raise ConfigurationError(msg)
        return SMTPSettings.from_mapping(self.smtp)

    def validate(self) -> None:
        """Fail fast on anything missing or malformed.

        Raises:
            ConfigurationError: Naming the first offending option.
        """
        if not self.recipients or not all(self.recipients):
            msg = "missing mail option: to"
            raise ConfigurationError(msg)
        if not self.sender:
            msg = "missing mail option: sender"
            raise ConfigurationError(msg)
        if not self.subject:
            msg = "missing mail option: subject"
            raise ConfigurationError(msg)
        if self.smtp is None:
            msg = "missing mail option: smtp"
            raise ConfigurationError(msg)
        try:
            self.subject % ("",)
        except (TypeError, ValueError) as exc:
            msg = f"subject must contain exactly one %s slot: {self.subject!r}"
            raise ConfigurationError(msg) from exc
        self.smtp_settings.validate()
