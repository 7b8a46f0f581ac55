"""Tests for perch.mail.transport — SMTP (mocked) and in-memory delivery."""

import smtplib
import threading
from email.message import EmailMessage
from unittest.mock import MagicMock, patch

import pytest

from perch.errors import DeliveryError
from perch.mail.config import SMTPSettings
from perch.mail.transport import MemoryTransport, SMTPTransport


def _message(subject: str = "[ERROR] boom") -> EmailMessage:
    message = EmailMessage()
    message["Subject"] = subject
    message["From"] = "bar@example.org"
    message["To"] = "foo@example.org"
    message.set_content("report")
    return message


@pytest.fixture
def mock_smtp():
    """Mock SMTP connection usable as a context manager."""
    server = MagicMock()
    server.__enter__.return_value = server
    server.has_extn.return_value = True
    return server


class TestSMTPTransport:
    def test_connects_with_settings(self, mock_smtp) -> None:
        settings = SMTPSettings(server="example.com", port=500, domain="app.example.com", timeout=7)
        with patch("perch.mail.transport.smtplib.SMTP", return_value=mock_smtp) as smtp_cls:
            SMTPTransport(settings).deliver(_message())

        smtp_cls.assert_called_once_with(
            "example.com", 500, local_hostname="app.example.com", timeout=7
        )
        mock_smtp.send_message.assert_called_once()
        mock_smtp.starttls.assert_not_called()
        mock_smtp.auth.assert_not_called()

    def test_login_authentication(self, mock_smtp) -> None:
        settings = SMTPSettings(authentication="login", user_name="joe", password="secret")
        with patch("perch.mail.transport.smtplib.SMTP", return_value=mock_smtp):
            SMTPTransport(settings).deliver(_message())

        assert mock_smtp.user == "joe"
        assert mock_smtp.password == "secret"
        mock_smtp.auth.assert_called_once_with("LOGIN", mock_smtp.auth_login)

    def test_cram_md5_authentication(self, mock_smtp) -> None:
        settings = SMTPSettings(authentication="cram_md5", user_name="joe", password="secret")
        with patch("perch.mail.transport.smtplib.SMTP", return_value=mock_smtp):
            SMTPTransport(settings).deliver(_message())

        mock_smtp.auth.assert_called_once_with("CRAM-MD5", mock_smtp.auth_cram_md5)

    def test_starttls_when_enabled_and_offered(self, mock_smtp) -> None:
        settings = SMTPSettings(enable_starttls=True)
        with patch("perch.mail.transport.smtplib.SMTP", return_value=mock_smtp):
            SMTPTransport(settings).deliver(_message())

        mock_smtp.starttls.assert_called_once()

    def test_starttls_skipped_when_not_offered(self, mock_smtp) -> None:
        mock_smtp.has_extn.return_value = False
        settings = SMTPSettings(enable_starttls=True)
        with patch("perch.mail.transport.smtplib.SMTP", return_value=mock_smtp):
            SMTPTransport(settings).deliver(_message())

        mock_smtp.starttls.assert_not_called()

    def test_smtp_error_becomes_delivery_error(self, mock_smtp) -> None:
        mock_smtp.send_message.side_effect = smtplib.SMTPRecipientsRefused({})
        with patch("perch.mail.transport.smtplib.SMTP", return_value=mock_smtp):
            with pytest.raises(DeliveryError, match="example.com:500") as info:
                SMTPTransport(SMTPSettings(server="example.com", port=500)).deliver(_message())

        assert isinstance(info.value.__cause__, smtplib.SMTPRecipientsRefused)

    def test_connection_error_becomes_delivery_error(self) -> None:
        with patch(
            "perch.mail.transport.smtplib.SMTP", side_effect=ConnectionRefusedError("refused")
        ):
            with pytest.raises(DeliveryError) as info:
                SMTPTransport(SMTPSettings()).deliver(_message())

        assert isinstance(info.value.__cause__, ConnectionRefusedError)


class TestMemoryTransport:
    def test_records_deliveries(self) -> None:
        transport = MemoryTransport()
        transport.deliver(_message("one"))
        transport.deliver(_message("two"))
        assert [m["Subject"] for m in transport.deliveries] == ["one", "two"]

    def test_clear(self) -> None:
        transport = MemoryTransport()
        transport.deliver(_message())
        transport.clear()
        assert transport.deliveries == []

    def test_concurrent_deliveries(self) -> None:
        transport = MemoryTransport()
        threads = [
            threading.Thread(target=transport.deliver, args=(_message(str(i)),))
            for i in range(20)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        assert len(transport.deliveries) == 20
