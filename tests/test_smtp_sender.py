"""
Tests for the SMTP sender
"""
import smtplib
from unittest.mock import MagicMock, patch

import pytest

from autoreply.models import OutboundReply
from autoreply.smtp_sender import SendError, SMTPSender
from factories import make_settings


def create_test_reply() -> OutboundReply:
    return OutboundReply(
        from_address="info@gasprodetection.com",
        from_name="GasPro Detection",
        to_address="alice@example.org",
        to_name="Alice",
        subject="Re: We'll Reply Soon As Possible",
        body="Dear Alice,",
        in_reply_to="<m1@example.org>",
        references="<m1@example.org>",
    )


class TestSMTPSender:
    """Session handling and error wrapping"""

    def test_ssl_session(self):
        with patch("autoreply.smtp_sender.smtplib.SMTP_SSL") as factory:
            connection = MagicMock()
            factory.return_value = connection

            with SMTPSender.from_settings(make_settings(smtp_port=465)) as sender:
                sender.send(create_test_reply())

            factory.assert_called_once_with("smtp.example.test", 465, timeout=30.0)
            connection.login.assert_called_once_with("info@gasprodetection.com", "secret")
            connection.send_message.assert_called_once()
            _, kwargs = connection.send_message.call_args
            assert kwargs["to_addrs"] == ["alice@example.org"]
            connection.quit.assert_called_once()

    def test_starttls_session(self):
        with patch("autoreply.smtp_sender.smtplib.SMTP") as factory:
            connection = MagicMock()
            factory.return_value = connection

            with SMTPSender.from_settings(make_settings(smtp_security="starttls", smtp_port=587)):
                pass

            factory.assert_called_once_with("smtp.example.test", 587, timeout=30.0)
            connection.starttls.assert_called_once()

    def test_connect_failure(self):
        with patch("autoreply.smtp_sender.smtplib.SMTP_SSL", side_effect=OSError("unreachable")):
            sender = SMTPSender.from_settings(make_settings())
            with pytest.raises(SendError):
                sender.connect()

    def test_auth_failure_closes_session(self):
        with patch("autoreply.smtp_sender.smtplib.SMTP_SSL") as factory:
            connection = MagicMock()
            connection.login.side_effect = smtplib.SMTPAuthenticationError(535, b"bad credentials")
            factory.return_value = connection

            sender = SMTPSender.from_settings(make_settings())
            with pytest.raises(SendError):
                sender.connect()
            connection.quit.assert_called_once()
            assert sender.connection is None

    def test_rejected_recipient(self):
        with patch("autoreply.smtp_sender.smtplib.SMTP_SSL") as factory:
            connection = MagicMock()
            connection.send_message.side_effect = smtplib.SMTPRecipientsRefused({"alice@example.org": (550, b"no")})
            factory.return_value = connection

            with SMTPSender.from_settings(make_settings()) as sender:
                with pytest.raises(SendError):
                    sender.send(create_test_reply())

    def test_send_requires_connection(self):
        sender = SMTPSender.from_settings(make_settings())
        with pytest.raises(SendError):
            sender.send(create_test_reply())
