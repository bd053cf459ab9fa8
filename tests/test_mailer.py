"""Unit tests for output/mailer.py — smtplib is always mocked."""

import smtplib
from unittest.mock import patch

import pytest

from core.errors import MailDeliveryError
from output.mailer import MailSettings, SmtpMailer

_SETTINGS = MailSettings(
    to="secops@example.test",
    sender="reports@example.test",
    server="smtp.example.test",
    port=587,
    username="reports",
    password="hunter2",
)


def _smtp_instance(mock_smtp):
    return mock_smtp.return_value.__enter__.return_value


class TestSmtpMailer:
    def test_sends_with_starttls_and_login(self):
        with patch("output.mailer.smtplib.SMTP") as mock_smtp:
            SmtpMailer(_SETTINGS).send("Overview", "<html></html>")

        mock_smtp.assert_called_once_with("smtp.example.test", 587, timeout=30)
        smtp = _smtp_instance(mock_smtp)
        smtp.starttls.assert_called_once()
        smtp.login.assert_called_once_with("reports", "hunter2")
        msg = smtp.send_message.call_args[0][0]
        assert msg["To"] == "secops@example.test"
        assert msg["From"] == "reports@example.test"
        assert msg["Subject"] == "Overview"

    def test_html_body_attached(self):
        with patch("output.mailer.smtplib.SMTP") as mock_smtp:
            SmtpMailer(_SETTINGS).send("Overview", "<p>report</p>")
        msg = _smtp_instance(mock_smtp).send_message.call_args[0][0]
        assert msg.get_body(preferencelist=("html",)).get_content().strip() == "<p>report</p>"

    def test_no_starttls_refused(self):
        with patch("output.mailer.smtplib.SMTP") as mock_smtp:
            _smtp_instance(mock_smtp).has_extn.return_value = False
            with pytest.raises(MailDeliveryError, match="STARTTLS"):
                SmtpMailer(_SETTINGS).send("Overview", "<p></p>")
            _smtp_instance(mock_smtp).login.assert_not_called()

    def test_auth_failure_wrapped(self):
        with patch("output.mailer.smtplib.SMTP") as mock_smtp:
            _smtp_instance(mock_smtp).login.side_effect = smtplib.SMTPAuthenticationError(535, b"bad creds")
            with pytest.raises(MailDeliveryError):
                SmtpMailer(_SETTINGS).send("Overview", "<p></p>")

    def test_connection_failure_wrapped(self):
        with patch("output.mailer.smtplib.SMTP", side_effect=ConnectionRefusedError("refused")):
            with pytest.raises(MailDeliveryError, match="smtp.example.test:587"):
                SmtpMailer(_SETTINGS).send("Overview", "<p></p>")
