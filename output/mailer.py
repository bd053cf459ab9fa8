"""
output/mailer.py -- SMTP transport for the overview report.

Single attempt, synchronous. STARTTLS is mandatory: a server that does not
offer it is treated as a delivery failure rather than a plaintext fallback.
"""

import logging
import smtplib
import ssl
from email.message import EmailMessage

from core.config import MailSettings
from core.errors import MailDeliveryError

logger = logging.getLogger("defenderreport.mailer")

__all__ = ["MailSettings", "SmtpMailer"]


class SmtpMailer:
    def __init__(self, settings: MailSettings, timeout: int = 30) -> None:
        self.settings = settings
        self.timeout = timeout

    def _build_message(self, subject: str, html_body: str) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self.settings.sender
        msg["To"] = self.settings.to
        msg.set_content("This report requires an HTML-capable mail client.")
        msg.add_alternative(html_body, subtype="html")
        return msg

    def send(self, subject: str, html_body: str) -> None:
        """Send html_body to the configured recipient. Raises MailDeliveryError."""
        s = self.settings
        msg = self._build_message(subject, html_body)
        try:
            with smtplib.SMTP(s.server, s.port, timeout=self.timeout) as smtp:
                smtp.ehlo()
                if s.require_tls:
                    if not smtp.has_extn("starttls"):
                        raise MailDeliveryError(f"{s.server} does not offer STARTTLS")
                    smtp.starttls(context=ssl.create_default_context())
                    smtp.ehlo()
                smtp.login(s.username, s.password)
                smtp.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            raise MailDeliveryError(f"Could not send mail via {s.server}:{s.port}: {e}") from e
        logger.info("Sent '%s' to %s", subject, s.to)
