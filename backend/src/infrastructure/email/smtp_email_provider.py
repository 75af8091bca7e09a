"""SMTP Email Adapter - EmailProviderPort over a plain SMTP relay.

Used as the fallback when the HTTP provider fails.

Architecture: Hexagonal - Infrastructure adapter implementing domain port
"""

import logging
import smtplib
from email.mime.text import MIMEText
from typing import Optional

from domain.notifications.ports import EmailProviderPort, EmailMessage, EmailDeliveryError

logger = logging.getLogger(__name__)


class SmtpEmailProvider(EmailProviderPort):
    """Fallback email provider."""

    name = "smtp"

    def __init__(
        self,
        host: Optional[str],
        port: int = 587,
        username: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: bool = True,
        from_address: str = "compliance@localhost",
        timeout: float = 10.0,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.from_address = from_address
        self.timeout = timeout

    def is_configured(self) -> bool:
        return bool(self.host)

    def build_message(self, message: EmailMessage) -> MIMEText:
        msg = MIMEText(message.body, "plain", "utf-8")
        msg["Subject"] = message.subject
        msg["From"] = self.from_address
        msg["To"] = message.to
        return msg

    def send(self, message: EmailMessage) -> None:
        if not self.is_configured():
            raise EmailDeliveryError("SMTP provider is not configured")

        try:
            smtp = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
            try:
                if self.use_tls:
                    smtp.starttls()
                if self.username and self.password:
                    smtp.login(self.username, self.password)
                smtp.send_message(self.build_message(message))
            finally:
                smtp.quit()
        except (smtplib.SMTPException, OSError) as e:
            raise EmailDeliveryError(f"SMTP delivery failed: {e}") from e

        logger.info(f"Email sent via SMTP: to={message.to}, subject={message.subject}")
