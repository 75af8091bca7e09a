"""Email service with primary/fallback providers.

The fallback provider is only tried when the primary raises. When both
fail, EmailDeliveryError propagates to the caller (the notification
worker), which logs it.
"""

import logging
from typing import Optional

from config import get_settings
from domain.notifications.ports import EmailProviderPort, EmailMessage, EmailDeliveryError
from observability.metrics import notifications_sent_total
from .http_email_provider import HttpEmailProvider
from .smtp_email_provider import SmtpEmailProvider

logger = logging.getLogger(__name__)


class EmailService:
    """Sends email through a primary provider with an optional fallback."""

    def __init__(
        self,
        primary: EmailProviderPort,
        fallback: Optional[EmailProviderPort] = None,
        enabled: bool = True,
    ):
        self.primary = primary
        self.fallback = fallback
        self.enabled = enabled

    def send(self, to: str, subject: str, body: str, **template_params) -> Optional[str]:
        """Send an email.

        Returns:
            Name of the provider that delivered the message, or None when
            email is disabled or the recipient is empty.

        Raises:
            EmailDeliveryError: If every provider failed
        """
        if not self.enabled:
            logger.debug(f"Email disabled, skipping message to {to}")
            notifications_sent_total.labels(channel="email", outcome="skipped").inc()
            return None
        if not to:
            logger.warning(f"Email has no recipient, skipping: subject={subject}")
            notifications_sent_total.labels(channel="email", outcome="skipped").inc()
            return None

        message = EmailMessage(to=to, subject=subject, body=body, template_params=dict(template_params))

        try:
            self.primary.send(message)
            notifications_sent_total.labels(channel="email", outcome="success").inc()
            return self.primary.name
        except EmailDeliveryError as e:
            if self.fallback is None:
                notifications_sent_total.labels(channel="email", outcome="error").inc()
                raise
            logger.warning(f"Primary email provider '{self.primary.name}' failed, trying '{self.fallback.name}': {e}")

        try:
            self.fallback.send(message)
        except EmailDeliveryError:
            notifications_sent_total.labels(channel="email", outcome="error").inc()
            raise

        notifications_sent_total.labels(channel="email", outcome="success").inc()
        return self.fallback.name


def build_email_service() -> EmailService:
    """Create the EmailService from application settings."""
    settings = get_settings()
    primary = HttpEmailProvider(
        api_url=settings.EMAIL_API_URL,
        service_id=settings.EMAIL_SERVICE_ID,
        template_id=settings.EMAIL_TEMPLATE_ID,
        public_key=settings.EMAIL_PUBLIC_KEY,
        private_key=settings.EMAIL_PRIVATE_KEY,
        timeout=settings.EMAIL_TIMEOUT_SECONDS,
    )
    fallback = SmtpEmailProvider(
        host=settings.SMTP_HOST,
        port=settings.SMTP_PORT,
        username=settings.SMTP_USER,
        password=settings.SMTP_PASSWORD,
        use_tls=settings.SMTP_USE_TLS,
        from_address=settings.EMAIL_FROM,
        timeout=settings.EMAIL_TIMEOUT_SECONDS,
    )
    return EmailService(
        primary=primary,
        fallback=fallback if fallback.is_configured() else None,
        enabled=settings.EMAIL_ENABLED,
    )
