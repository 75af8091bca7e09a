"""HTTP Email Adapter - EmailProviderPort over a template-based REST email API.

Posts to an EmailJS-compatible endpoint:

    POST {EMAIL_API_URL}
    {"service_id", "template_id", "user_id", "accessToken", "template_params"}

Architecture: Hexagonal - Infrastructure adapter implementing domain port
"""

import logging
from typing import Optional

import requests

from domain.notifications.ports import EmailProviderPort, EmailMessage, EmailDeliveryError

logger = logging.getLogger(__name__)


class HttpEmailProvider(EmailProviderPort):
    """Primary email provider.

    Example Usage:
        provider = HttpEmailProvider(api_url, service_id, template_id, public_key, private_key)
        provider.send(EmailMessage(to="vendor@example.com", subject="...", body="..."))
    """

    name = "http"

    def __init__(
        self,
        api_url: str,
        service_id: Optional[str],
        template_id: Optional[str],
        public_key: Optional[str],
        private_key: Optional[str] = None,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self.api_url = api_url
        self.service_id = service_id
        self.template_id = template_id
        self.public_key = public_key
        self.private_key = private_key
        self.timeout = timeout
        self.session = session or requests.Session()

    def is_configured(self) -> bool:
        return bool(self.api_url and self.service_id and self.template_id and self.public_key)

    def build_payload(self, message: EmailMessage) -> dict:
        template_params = {
            "to_email": message.to,
            "subject": message.subject,
            "message": message.body,
        }
        template_params.update(message.template_params)

        payload = {
            "service_id": self.service_id,
            "template_id": self.template_id,
            "user_id": self.public_key,
            "template_params": template_params,
        }
        if self.private_key:
            payload["accessToken"] = self.private_key
        return payload

    def send(self, message: EmailMessage) -> None:
        if not self.is_configured():
            raise EmailDeliveryError("HTTP email provider is not configured")

        try:
            response = self.session.post(
                self.api_url,
                json=self.build_payload(message),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise EmailDeliveryError(f"HTTP email request failed: {e}") from e

        if response.status_code >= 400:
            raise EmailDeliveryError(
                f"HTTP email provider returned {response.status_code}: {response.text[:200]}"
            )

        logger.info(f"Email sent via HTTP provider: to={message.to}, subject={message.subject}")
