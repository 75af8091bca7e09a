"""Email delivery adapters (HTTP email API primary, SMTP fallback)"""

from .http_email_provider import HttpEmailProvider
from .smtp_email_provider import SmtpEmailProvider
from .email_service import EmailService, build_email_service

__all__ = [
    "HttpEmailProvider",
    "SmtpEmailProvider",
    "EmailService",
    "build_email_service",
]
