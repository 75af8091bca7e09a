"""Notification Port Interfaces"""

from .email_provider_port import (
    EmailProviderPort,
    EmailMessage,
    EmailDeliveryError,
)
from .connection_registry_port import ConnectionRegistryPort

__all__ = [
    "EmailProviderPort",
    "EmailMessage",
    "EmailDeliveryError",
    "ConnectionRegistryPort",
]
