"""Email Provider Port - Abstract interface for outbound email.

Hexagonal Architecture: workflow code hands an EmailMessage to the
EmailService, which drives one or more providers implementing this port
(HTTP email API, SMTP relay).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict


class EmailDeliveryError(Exception):
    """Raised by a provider when a message could not be handed off."""
    pass


@dataclass
class EmailMessage:
    """A single outbound email.

    Attributes:
        to: Recipient address
        subject: Subject line
        body: Plain-text body
        template_params: Extra values for template-based providers
    """
    to: str
    subject: str
    body: str
    template_params: Dict[str, str] = field(default_factory=dict)


class EmailProviderPort(ABC):
    """Abstract interface for email providers.

    Implementations raise EmailDeliveryError on any failure; they never
    return a partial-success value.
    """

    name: str = "email"

    @abstractmethod
    def send(self, message: EmailMessage) -> None:
        """Deliver a message.

        Raises:
            EmailDeliveryError: If the provider rejected or could not reach its backend
        """
        pass

    def is_configured(self) -> bool:
        """Whether the provider has the credentials it needs."""
        return True
