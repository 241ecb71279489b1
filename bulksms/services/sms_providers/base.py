from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

from bulksms.models import DeliveryStatus


@dataclass(slots=True)
class RecipientResult:
    """Provider answer for one destination of a batch."""

    to: str
    provider_message_id: Optional[str] = None
    error_code: str = ""
    error_description: str = ""
    segments: int = 0

    @property
    def accepted(self) -> bool:
        return not self.error_code or self.error_code == "0"


@dataclass(slots=True)
class SendResult:
    """Normalized response of a batch send.

    ``error`` is set for transport failures and batch-level rejections; per
    recipient rejections are reported inline and do not set it.
    """

    recipients: list[RecipientResult] = field(default_factory=list)
    error: Optional[str] = None


@dataclass(slots=True)
class StatusResult:
    provider_message_id: str
    status: DeliveryStatus
    description: str = ""
    segments: int = 0


class BaseSMSProvider(ABC):
    """Interface all SMS providers must implement."""

    name: str

    @abstractmethod
    def send_batch(
        self,
        *,
        message: str,
        destinations: list[str],
        sender_label: str,
        client_reference: str,
    ) -> SendResult:
        """Send ``message`` to every destination in one provider call."""
        raise NotImplementedError

    @abstractmethod
    def get_status(self, provider_message_id: str) -> StatusResult:
        """Return the canonical delivery status of a sent message.

        Raises ``ProviderError`` when the provider cannot be reached.
        """
        raise NotImplementedError

    def close(self) -> None:
        return None
