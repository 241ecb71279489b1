from enum import Enum


class DeliveryStatus(str, Enum):
    """Canonical per-recipient status; adapters map provider codes onto it."""

    SENT = "sent"
    DELIVERED = "delivered"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not DeliveryStatus.SENT


class SendLogStatus(str, Enum):
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"


class MessageType(str, Enum):
    SMS = "sms"
