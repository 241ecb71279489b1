from .base import Base
from .enums import DeliveryStatus, MessageType, SendLogStatus
from .send_log import SendLog
from .sms import SmsRecord

__all__ = [
    "Base",
    "DeliveryStatus",
    "MessageType",
    "SendLog",
    "SendLogStatus",
    "SmsRecord",
]
