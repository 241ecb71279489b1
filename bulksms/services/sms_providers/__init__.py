from .base import BaseSMSProvider, RecipientResult, SendResult, StatusResult
from .clickatell_provider import ClickatellSMSProvider
from .mock_provider import MockSMSProvider
from .registry import build_provider

__all__ = [
    "BaseSMSProvider",
    "RecipientResult",
    "SendResult",
    "StatusResult",
    "ClickatellSMSProvider",
    "MockSMSProvider",
    "build_provider",
]
