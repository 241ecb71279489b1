from .sms import PingResponse, SendLogRead, SendSMSResponse, SMSRequest

__all__ = [
    "PingResponse",
    "SendLogRead",
    "SendSMSResponse",
    "SMSRequest",
]
