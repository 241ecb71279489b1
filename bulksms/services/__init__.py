from .delivery_status_service import DeliveryStatusService
from .dispatch_service import BatchDispatcher, DispatchResult
from .ledger_service import SendLedgerService
from .sms_service import DispatchOutcome, SMSService

__all__ = [
    "BatchDispatcher",
    "DeliveryStatusService",
    "DispatchOutcome",
    "DispatchResult",
    "SendLedgerService",
    "SMSService",
]
