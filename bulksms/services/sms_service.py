from __future__ import annotations

from dataclasses import dataclass, field
import logging

from sqlalchemy.exc import SQLAlchemyError

from bulksms.core.config import Settings
from bulksms.core.db import Database
from bulksms.core.phone import digits_only, normalize_msisdns, to_msisdn
from bulksms.models import DeliveryStatus

from . import exceptions
from .delivery_status_service import DeliveryStatusService
from .dispatch_service import BatchDispatcher
from .ledger_service import SendLedgerService

SMS_CHAR_LENGTH = 160


@dataclass(slots=True)
class DispatchOutcome:
    reference: str
    valid_count: int
    invalid_count: int
    success: bool
    description: str = ""
    messages_sent: int = 0
    send_log_ids: list[int] = field(default_factory=list)


def allow_only_ascii(text: str) -> str:
    """Drop characters outside printable ASCII so the message stays in the 7-bit alphabet."""

    return "".join(ch for ch in text if 32 <= ord(ch) < 127)


class SMSService:
    """Entry points consumed by the HTTP layer: send, status lookup and normalization."""

    def __init__(
        self,
        settings: Settings,
        database: Database,
        dispatcher: BatchDispatcher,
        delivery_status: DeliveryStatusService,
    ):
        self.settings = settings
        self.database = database
        self.dispatcher = dispatcher
        self.delivery_status = delivery_status
        self.sms_logger = logging.getLogger("bulksms.sms")

    @property
    def max_message_length(self) -> int:
        return self.settings.SMS_MAX_MESSAGE_SEGMENTS * SMS_CHAR_LENGTH

    def normalize(self, raw_numbers: list[str]) -> list[str]:
        return normalize_msisdns(raw_numbers, self.settings.SMS_COUNTRIES)

    def send(self, *, message: str, sender_identity: str, raw_destinations: list[str]) -> DispatchOutcome:
        if not message or not raw_destinations:
            raise exceptions.ValidationError("Invalid message or msisdn data")

        clean_message = allow_only_ascii(message)
        if not clean_message.strip():
            raise exceptions.ValidationError("Message has no sendable characters")
        if len(clean_message) > self.max_message_length:
            raise exceptions.ValidationError(
                f"Message exceeds max allowed length ({self.max_message_length} characters)"
            )

        destinations = self.normalize(raw_destinations)
        if not destinations:
            raise exceptions.ValidationError("No valid destination numbers")

        invalid_count = len(raw_destinations) - len(destinations)
        self.sms_logger.debug(
            "Request received from %s: send '%s' to %s recipients (%s dropped)",
            sender_identity,
            clean_message,
            len(destinations),
            invalid_count,
        )

        if not self.settings.SMS_ENABLED:
            self.sms_logger.warning("SMS sending disabled in configuration, not sending")
            return DispatchOutcome(
                reference="",
                valid_count=len(destinations),
                invalid_count=invalid_count,
                success=False,
                description="SMS sending is disabled",
            )

        result = self.dispatcher.dispatch(
            message=clean_message,
            sender_identity=sender_identity,
            destinations=destinations,
        )
        return DispatchOutcome(
            reference=result.reference,
            valid_count=len(destinations),
            invalid_count=invalid_count,
            success=result.success,
            description="; ".join(result.errors),
            messages_sent=result.accepted,
            send_log_ids=result.send_log_ids,
        )

    def query_status(self, msisdn: str) -> str:
        """Return the canonical status of the last message sent to ``msisdn``.

        Unresolved messages are looked up at the provider and the ledger is
        updated with the answer.
        """

        number = to_msisdn(msisdn, self.settings.SMS_COUNTRIES) or digits_only(msisdn)
        try:
            with self.database.session_scope() as session:
                last = SendLedgerService(session).find_last_message(number)
        except SQLAlchemyError as exc:
            raise exceptions.LedgerError("Failed to read the send ledger") from exc

        if last.status != DeliveryStatus.SENT.value or not last.provider_message_id:
            return last.status

        status = self.delivery_status.refresh(
            provider_message_id=last.provider_message_id,
            send_log_id=last.send_log_id,
        )
        return status.value
