from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError

from bulksms.core.db import Database
from bulksms.models import DeliveryStatus

from . import exceptions
from .ledger_service import SendLedgerService
from .sms_providers import BaseSMSProvider

logger = logging.getLogger("bulksms.delivery_status")


class DeliveryStatusService:
    """Asks the provider for one message's status and records the answer."""

    def __init__(self, database: Database, provider: BaseSMSProvider):
        self.database = database
        self.provider = provider

    def refresh(self, *, provider_message_id: str, send_log_id: int) -> DeliveryStatus:
        result = self.provider.get_status(provider_message_id)
        try:
            with self.database.session_scope() as session:
                transitioned = SendLedgerService(session).apply_status(
                    provider_message_id=provider_message_id,
                    send_log_id=send_log_id,
                    status=result.status,
                    segments=result.segments,
                )
        except SQLAlchemyError as exc:
            logger.error(
                "Failed to record delivery status | provider_message_id=%s | status=%s",
                provider_message_id,
                result.status.value,
            )
            raise exceptions.LedgerError("Failed to record delivery status") from exc

        if transitioned:
            logger.info(
                "Delivery status updated | provider_message_id=%s | send_log_id=%s | status=%s",
                provider_message_id,
                send_log_id,
                result.status.value,
            )
        return result.status
