from __future__ import annotations

import logging
import random
import threading
import time
import uuid

from bulksms.models import DeliveryStatus

from .base import BaseSMSProvider, RecipientResult, SendResult, StatusResult

logger = logging.getLogger("bulksms.providers.mock")

# Synthetic provider codes, mapped like a real backend would.
_MOCK_CODES = {
    "101": DeliveryStatus.DELIVERED,
    "405": DeliveryStatus.FAILED,
    "056": DeliveryStatus.SENT,
}


class MockSMSProvider(BaseSMSProvider):
    """Offline provider: sends always succeed, statuses are drawn from a seedable RNG."""

    name = "mock"

    def __init__(self, *, seed: int | None = None, status_delay_seconds: float = 0.0):
        self._random = random.Random(seed)
        self._lock = threading.Lock()
        self._status_delay_seconds = status_delay_seconds

    def _next_id(self) -> str:
        with self._lock:
            return uuid.UUID(int=self._random.getrandbits(128), version=4).hex

    def _draw_code(self) -> str:
        with self._lock:
            roll = self._random.randrange(10)
        if roll < 1:
            return "405"
        if roll >= 8:
            return "056"
        return "101"

    def send_batch(
        self,
        *,
        message: str,
        destinations: list[str],
        sender_label: str,
        client_reference: str,
    ) -> SendResult:
        logger.info(
            "Simulating SMS batch | recipients=%s | sender=%s | reference=%s",
            len(destinations),
            sender_label,
            client_reference,
        )
        recipients = [
            RecipientResult(to=destination, provider_message_id=self._next_id(), error_code="0", segments=1)
            for destination in destinations
        ]
        return SendResult(recipients=recipients)

    def get_status(self, provider_message_id: str) -> StatusResult:
        if self._status_delay_seconds:
            time.sleep(self._status_delay_seconds)
        code = self._draw_code()
        status = _MOCK_CODES[code]
        logger.debug("Simulated status | provider_message_id=%s | code=%s", provider_message_id, code)
        return StatusResult(
            provider_message_id=provider_message_id,
            status=status,
            description=status.value,
            segments=1,
        )
