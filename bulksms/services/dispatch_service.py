from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Optional, Sequence
import uuid

from sqlalchemy.exc import SQLAlchemyError

from bulksms.core.db import Database
from bulksms.models import DeliveryStatus, SendLogStatus

from . import exceptions
from .ledger_service import RecipientEntry, SendLedgerService
from .sms_providers import BaseSMSProvider, SendResult

logger = logging.getLogger("bulksms.dispatch")

NO_RESPONSE_DESCRIPTION = "No response from provider for this recipient"
NO_MESSAGE_ID_DESCRIPTION = "Provider accepted the message without a message id"


def split_batches(destinations: Sequence[str], max_batch_size: int | None) -> list[list[str]]:
    """Consecutive chunks of at most ``max_batch_size``; 0 or ``None`` means one chunk."""

    items = list(destinations)
    if not items:
        return []
    if not max_batch_size or max_batch_size <= 0:
        return [items]
    return [items[start : start + max_batch_size] for start in range(0, len(items), max_batch_size)]


@dataclass(slots=True)
class ChunkOutcome:
    send_log_id: int
    size: int
    accepted: int
    status: SendLogStatus
    error: Optional[str] = None


@dataclass(slots=True)
class DispatchResult:
    """Aggregate of every chunk of one dispatch call."""

    chunks: list[ChunkOutcome] = field(default_factory=list)

    @property
    def send_log_ids(self) -> list[int]:
        return [chunk.send_log_id for chunk in self.chunks]

    @property
    def reference(self) -> str:
        return ",".join(str(send_log_id) for send_log_id in self.send_log_ids)

    @property
    def errors(self) -> list[str]:
        return [chunk.error for chunk in self.chunks if chunk.error]

    @property
    def accepted(self) -> int:
        return sum(chunk.accepted for chunk in self.chunks)

    @property
    def success(self) -> bool:
        return bool(self.chunks) and not self.errors


class BatchDispatcher:
    """Sends destinations through the provider chunk by chunk and records each chunk.

    A failed chunk never stops the following ones. Each chunk's batch row and
    recipient rows are committed together after its provider call returns.
    """

    def __init__(
        self,
        database: Database,
        provider: BaseSMSProvider,
        *,
        max_batch_size: int = 0,
        sender_label: str = "",
    ):
        self.database = database
        self.provider = provider
        self.max_batch_size = max_batch_size
        self.sender_label = sender_label

    def dispatch(
        self,
        *,
        message: str,
        sender_identity: str,
        destinations: Sequence[str],
        max_batch_size: int | None = None,
    ) -> DispatchResult:
        batch_size = self.max_batch_size if max_batch_size is None else max_batch_size
        chunks = split_batches(destinations, batch_size)
        dispatch_id = uuid.uuid4().hex[:12]
        result = DispatchResult()

        logger.info(
            "dispatch_started",
            extra={
                "dispatch_id": dispatch_id,
                "recipients": len(destinations),
                "chunks": len(chunks),
                "originator": sender_identity,
            },
        )
        for index, chunk in enumerate(chunks):
            client_reference = f"{dispatch_id}-{index}"
            send_result = self._send_chunk(message=message, chunk=chunk, client_reference=client_reference)
            entries, status, description = self._build_entries(chunk, send_result)
            send_log_id = self._record_chunk(
                message=message,
                sender_identity=sender_identity,
                entries=entries,
                status=status,
                description=description,
                client_reference=client_reference,
                completed=result.send_log_ids,
            )
            outcome = ChunkOutcome(
                send_log_id=send_log_id,
                size=len(chunk),
                accepted=sum(1 for entry in entries if entry.status is DeliveryStatus.SENT),
                status=status,
                error=description if status is SendLogStatus.FAILED else None,
            )
            result.chunks.append(outcome)
            if outcome.error:
                logger.warning(
                    "dispatch_chunk_failed",
                    extra={"client_reference": client_reference, "send_log_id": send_log_id, "error": outcome.error},
                )

        logger.info(
            "dispatch_finished",
            extra={
                "dispatch_id": dispatch_id,
                "send_log_ids": result.send_log_ids,
                "accepted": result.accepted,
                "failed_chunks": len(result.errors),
            },
        )
        return result

    def _send_chunk(self, *, message: str, chunk: list[str], client_reference: str) -> SendResult:
        try:
            return self.provider.send_batch(
                message=message,
                destinations=chunk,
                sender_label=self.sender_label,
                client_reference=client_reference,
            )
        except exceptions.ProviderError as exc:
            return SendResult(error=str(exc))
        except Exception as exc:
            logger.exception("dispatch_chunk_send_crashed", extra={"client_reference": client_reference})
            return SendResult(error=f"Provider call failed: {exc}")

    def _build_entries(
        self, chunk: list[str], send_result: SendResult
    ) -> tuple[list[RecipientEntry], SendLogStatus, str]:
        if send_result.error and not send_result.recipients:
            entries = [
                RecipientEntry(
                    msisdn=msisdn,
                    status=DeliveryStatus.FAILED,
                    error_description=send_result.error,
                )
                for msisdn in chunk
            ]
            return entries, SendLogStatus.FAILED, send_result.error

        responses = {}
        for recipient in send_result.recipients:
            responses.setdefault(recipient.to, recipient)

        entries: list[RecipientEntry] = []
        for msisdn in chunk:
            recipient = responses.get(msisdn)
            if recipient is None:
                entries.append(
                    RecipientEntry(
                        msisdn=msisdn,
                        status=DeliveryStatus.FAILED,
                        error_description=NO_RESPONSE_DESCRIPTION,
                    )
                )
            elif not recipient.accepted:
                entries.append(
                    RecipientEntry(
                        msisdn=msisdn,
                        status=DeliveryStatus.FAILED,
                        provider_message_id=recipient.provider_message_id,
                        segments=recipient.segments,
                        error_code=recipient.error_code,
                        error_description=recipient.error_description,
                    )
                )
            elif not recipient.provider_message_id:
                entries.append(
                    RecipientEntry(
                        msisdn=msisdn,
                        status=DeliveryStatus.FAILED,
                        segments=recipient.segments,
                        error_description=NO_MESSAGE_ID_DESCRIPTION,
                    )
                )
            else:
                entries.append(
                    RecipientEntry(
                        msisdn=msisdn,
                        status=DeliveryStatus.SENT,
                        provider_message_id=recipient.provider_message_id,
                        segments=recipient.segments,
                    )
                )

        rejected = sum(1 for entry in entries if entry.status is DeliveryStatus.FAILED)
        if send_result.error:
            return entries, SendLogStatus.FAILED, send_result.error
        if rejected == 0:
            return entries, SendLogStatus.SUCCESS, ""
        if rejected == len(entries):
            return entries, SendLogStatus.FAILED, f"All {rejected} recipients rejected by provider"
        return entries, SendLogStatus.PARTIAL, f"{rejected} of {len(entries)} recipients rejected by provider"

    def _record_chunk(
        self,
        *,
        message: str,
        sender_identity: str,
        entries: list[RecipientEntry],
        status: SendLogStatus,
        description: str,
        client_reference: str,
        completed: list[int],
    ) -> int:
        try:
            with self.database.session_scope() as session:
                send_log = SendLedgerService(session).record_batch(
                    originator=sender_identity,
                    message=message,
                    entries=entries,
                    status=status.value,
                    description=description,
                )
                return send_log.id
        except SQLAlchemyError as exc:
            logger.error(
                "ledger_write_failed_after_send",
                extra={
                    "client_reference": client_reference,
                    "recipients": len(entries),
                    "provider_message_ids": [e.provider_message_id for e in entries if e.provider_message_id],
                    "recorded_send_log_ids": list(completed),
                },
                exc_info=True,
            )
            raise exceptions.LedgerError(
                f"Failed to record batch {client_reference} after sending; "
                f"recorded send logs: {','.join(str(i) for i in completed) or 'none'}"
            ) from exc
