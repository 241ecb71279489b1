from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
import logging
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from bulksms.models import DeliveryStatus, MessageType, SendLog, SmsRecord

from . import exceptions

logger = logging.getLogger("bulksms.ledger")


@dataclass(slots=True)
class RecipientEntry:
    """Row to be written for one recipient of a batch."""

    msisdn: str
    status: DeliveryStatus = DeliveryStatus.SENT
    provider_message_id: Optional[str] = None
    segments: int = 0
    error_code: Optional[str] = None
    error_description: Optional[str] = None


@dataclass(slots=True)
class LastMessage:
    provider_message_id: Optional[str]
    send_log_id: int
    status: str


class SendLedgerService:
    """Batch and recipient send records.

    Counter updates are issued as ``SET x = x + 1`` statements so concurrent
    reconciliation of one batch never loses an increment.
    """

    def __init__(self, db: Session):
        self.db = db

    def create_send_log(
        self,
        *,
        originator: str,
        message: str,
        quantity: int,
        sent: int,
        failed: int,
        status: str,
        description: str = "",
        sent_at: datetime | None = None,
        auto_commit: bool = True,
    ) -> SendLog:
        send_log = SendLog(
            sent_at=sent_at or self._now(),
            originator=originator,
            type=MessageType.SMS.value,
            quantity=quantity,
            delivered=0,
            failed=failed,
            sent=sent,
            message=message,
            status=status,
            description=description,
        )
        self.db.add(send_log)
        return self._finalize(send_log, auto_commit=auto_commit)

    def create_sms_records(
        self,
        send_log_id: int,
        entries: list[RecipientEntry],
        *,
        message: str,
        sent_at: datetime | None = None,
        auto_commit: bool = True,
    ) -> list[SmsRecord]:
        timestamp = sent_at or self._now()
        records = [
            SmsRecord(
                msisdn=entry.msisdn,
                sent_at=timestamp,
                segments=entry.segments,
                send_log_id=send_log_id,
                status=entry.status.value,
                status_timestamp=timestamp if entry.status.is_terminal else None,
                message=message,
                provider_message_id=entry.provider_message_id,
                error_code=entry.error_code,
                error_description=entry.error_description,
            )
            for entry in entries
        ]
        self.db.add_all(records)
        if auto_commit:
            self.db.commit()
        else:
            self.db.flush()
        return records

    def record_batch(
        self,
        *,
        originator: str,
        message: str,
        entries: list[RecipientEntry],
        status: str,
        description: str = "",
    ) -> SendLog:
        """Write a batch row and its recipient rows in a single transaction."""

        now = self._now()
        failed = sum(1 for entry in entries if entry.status is DeliveryStatus.FAILED)
        try:
            send_log = self.create_send_log(
                originator=originator,
                message=message,
                quantity=len(entries),
                sent=len(entries) - failed,
                failed=failed,
                status=status,
                description=description,
                sent_at=now,
                auto_commit=False,
            )
            self.create_sms_records(send_log.id, entries, message=message, sent_at=now, auto_commit=False)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return send_log

    def update_sms_status(
        self,
        provider_message_id: str,
        status: DeliveryStatus,
        *,
        status_timestamp: datetime | None = None,
        segments: int = 0,
        auto_commit: bool = True,
    ) -> bool:
        """Move a recipient row out of ``sent``.

        Returns ``True`` when the row transitioned. Reporting ``sent`` again, or
        a status for a row that is already terminal, changes nothing.
        """

        exists = self.db.execute(
            select(SmsRecord.id).where(SmsRecord.provider_message_id == provider_message_id).limit(1)
        ).first()
        if exists is None:
            raise exceptions.NotFoundError(f"No SMS record for provider message id {provider_message_id}")
        if status is DeliveryStatus.SENT:
            return False

        result = self.db.execute(
            update(SmsRecord)
            .where(
                SmsRecord.provider_message_id == provider_message_id,
                SmsRecord.status == DeliveryStatus.SENT.value,
            )
            .values(
                status=status.value,
                status_timestamp=status_timestamp or self._now(),
                segments=segments,
            )
            .execution_options(synchronize_session=False)
        )
        transitioned = (result.rowcount or 0) > 0
        if auto_commit:
            self.db.commit()
        return transitioned

    def increment_send_log_counters(
        self,
        send_log_id: int,
        *,
        delivered: bool = False,
        failed: bool = False,
        auto_commit: bool = True,
    ) -> None:
        if delivered == failed:
            if delivered:
                raise ValueError("A recipient cannot be both delivered and failed")
            return

        column = SendLog.delivered if delivered else SendLog.failed
        self.db.execute(
            update(SendLog)
            .where(SendLog.id == send_log_id)
            .values({column: column + 1, SendLog.sent: SendLog.sent - 1})
            .execution_options(synchronize_session=False)
        )
        if auto_commit:
            self.db.commit()

    def apply_status(
        self,
        *,
        provider_message_id: str,
        send_log_id: int,
        status: DeliveryStatus,
        segments: int = 0,
    ) -> bool:
        """Record a resolved status and bump the batch counters together."""

        try:
            transitioned = self.update_sms_status(
                provider_message_id,
                status,
                segments=segments,
                auto_commit=False,
            )
            if transitioned:
                self.increment_send_log_counters(
                    send_log_id,
                    delivered=status is DeliveryStatus.DELIVERED,
                    failed=status is DeliveryStatus.FAILED,
                    auto_commit=False,
                )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        if transitioned:
            logger.debug(
                "SMS status resolved | provider_message_id=%s | send_log_id=%s | status=%s",
                provider_message_id,
                send_log_id,
                status.value,
            )
        return transitioned

    def find_last_message(self, msisdn: str) -> LastMessage:
        row = self.db.execute(
            select(SmsRecord.provider_message_id, SmsRecord.send_log_id, SmsRecord.status)
            .where(SmsRecord.msisdn == msisdn)
            .order_by(SmsRecord.sent_at.desc(), SmsRecord.id.desc())
            .limit(1)
        ).first()
        if row is None:
            raise exceptions.NotFoundError(f"No message has been sent to {msisdn}")
        return LastMessage(provider_message_id=row[0], send_log_id=row[1], status=row[2])

    def find_unresolved(self, window: timedelta) -> list[tuple[str, int]]:
        cutoff = self._now() - window
        rows = self.db.execute(
            select(SmsRecord.provider_message_id, SmsRecord.send_log_id)
            .where(
                SmsRecord.status == DeliveryStatus.SENT.value,
                SmsRecord.provider_message_id.isnot(None),
                SmsRecord.sent_at >= cutoff,
            )
            .order_by(SmsRecord.sent_at.asc(), SmsRecord.id.asc())
        ).all()
        return [(row[0], row[1]) for row in rows]

    def get_send_log(self, send_log_id: int) -> SendLog:
        send_log = self.db.get(SendLog, send_log_id)
        if send_log is None:
            raise exceptions.NotFoundError(f"Send log {send_log_id} not found")
        return send_log

    def _finalize(self, send_log: SendLog, *, auto_commit: bool) -> SendLog:
        if auto_commit:
            self.db.commit()
            self.db.refresh(send_log)
        else:
            self.db.flush()
        return send_log

    def _now(self) -> datetime:
        return datetime.now(tz=timezone.utc)
