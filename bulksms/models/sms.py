from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, SmallInteger, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base
from .enums import DeliveryStatus

if TYPE_CHECKING:  # pragma: no cover
    from .send_log import SendLog


class SmsRecord(Base):
    """One row per recipient of a batch."""

    __tablename__ = "sms"
    __table_args__ = (Index("ix_sms_status_sent_at", "status", "sent_at"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    msisdn: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    sent_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(tz=timezone.utc)
    )
    segments: Mapped[int] = mapped_column(SmallInteger, nullable=False, default=0)
    send_log_id: Mapped[int] = mapped_column(
        ForeignKey("send_logs.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=DeliveryStatus.SENT.value)
    status_timestamp: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    provider_message_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    error_code: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    error_description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    send_log: Mapped["SendLog"] = relationship("SendLog", back_populates="messages")
