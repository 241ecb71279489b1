from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
import logging
import threading
import time

from sqlalchemy.exc import SQLAlchemyError

from bulksms.core.db import Database
from bulksms.models import DeliveryStatus
from bulksms.services import exceptions as service_exceptions
from bulksms.services.delivery_status_service import DeliveryStatusService
from bulksms.services.ledger_service import SendLedgerService

logger = logging.getLogger("bulksms.reconciler")


class ReconcilerState(str, Enum):
    IDLE = "idle"
    RECONCILING = "reconciling"
    STOPPED = "stopped"


@dataclass(slots=True)
class ReconcilePass:
    checked: int = 0
    resolved: int = 0
    pending: int = 0
    errors: int = 0


class StatusReconciler:
    """Periodically polls the provider for messages still in ``sent``.

    Every tick looks back over a fixed window rather than "since the last
    tick", so a missed tick is caught up by the next one. Records are handled
    one at a time; a failure on one record is logged and the record stays
    unresolved until a later tick.
    """

    METRICS_LOG_INTERVAL_SECONDS = 300

    def __init__(
        self,
        database: Database,
        delivery_status: DeliveryStatusService,
        *,
        interval_seconds: float = 60.0,
        window: timedelta = timedelta(minutes=30),
    ):
        self.database = database
        self.delivery_status = delivery_status
        self.interval_seconds = max(0.01, interval_seconds)
        self.window = window
        self.state = ReconcilerState.IDLE
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._metrics: dict[str, int] = {
            "ticks": 0,
            "checked": 0,
            "resolved": 0,
            "errors": 0,
        }
        self._last_metrics_log = time.monotonic()

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the background loop.

        Raises ``RuntimeError`` while a previously stopped loop has not exited
        yet, so two loops never share the stop handle.
        """

        if self.is_running:
            if self._stop_event.is_set():
                raise RuntimeError("Status reconciler is still shutting down")
            return
        self._stop_event.clear()
        self.state = ReconcilerState.IDLE
        self._thread = threading.Thread(target=self.run_forever, name="status-reconciler", daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = 10.0) -> bool:
        """Stop ticking; an in-flight pass stops after its current record.

        Returns ``False`` if the loop is still running when ``timeout``
        expires. The thread handle is kept until the loop has exited.
        """

        self._stop_event.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        if thread is not None and thread.is_alive():
            logger.warning("status_reconciler_stop_timeout", extra={"timeout_seconds": timeout})
            return False
        self._thread = None
        self.state = ReconcilerState.STOPPED
        return True

    def run_forever(self) -> None:
        logger.info(
            "status_reconciler_started",
            extra={"interval_seconds": self.interval_seconds, "window_seconds": self.window.total_seconds()},
        )
        while not self._stop_event.wait(self.interval_seconds):
            try:
                self.run_once()
            except Exception:
                logger.exception("status_reconciler_pass_failed")
            self._log_metrics_if_due()
        self.state = ReconcilerState.STOPPED
        logger.info("status_reconciler_stopped")

    def run_once(self) -> ReconcilePass:
        self._inc_metric("ticks")
        stats = ReconcilePass()
        try:
            with self.database.session_scope() as session:
                unresolved = SendLedgerService(session).find_unresolved(self.window)
        except SQLAlchemyError:
            logger.exception("status_reconciler_lookup_failed")
            stats.errors += 1
            self._inc_metric("errors")
            return stats

        if not unresolved:
            return stats

        self.state = ReconcilerState.RECONCILING
        try:
            for provider_message_id, send_log_id in unresolved:
                if self._stop_event.is_set():
                    break
                stats.checked += 1
                try:
                    status = self.delivery_status.refresh(
                        provider_message_id=provider_message_id,
                        send_log_id=send_log_id,
                    )
                except (service_exceptions.ServiceError, SQLAlchemyError) as exc:
                    stats.errors += 1
                    logger.warning(
                        "status_reconciler_record_failed",
                        extra={
                            "provider_message_id": provider_message_id,
                            "send_log_id": send_log_id,
                            "error": str(exc),
                        },
                    )
                    continue
                if status is DeliveryStatus.SENT:
                    stats.pending += 1
                else:
                    stats.resolved += 1
        finally:
            if self.state is ReconcilerState.RECONCILING:
                self.state = ReconcilerState.IDLE

        self._inc_metric("checked", stats.checked)
        self._inc_metric("resolved", stats.resolved)
        self._inc_metric("errors", stats.errors)
        logger.info(
            "status_reconciler_pass",
            extra={
                "checked": stats.checked,
                "resolved": stats.resolved,
                "pending": stats.pending,
                "errors": stats.errors,
            },
        )
        return stats

    def _inc_metric(self, key: str, amount: int = 1) -> None:
        self._metrics[key] = self._metrics.get(key, 0) + amount

    def _log_metrics_if_due(self) -> None:
        now = time.monotonic()
        if now - self._last_metrics_log < self.METRICS_LOG_INTERVAL_SECONDS:
            return
        self._last_metrics_log = now
        logger.info("status_reconciler_metrics", extra=dict(self._metrics))
