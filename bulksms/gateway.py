from __future__ import annotations

from datetime import timedelta
import logging

from bulksms.core.config import Settings
from bulksms.core.db import Database
from bulksms.services import BatchDispatcher, DeliveryStatusService, SMSService
from bulksms.services.auth_service import AuthService
from bulksms.services.sms_providers import BaseSMSProvider, build_provider
from bulksms.workers.status_reconciler import StatusReconciler

logger = logging.getLogger("bulksms.gateway")


class Gateway:
    """Root object holding configuration, the ledger handle, the provider and the reconciler.

    Components receive what they need from here explicitly, so several
    gateways (e.g. one per test) can live in the same process.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        database: Database | None = None,
        provider: BaseSMSProvider | None = None,
    ):
        self.settings = settings
        self.database = database or Database(settings.DATABASE_URL)
        self.provider = provider or build_provider(settings)
        self.auth: AuthService | None = None
        if settings.AUTH_ENABLED:
            if not settings.AUTH_SERVICE_URL:
                raise ValueError("AUTH_SERVICE_URL is required when AUTH_ENABLED is set")
            self.auth = AuthService(service_url=settings.AUTH_SERVICE_URL, permission=settings.AUTH_PERMISSION)

        self.dispatcher = BatchDispatcher(
            self.database,
            self.provider,
            max_batch_size=settings.SMS_MAX_BATCH_SIZE,
            sender_label=settings.SMS_SENDER_LABEL,
        )
        self.delivery_status = DeliveryStatusService(self.database, self.provider)
        self.sms = SMSService(settings, self.database, self.dispatcher, self.delivery_status)
        self.reconciler = StatusReconciler(
            self.database,
            self.delivery_status,
            interval_seconds=settings.DELIVERY_STATUS_INTERVAL_SECONDS,
            window=timedelta(minutes=settings.DELIVERY_STATUS_WINDOW_MINUTES),
        )

    def start(self) -> None:
        if self.settings.DB_AUTO_CREATE:
            self.database.create_schema()
        if self.settings.DELIVERY_STATUS_ENABLED:
            logger.info(
                "Starting delivery status checks every %ss (window %s min)",
                self.settings.DELIVERY_STATUS_INTERVAL_SECONDS,
                self.settings.DELIVERY_STATUS_WINDOW_MINUTES,
            )
            self.reconciler.start()
        else:
            logger.info("Delivery status checks disabled")

    def shutdown(self) -> None:
        self.reconciler.stop()
        self.provider.close()
        if self.auth is not None:
            self.auth.close()
        self.database.dispose()
