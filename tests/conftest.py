import itertools
import os
import sys
from pathlib import Path

import anyio
import httpx
import pytest

BASE_DIR = Path(__file__).resolve().parents[1]
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

os.environ.setdefault("DATABASE_URL", "sqlite:///" + str(BASE_DIR / "test.db"))
os.environ.setdefault("DELIVERY_STATUS_ENABLED", "false")
os.environ.setdefault("SMS_PROVIDER_NAME", "mock")

from bulksms.core.config import Settings, get_settings
from bulksms.gateway import Gateway
from bulksms.main import create_app
from bulksms.models import DeliveryStatus
from bulksms.services import exceptions as service_exceptions
from bulksms.services.sms_providers import BaseSMSProvider, RecipientResult, SendResult, StatusResult

get_settings.cache_clear()


class ScriptedProvider(BaseSMSProvider):
    """In-memory provider whose answers are set by the test."""

    name = "scripted"

    def __init__(self):
        self.sent_batches: list[list[str]] = []
        self.failing_calls: set[int] = set()
        self.rejected: set[str] = set()
        self.statuses: dict[str, DeliveryStatus] = {}
        self.status_errors: set[str] = set()
        self.status_calls: list[str] = []
        self._ids = itertools.count(1)

    def send_batch(self, *, message, destinations, sender_label, client_reference):
        call_index = len(self.sent_batches)
        self.sent_batches.append(list(destinations))
        if call_index in self.failing_calls:
            return SendResult(error="Connection refused")
        recipients = []
        for destination in destinations:
            if destination in self.rejected:
                recipients.append(
                    RecipientResult(to=destination, error_code="105", error_description="Invalid destination address")
                )
            else:
                recipients.append(
                    RecipientResult(
                        to=destination,
                        provider_message_id=f"msg-{next(self._ids)}",
                        error_code="0",
                        segments=1,
                    )
                )
        return SendResult(recipients=recipients)

    def get_status(self, provider_message_id):
        self.status_calls.append(provider_message_id)
        if provider_message_id in self.status_errors:
            raise service_exceptions.ProviderError("status lookup timed out")
        status = self.statuses.get(provider_message_id, DeliveryStatus.SENT)
        return StatusResult(
            provider_message_id=provider_message_id,
            status=status,
            description=status.value,
            segments=1,
        )


@pytest.fixture()
def settings(tmp_path):
    return Settings(
        DATABASE_URL="sqlite:///" + str(tmp_path / "ledger.db"),
        DELIVERY_STATUS_ENABLED=False,
        DELIVERY_STATUS_INTERVAL_SECONDS=0.05,
        SMS_MAX_BATCH_SIZE=600,
        SMS_COUNTRIES=["ZA"],
        SMS_PROVIDER_NAME="mock",
        MOCK_PROVIDER_SEED=7,
        AUTH_ENABLED=False,
        LOG_FILE_PATH=None,
    )


@pytest.fixture()
def provider():
    return ScriptedProvider()


@pytest.fixture()
def gateway(settings, provider):
    gateway = Gateway(settings, provider=provider)
    gateway.database.create_schema()
    yield gateway
    gateway.shutdown()


@pytest.fixture()
def db_session(gateway):
    session = gateway.database.session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(gateway):
    app = create_app(gateway=gateway)

    class _SyncASGIClient:
        def __init__(self, fastapi_app):
            self._client = httpx.AsyncClient(
                transport=httpx.ASGITransport(app=fastapi_app),
                base_url="http://testserver",
            )

        def request(self, method: str, url: str, **kwargs):
            async def _do_request():
                return await self._client.request(method, url, **kwargs)

            return anyio.run(_do_request)

        def get(self, url: str, **kwargs):
            return self.request("GET", url, **kwargs)

        def post(self, url: str, **kwargs):
            return self.request("POST", url, **kwargs)

        def close(self):
            async def _do_close():
                await self._client.aclose()

            anyio.run(_do_close)

        def __enter__(self):
            return self

        def __exit__(self, exc_type, exc, tb):
            self.close()

    with _SyncASGIClient(app) as test_client:
        yield test_client
