import json

import httpx
import pytest

from bulksms.core.config import Settings
from bulksms.models import DeliveryStatus
from bulksms.services import exceptions as service_exceptions
from bulksms.services.sms_providers import ClickatellSMSProvider, MockSMSProvider, build_provider
from bulksms.services.sms_providers import mock_provider
from bulksms.services.sms_providers.clickatell_provider import map_status_code


def _clickatell(handler):
    provider = ClickatellSMSProvider(token="secret-token", base_url="https://api.clickatell.test/")
    provider._client = httpx.Client(  # type: ignore[attr-defined]
        base_url="https://api.clickatell.test/",
        transport=httpx.MockTransport(handler),
    )
    return provider


def test_mock_provider_accepts_every_destination():
    provider = MockSMSProvider(seed=1)

    result = provider.send_batch(
        message="hello",
        destinations=["27821234561", "27821234562"],
        sender_label="TEST",
        client_reference="ref-0",
    )

    assert result.error is None
    assert [r.to for r in result.recipients] == ["27821234561", "27821234562"]
    assert all(r.accepted and r.segments == 1 for r in result.recipients)
    assert len({r.provider_message_id for r in result.recipients}) == 2


def test_mock_provider_is_deterministic_for_a_seed():
    first = MockSMSProvider(seed=42)
    second = MockSMSProvider(seed=42)

    statuses_a = [first.get_status(f"id-{i}").status for i in range(50)]
    statuses_b = [second.get_status(f"id-{i}").status for i in range(50)]

    assert statuses_a == statuses_b
    assert set(statuses_a) <= {DeliveryStatus.SENT, DeliveryStatus.DELIVERED, DeliveryStatus.FAILED}
    assert DeliveryStatus.DELIVERED in statuses_a


@pytest.mark.parametrize(
    ("code", "expected"),
    [
        ("004", DeliveryStatus.DELIVERED),
        ("007", DeliveryStatus.FAILED),
        ("010", DeliveryStatus.FAILED),
        ("003", DeliveryStatus.SENT),
        (None, DeliveryStatus.SENT),
    ],
)
def test_clickatell_status_mapping(code, expected):
    assert map_status_code(code) is expected


def test_clickatell_send_parses_recipients_and_inline_errors():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["auth"] = request.headers["Authorization"]
        seen["version"] = request.headers["X-Version"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            202,
            json={
                "data": {
                    "message": [
                        {"to": "27821234561", "apiMessageId": "abc123", "accepted": True},
                        {
                            "to": "27821234562",
                            "apiMessageId": "",
                            "accepted": False,
                            "error": {"code": "105", "description": "Invalid Destination Address"},
                        },
                    ]
                }
            },
        )

    provider = _clickatell(handler)
    result = provider.send_batch(
        message="hello",
        destinations=["27821234561", "27821234562"],
        sender_label="TEST",
        client_reference="ref-1",
    )

    assert seen["path"] == "/rest/message"
    assert seen["auth"] == "Bearer secret-token"
    assert seen["version"] == "1"
    assert seen["body"] == {
        "to": ["27821234561", "27821234562"],
        "text": "hello",
        "from": "TEST",
        "clientMessageID": "ref-1",
    }
    assert result.error is None
    assert result.recipients[0].provider_message_id == "abc123"
    assert result.recipients[0].accepted
    assert not result.recipients[1].accepted
    assert result.recipients[1].error_code == "105"


def test_clickatell_all_rejected_becomes_batch_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "data": {
                    "message": [
                        {"to": "1", "error": {"code": "301", "description": "No Credit Left"}},
                        {"to": "2", "error": {"code": "301", "description": "No Credit Left"}},
                    ]
                }
            },
        )

    result = _clickatell(handler).send_batch(
        message="hello", destinations=["1", "2"], sender_label="", client_reference=""
    )

    assert result.error == "301: No Credit Left"
    assert len(result.recipients) == 2


def test_clickatell_transport_error_is_an_error_result():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    result = _clickatell(handler).send_batch(
        message="hello", destinations=["27821234561"], sender_label="", client_reference=""
    )

    assert result.recipients == []
    assert "connection refused" in result.error


def test_clickatell_batch_level_error_response():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"error": {"code": "001", "description": "Authentication failed"}})

    result = _clickatell(handler).send_batch(
        message="hello", destinations=["27821234561"], sender_label="", client_reference=""
    )

    assert result.error == "001: Authentication failed"


def test_clickatell_get_status():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/rest/message/abc123"
        return httpx.Response(
            200,
            json={
                "data": {
                    "charge": 2,
                    "messageStatus": "004",
                    "description": "Received by recipient",
                    "apiMessageId": "abc123",
                }
            },
        )

    status = _clickatell(handler).get_status("abc123")

    assert status.status is DeliveryStatus.DELIVERED
    assert status.segments == 2
    assert status.description == "Received by recipient"


def test_clickatell_get_status_failure_raises_provider_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="Service Unavailable")

    with pytest.raises(service_exceptions.ProviderError):
        _clickatell(handler).get_status("abc123")


def test_registry_resolves_configured_provider(tmp_path):
    base = {"DATABASE_URL": "sqlite:///" + str(tmp_path / "x.db")}

    assert isinstance(build_provider(Settings(**base, SMS_PROVIDER_NAME="MockProvider")), MockSMSProvider)
    clickatell = build_provider(Settings(**base, SMS_PROVIDER_NAME="Clickatell", SMS_PROVIDER_TOKEN="t"))
    assert isinstance(clickatell, ClickatellSMSProvider)
    clickatell.close()

    with pytest.raises(ValueError):
        build_provider(Settings(**base, SMS_PROVIDER_NAME="carrier-pigeon"))


def test_clickatell_non_object_body_is_a_provider_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=["unexpected"])

    provider = _clickatell(handler)

    result = provider.send_batch(message="hello", destinations=["27821234561"], sender_label="", client_reference="")
    assert result.recipients == []
    assert "unexpected response body" in result.error

    with pytest.raises(service_exceptions.ProviderError):
        provider.get_status("abc123")


def test_registry_passes_mock_status_delay(tmp_path, monkeypatch):
    sleeps = []
    monkeypatch.setattr(mock_provider.time, "sleep", sleeps.append)
    settings = Settings(
        DATABASE_URL="sqlite:///" + str(tmp_path / "x.db"),
        SMS_PROVIDER_NAME="mock",
        MOCK_PROVIDER_SEED=3,
        MOCK_PROVIDER_STATUS_DELAY_SECONDS=0.25,
    )

    build_provider(settings).get_status("id-1")

    assert sleeps == [0.25]
