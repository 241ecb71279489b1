from __future__ import annotations

from typing import Callable

from bulksms.core.config import Settings

from .base import BaseSMSProvider
from .clickatell_provider import ClickatellSMSProvider
from .mock_provider import MockSMSProvider

ProviderFactory = Callable[[Settings], BaseSMSProvider]


def _build_clickatell(settings: Settings) -> BaseSMSProvider:
    return ClickatellSMSProvider(
        token=settings.SMS_PROVIDER_TOKEN,
        base_url=settings.SMS_PROVIDER_BASE_URL,
        timeout=settings.SMS_PROVIDER_TIMEOUT_SECONDS,
    )


def _build_mock(settings: Settings) -> BaseSMSProvider:
    return MockSMSProvider(
        seed=settings.MOCK_PROVIDER_SEED,
        status_delay_seconds=settings.MOCK_PROVIDER_STATUS_DELAY_SECONDS,
    )


PROVIDER_FACTORIES: dict[str, ProviderFactory] = {
    "clickatell": _build_clickatell,
    "mock": _build_mock,
    "mockprovider": _build_mock,
}


def build_provider(settings: Settings) -> BaseSMSProvider:
    """Resolve the configured provider once, at startup."""

    key = settings.SMS_PROVIDER_NAME.strip().lower()
    factory = PROVIDER_FACTORIES.get(key)
    if factory is None:
        known = ", ".join(sorted(PROVIDER_FACTORIES))
        raise ValueError(f"Unknown SMS provider {settings.SMS_PROVIDER_NAME!r}; expected one of: {known}")
    return factory(settings)
