from __future__ import annotations

import logging
from typing import Any

import httpx

from bulksms.models import DeliveryStatus

from ..exceptions import ProviderError
from .base import BaseSMSProvider, RecipientResult, SendResult, StatusResult

logger = logging.getLogger("bulksms.providers.clickatell")

DELIVERED_CODES = {"004"}
FAILED_CODES = {"005", "006", "007", "009", "010", "012"}


def map_status_code(code: str | None) -> DeliveryStatus:
    if code in DELIVERED_CODES:
        return DeliveryStatus.DELIVERED
    if code in FAILED_CODES:
        return DeliveryStatus.FAILED
    # No final status available yet.
    return DeliveryStatus.SENT


def _format_error(error: dict[str, Any] | None) -> str | None:
    if not error or not error.get("description"):
        return None
    code = str(error.get("code") or "").strip()
    description = str(error["description"]).strip()
    return f"{code}: {description}" if code else description


class ClickatellSMSProvider(BaseSMSProvider):
    """Clickatell REST (v1) implementation of the SMS provider interface."""

    name = "clickatell"
    USER_AGENT = "bulksms-gateway"

    def __init__(self, *, token: str, base_url: str = "https://api.clickatell.com/", timeout: float = 10.0):
        self._token = token
        self._client = httpx.Client(base_url=base_url, timeout=timeout)

    def _headers(self) -> dict[str, str]:
        return {
            "User-Agent": self.USER_AGENT,
            "Authorization": f"Bearer {self._token}",
            "Content-Type": "application/json",
            "X-Version": "1",
            "Accept": "application/json",
        }

    def _request(self, method: str, path: str, *, json: dict[str, Any] | None = None) -> dict[str, Any]:
        logger.debug("Clickatell request %s %s", method, path)
        try:
            response = self._client.request(method, path, json=json, headers=self._headers())
        except httpx.HTTPError as exc:
            logger.warning("Clickatell request %s %s failed: %s", method, path, exc)
            raise ProviderError(f"Clickatell request failed: {exc}") from exc

        try:
            payload = response.json() if response.content else {}
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            logger.error("Clickatell request %s %s returned a non-object body: %s", method, path, response.text)
            raise ProviderError(f"Clickatell returned an unexpected response body (HTTP {response.status_code})")
        if response.is_error and not _format_error(payload.get("error")):
            logger.error(
                "Clickatell request %s %s failed (%s): %s",
                method,
                path,
                response.status_code,
                response.text,
            )
            raise ProviderError(f"Clickatell returned HTTP {response.status_code}")
        return payload

    def send_batch(
        self,
        *,
        message: str,
        destinations: list[str],
        sender_label: str,
        client_reference: str,
    ) -> SendResult:
        body: dict[str, Any] = {"to": destinations, "text": message}
        if sender_label:
            body["from"] = sender_label
        if client_reference:
            body["clientMessageID"] = client_reference

        try:
            payload = self._request("POST", "rest/message", json=body)
        except ProviderError as exc:
            return SendResult(error=str(exc))

        recipients: list[RecipientResult] = []
        for item in (payload.get("data") or {}).get("message") or []:
            error = item.get("error") or {}
            recipients.append(
                RecipientResult(
                    to=str(item.get("to") or ""),
                    provider_message_id=item.get("apiMessageId") or None,
                    error_code=str(error.get("code") or ""),
                    error_description=str(error.get("description") or ""),
                )
            )

        batch_error = _format_error(payload.get("error"))
        if batch_error is None and recipients and not any(r.accepted for r in recipients):
            first = recipients[0]
            batch_error = f"{first.error_code}: {first.error_description}"
        return SendResult(recipients=recipients, error=batch_error)

    def get_status(self, provider_message_id: str) -> StatusResult:
        payload = self._request("GET", f"rest/message/{provider_message_id}")
        error = _format_error(payload.get("error"))
        if error:
            raise ProviderError(f"Clickatell status lookup failed: {error}")

        data = payload.get("data") or {}
        try:
            segments = int(float(data.get("charge") or 0))
        except (TypeError, ValueError):
            segments = 0
        return StatusResult(
            provider_message_id=data.get("apiMessageId") or provider_message_id,
            status=map_status_code(data.get("messageStatus")),
            description=str(data.get("description") or ""),
            segments=segments,
        )

    def close(self) -> None:
        self._client.close()
