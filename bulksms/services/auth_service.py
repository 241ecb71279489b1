from __future__ import annotations

import logging
from typing import Mapping

import httpx

from . import exceptions

logger = logging.getLogger("bulksms.auth")

FORWARDED_HEADERS = ("authorization", "cookie")


class AuthService:
    """Checks a caller against the external identity service and returns its identity."""

    def __init__(self, *, service_url: str, permission: str, timeout: float = 5.0):
        self.permission = permission
        self._client = httpx.Client(base_url=service_url, timeout=timeout)

    def verify(self, headers: Mapping[str, str]) -> str:
        forwarded = {name: headers[name] for name in FORWARDED_HEADERS if headers.get(name)}
        try:
            response = self._client.get("", params={"permission": self.permission}, headers=forwarded)
        except httpx.HTTPError as exc:
            logger.warning("Auth service request failed: %s", exc)
            raise exceptions.AuthenticationError("Authentication service unavailable") from exc

        if response.status_code != httpx.codes.OK:
            logger.info("%s: User unauthorized", response.status_code)
            raise exceptions.AuthenticationError("User unauthorized")

        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {}
        return str(payload.get("identity") or payload.get("Identity") or "")

    def close(self) -> None:
        self._client.close()
