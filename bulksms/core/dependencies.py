from typing import Generator

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from bulksms.core.db import get_db_session
from bulksms.gateway import Gateway
from bulksms.services import SMSService
from bulksms.services import exceptions as service_exceptions


def get_gateway(request: Request) -> Gateway:
    return request.app.state.gateway


def get_db(gateway: Gateway = Depends(get_gateway)) -> Generator[Session, None, None]:
    yield from get_db_session(gateway.database)


def get_sms_service(gateway: Gateway = Depends(get_gateway)) -> SMSService:
    return gateway.sms


def get_sender_identity(request: Request, gateway: Gateway = Depends(get_gateway)) -> str:
    """Identity of the caller as vouched for by the auth service; empty when auth is off."""

    if gateway.auth is None:
        return ""
    try:
        return gateway.auth.verify(request.headers)
    except service_exceptions.AuthenticationError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User unauthorized") from exc
