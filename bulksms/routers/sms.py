import time

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session

from bulksms.core.dependencies import get_db, get_sender_identity, get_sms_service
from bulksms.schemas import PingResponse, SendLogRead, SendSMSResponse, SMSRequest
from bulksms.services import SendLedgerService, SMSService
from bulksms.services import exceptions as service_exceptions

router = APIRouter(tags=["sms"])


@router.post("/sendsms", response_model=SendSMSResponse)
def send_sms(
    payload: SMSRequest,
    identity: str = Depends(get_sender_identity),
    service: SMSService = Depends(get_sms_service),
) -> SendSMSResponse:
    try:
        outcome = service.send(
            message=payload.message,
            sender_identity=identity,
            raw_destinations=payload.msisdns,
        )
    except service_exceptions.ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_406_NOT_ACCEPTABLE, detail=str(exc)) from exc
    except service_exceptions.LedgerError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc
    return SendSMSResponse(
        ref_number=outcome.reference,
        valid_numbers=outcome.valid_count,
        invalid_numbers=outcome.invalid_count,
        send_success=outcome.success,
        status_description=outcome.description,
        messages_sent=outcome.messages_sent,
        send_log_ids=outcome.send_log_ids,
    )


@router.get("/messagestatus/{msisdn}", response_class=PlainTextResponse)
def message_status(
    msisdn: str,
    identity: str = Depends(get_sender_identity),
    service: SMSService = Depends(get_sms_service),
) -> str:
    try:
        return service.query_status(msisdn)
    except service_exceptions.NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except service_exceptions.ProviderError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    except service_exceptions.LedgerError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc


@router.post("/normalize", response_model=list[str])
def normalize(
    payload: SMSRequest,
    identity: str = Depends(get_sender_identity),
    service: SMSService = Depends(get_sms_service),
) -> list[str]:
    return service.normalize(payload.msisdns)


@router.get("/sendlogs/{send_log_id}", response_model=SendLogRead)
def get_send_log(
    send_log_id: int,
    identity: str = Depends(get_sender_identity),
    db: Session = Depends(get_db),
) -> SendLogRead:
    try:
        send_log = SendLedgerService(db).get_send_log(send_log_id)
    except service_exceptions.NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return SendLogRead.model_validate(send_log)


@router.get("/ping", response_model=PingResponse)
def ping() -> PingResponse:
    return PingResponse(Timestamp=int(time.time()))
