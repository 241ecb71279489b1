from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class SMSRequest(BaseModel):
    msisdns: list[str] = Field(default_factory=list)
    message: str = ""


class SendSMSResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ref_number: str = Field(alias="refNumber")
    valid_numbers: int = Field(alias="validNumbers")
    invalid_numbers: int = Field(alias="invalidNumbers")
    send_success: bool = Field(alias="sendSuccess")
    status_description: str = Field(default="", alias="statusDescription")
    messages_sent: int = Field(default=0, alias="messagesSent")
    send_log_ids: list[int] = Field(default_factory=list, alias="sendLogIds")


class SendLogRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    sent_at: datetime
    originator: str
    type: str
    quantity: int
    delivered: int
    failed: int
    sent: int
    message: str
    status: str
    description: str


class PingResponse(BaseModel):
    Timestamp: int
