from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class SendMailPayload(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    from_: str = Field(alias="from")
    to: list[str]
    subject: str
    text: str
    encoding: str


class SendMailRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    mail: SendMailPayload


class Status(str, Enum):
    OK = "ok"
    FAIL = "fail"
    ERROR = "error"


class MailResponse(BaseModel):
    status: Status
    message: str
