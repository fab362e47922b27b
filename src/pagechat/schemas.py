from typing import Literal
from uuid import uuid4

from pydantic import AnyUrl, BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

_url_adapter = TypeAdapter(AnyUrl)


def is_valid_url(value: str) -> bool:
    """True when ``value`` parses as an absolute URL of any scheme."""
    try:
        _url_adapter.validate_python(value)
    except ValidationError:
        return False
    return True


def is_http_url(value: str | None) -> bool:
    return bool(value) and is_valid_url(value) and value.startswith("http")


class ChatMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid4().hex)
    role: Literal["user", "assistant"] = Field(..., examples=["user", "assistant"])
    content: str


class AnswerRequest(BaseModel):
    url: str
    question: str = Field(..., min_length=1)

    @field_validator("url")
    @classmethod
    def _check_url(cls, v: str) -> str:
        # Keep the caller's spelling; AnyUrl would normalise it
        if not is_valid_url(v):
            raise ValueError("Invalid url")
        return v


class AnswerResult(BaseModel):
    answer: str


class Notification(BaseModel):
    title: str
    description: str
    variant: Literal["default", "destructive"] = "default"


class SessionCreate(BaseModel):
    url: str | None = None


class MessageCreate(BaseModel):
    content: str


class SessionSnapshot(BaseModel):
    id: str
    state: str
    messages: list[ChatMessage]
    input: str
    is_loading: bool
    error: str | None = None
    notifications: list[Notification] = []
