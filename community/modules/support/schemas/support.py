from typing import Any, Literal
from datetime import datetime

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic_core import PydanticCustomError

from community.core.validation import bounded_text, email_address

NAME_MAX_LENGTH = 100
EMAIL_MAX_LENGTH = 255
MESSAGE_MAX_LENGTH = 1000

STATUSES = ("new", "read", "resolved")

class SupportForm(BaseModel):
    """Contact form submitted by any visitor"""
    model_config = ConfigDict(validate_default=True)

    name: str = ""
    email: str = ""
    message: str = ""

    @field_validator("name", mode="before")
    @classmethod
    def check_name(cls, v: Any) -> str:
        return bounded_text(
            v, min_length=1, max_length=NAME_MAX_LENGTH,
            required="Name is required",
            too_long=f"Name must be at most {NAME_MAX_LENGTH} characters",
        )

    @field_validator("email", mode="before")
    @classmethod
    def check_email(cls, v: Any) -> str:
        return email_address(v, max_length=EMAIL_MAX_LENGTH)

    @field_validator("message", mode="before")
    @classmethod
    def check_message(cls, v: Any) -> str:
        return bounded_text(
            v, min_length=1, max_length=MESSAGE_MAX_LENGTH,
            required="Message is required",
            too_long=f"Message must be at most {MESSAGE_MAX_LENGTH} characters",
        )

class SupportStatusUpdate(BaseModel):
    status: str

    @field_validator("status", mode="before")
    @classmethod
    def check_status(cls, v: Any) -> str:
        if v not in STATUSES:
            raise PydanticCustomError("status", "Status must be one of: new, read, resolved")
        return v

class SupportMessage(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    message: str
    status: Literal["new", "read", "resolved"]
    created_at: datetime
