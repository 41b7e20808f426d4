from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic_core import PydanticCustomError

from community.core.validation import email_address
from community.modules.user_management.schemas.user import User

class Credentials(BaseModel):
    """Sign-up / sign-in form"""
    model_config = ConfigDict(validate_default=True)

    email: str = ""
    password: str = ""

    @field_validator("email", mode="before")
    @classmethod
    def check_email(cls, v: Any) -> str:
        return email_address(v).lower()

    @field_validator("password", mode="before")
    @classmethod
    def check_password(cls, v: Any) -> str:
        password = "" if v is None else str(v)
        if len(password) < 6:
            raise PydanticCustomError("too_short", "Password must be at least 6 characters")
        if len(password) > 100:
            raise PydanticCustomError("too_long", "Password must be at most 100 characters")
        return password

class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"

class SessionInfo(BaseModel):
    """Current session as seen by the client; user is null when signed out"""
    user: Optional[User] = None
    is_admin: bool = False
    identity: dict

class AdminCodeRequest(BaseModel):
    admin_code: str

class AdminCodeResult(BaseModel):
    granted: bool
