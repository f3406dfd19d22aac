from datetime import datetime
from typing import Optional

from pydantic import Field

from .common import CamelModel, ResponseMessage


class Credentials(CamelModel):
    username: str = Field(min_length=3, max_length=64, pattern=r"^[A-Za-z0-9_.-]+$")
    password: str = Field(min_length=6, max_length=72)


class UserInfo(CamelModel):
    uuid: str
    username: str
    is_admin: bool = False
    api_key: Optional[str] = None
    created_at: Optional[datetime] = None


class UserResponse(ResponseMessage):
    user: UserInfo


class LoginResponse(UserResponse):
    token: str


class ApiKeyResponse(ResponseMessage):
    api_key: str
