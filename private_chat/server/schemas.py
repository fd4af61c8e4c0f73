"""Pydantic schemas for request bodies, responses and socket events."""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class RegisterRequest(BaseModel):
    username: str
    password: str


class LoginRequest(BaseModel):
    username: str
    password: str


class UserOut(BaseModel):
    username: str
    avatar: str
    display_name: str

    model_config = ConfigDict(from_attributes=True)


class LoginResponse(BaseModel):
    token: str
    user: UserOut


class MessageOut(BaseModel):
    id: int
    sender: str
    recipient: str
    body: str
    attachment: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AttachmentOut(BaseModel):
    file_url: str = Field(..., description="Path the uploaded file is served from")


class JoinEvent(BaseModel):
    username: Optional[str] = None
    avatar: Optional[str] = None


class PrivateMessageIn(BaseModel):
    to: str = ""
    message: Optional[str] = ""
    attachment: Optional[str] = ""
    sender: Optional[str] = Field(default=None, alias="from")

    model_config = ConfigDict(populate_by_name=True)


class PrivateMessageOut(BaseModel):
    sender: str = Field(..., serialization_alias="from")
    to: str
    message: str
    attachment: str
    timestamp: datetime


class OnlineUsersEvent(BaseModel):
    usernames: List[str]
