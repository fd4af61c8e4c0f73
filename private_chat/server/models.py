"""Database models for the private chat server."""
from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String, Text

from .config import DEFAULT_AVATAR
from .database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    avatar = Column(String, nullable=False, default=DEFAULT_AVATAR)
    display_name = Column(String, nullable=False, default="")
    failed_login_attempts = Column(Integer, default=0)
    lock_until = Column(DateTime, nullable=True)


class Message(Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, index=True)
    sender = Column(String, index=True, nullable=False)
    recipient = Column(String, index=True, nullable=False)
    body = Column(Text, nullable=False, default="")
    attachment = Column(String, nullable=False, default="")
    created_at = Column(DateTime, index=True, nullable=False, default=datetime.utcnow)
