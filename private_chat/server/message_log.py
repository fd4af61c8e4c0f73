"""
Durable, append-only log of private messages.

The log is the source of truth for conversation history: every routed
message is appended here before any live delivery is attempted, so a
history query always returns a superset of what was pushed live.
"""
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import func, or_, and_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from .errors import PersistenceFailure
from .logging_config import configure_logging
from .models import Message

logger = configure_logging()


@dataclass(frozen=True)
class OutgoingMessage:
    sender: str
    recipient: str
    body: str
    attachment: str = ""


@dataclass(frozen=True)
class StoredMessage:
    id: int
    sender: str
    recipient: str
    body: str
    attachment: str
    created_at: datetime


class MessageLog(ABC):
    """Abstract storage for private messages."""

    @abstractmethod
    def append(self, message: OutgoingMessage) -> StoredMessage:
        """Store the message and return it with its persistence timestamp."""

    @abstractmethod
    def query_conversation(self, user_a: str, user_b: str) -> List[StoredMessage]:
        """Return messages exchanged between two users, oldest first."""


def _to_stored(row: Message) -> StoredMessage:
    return StoredMessage(
        id=row.id,
        sender=row.sender,
        recipient=row.recipient,
        body=row.body,
        attachment=row.attachment,
        created_at=row.created_at,
    )


class SqlMessageLog(MessageLog):
    """SQLAlchemy-backed message log."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory
        self._append_lock = threading.Lock()
        self._last_timestamp: Optional[datetime] = None

    def _next_timestamp(self, db) -> datetime:
        if self._last_timestamp is None:
            self._last_timestamp = db.query(func.max(Message.created_at)).scalar()
        now = datetime.utcnow()
        if self._last_timestamp is not None and now <= self._last_timestamp:
            now = self._last_timestamp + timedelta(microseconds=1)
        return now

    def append(self, message: OutgoingMessage) -> StoredMessage:
        with self._append_lock:
            db = self.session_factory()
            try:
                created_at = self._next_timestamp(db)
                row = Message(
                    sender=message.sender,
                    recipient=message.recipient,
                    body=message.body,
                    attachment=message.attachment,
                    created_at=created_at,
                )
                db.add(row)
                db.commit()
                db.refresh(row)
                self._last_timestamp = created_at
                return _to_stored(row)
            except SQLAlchemyError as exc:
                db.rollback()
                logger.error(
                    "PERSISTENCE_FAILURE sender=%s recipient=%s error=%s",
                    message.sender,
                    message.recipient,
                    exc,
                )
                raise PersistenceFailure("Message could not be stored") from exc
            finally:
                db.close()

    def query_conversation(self, user_a: str, user_b: str) -> List[StoredMessage]:
        db = self.session_factory()
        try:
            rows = (
                db.query(Message)
                .filter(
                    or_(
                        and_(Message.sender == user_a, Message.recipient == user_b),
                        and_(Message.sender == user_b, Message.recipient == user_a),
                    )
                )
                .order_by(Message.created_at, Message.id)
                .all()
            )
            return [_to_stored(row) for row in rows]
        finally:
            db.close()
