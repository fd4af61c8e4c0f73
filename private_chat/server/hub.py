"""Wiring of the real-time core: sessions, presence, fan-out and routing."""
import threading
import uuid
from typing import Dict, List, Optional

from .fanout import NotificationFanout
from .identity import IdentityStore
from .logging_config import configure_logging
from .message_log import MessageLog
from .presence import PresenceTable
from .router import DeliveryRouter
from .session import ConnectionSession, Transport

logger = configure_logging()


class ChatHub:
    """Process-wide owner of every open connection session."""

    def __init__(self, message_log: MessageLog, identity: Optional[IdentityStore] = None):
        self.message_log = message_log
        self.identity = identity
        self.presence = PresenceTable()
        self.router = DeliveryRouter(message_log, self.presence)
        self.fanout = NotificationFanout(self.presence, self.open_sessions)
        self._sessions: Dict[str, ConnectionSession] = {}
        self._lock = threading.Lock()

    def open_session(self, transport: Transport, authenticated_as: Optional[str] = None) -> ConnectionSession:
        """Open a session for a transport authenticated as the given user."""
        session = ConnectionSession(uuid.uuid4().hex, transport, self, authenticated_as)
        with self._lock:
            self._sessions[session.session_id] = session
        session.start()
        logger.info("SESSION_OPENED session=%s user=%s", session.session_id, authenticated_as)
        return session

    def forget(self, session: ConnectionSession) -> None:
        with self._lock:
            self._sessions.pop(session.session_id, None)

    def open_sessions(self) -> List[ConnectionSession]:
        with self._lock:
            return list(self._sessions.values())

    def avatar_for(self, username: str) -> Optional[str]:
        if self.identity is None:
            return None
        user = self.identity.find_by_username(username)
        return user.avatar if user else None
