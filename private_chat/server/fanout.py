"""Broadcast of presence and profile events to every open session."""
from typing import Callable, Iterable

from ..shared import events
from .errors import SessionClosed
from .logging_config import configure_logging
from .presence import PresenceTable
from .schemas import OnlineUsersEvent

logger = configure_logging()


class NotificationFanout:
    def __init__(self, presence: PresenceTable, open_sessions: Callable[[], Iterable]):
        self.presence = presence
        self.open_sessions = open_sessions

    def _broadcast(self, event: str, payload: dict) -> int:
        delivered = 0
        for session in list(self.open_sessions()):
            try:
                session.push(event, payload)
                delivered += 1
            except SessionClosed:
                logger.info("BROADCAST_SKIPPED event=%s session=%s", event, session.session_id)
        return delivered

    def broadcast_presence(self) -> int:
        """Send the complete online list; clients replace their view with it."""
        event = OnlineUsersEvent(usernames=sorted(self.presence.list_online()))
        return self._broadcast(events.ONLINE_USERS, event.model_dump())

    def broadcast_profile_changed(self, username: str) -> int:
        return self._broadcast(events.PROFILE_UPDATED, {"username": username})

    def broadcast_join_leave(self, username: str, joined: bool) -> int:
        verb = "joined" if joined else "left"
        return self._broadcast(events.NOTIFICATION, {"message": f"{username} {verb} the chat"})
