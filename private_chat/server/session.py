"""
Per-connection session state machine.

A session starts CONNECTING when its transport opens, becomes IDENTIFIED
once a join event binds a username, and ends CLOSED when the transport
goes away. The username comes from the login token the transport was
opened with; a join naming anyone else is refused.

Transport events are queued in an inbox and handled one at a time by
``run``; outbound events are queued in an outbox drained by a writer
task, so pushing to a session never waits on its network.
"""
import asyncio
import enum
from typing import Any, Dict, Optional, Protocol

from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool

from ..shared import events
from .config import DEFAULT_AVATAR
from .errors import ChatError, ProtocolError, SessionClosed
from .logging_config import configure_logging
from .schemas import JoinEvent, PrivateMessageIn

logger = configure_logging()


class Transport(Protocol):
    async def send(self, event: str, payload: Dict[str, Any]) -> None: ...

    async def close(self) -> None: ...


class SessionState(enum.Enum):
    CONNECTING = "connecting"
    IDENTIFIED = "identified"
    CLOSED = "closed"


class ConnectionSession:
    def __init__(self, session_id: str, transport: Transport, hub, authenticated_as: Optional[str] = None):
        self.session_id = session_id
        self.authenticated_as = authenticated_as
        self.transport = transport
        self.hub = hub
        self.state = SessionState.CONNECTING
        self.username: Optional[str] = None
        self.avatar: Optional[str] = None
        self._inbox: asyncio.Queue = asyncio.Queue()
        self._outbox: asyncio.Queue = asyncio.Queue()
        self._writer: Optional[asyncio.Task] = None

    @property
    def is_open(self) -> bool:
        return self.state is not SessionState.CLOSED

    def start(self) -> None:
        self._writer = asyncio.create_task(self._write_loop())

    # Outbound

    def push(self, event: str, payload: Dict[str, Any]) -> None:
        if not self.is_open:
            raise SessionClosed(self.session_id)
        self._outbox.put_nowait((event, payload))

    async def drain(self) -> None:
        """Wait until every queued outbound event has been handed to the transport."""
        await self._outbox.join()

    async def _write_loop(self) -> None:
        while self.is_open:
            event, payload = await self._outbox.get()
            try:
                await self.transport.send(event, payload)
            except Exception as exc:  # noqa: BLE001
                logger.warning("TRANSPORT_SEND_FAIL session=%s event=%s error=%s", self.session_id, event, exc)
                await self.close()
            finally:
                self._outbox.task_done()

    def _discard_outbox(self) -> None:
        while not self._outbox.empty():
            self._outbox.get_nowait()
            self._outbox.task_done()

    # Inbound

    def submit(self, event: str, payload: Dict[str, Any]) -> None:
        """Queue a transport event for ``run``; ignored once closed."""
        if self.is_open:
            self._inbox.put_nowait((event, payload))

    async def run(self) -> None:
        while self.is_open:
            event, payload = await self._inbox.get()
            if not self.is_open:
                break
            try:
                await self.handle(event, payload)
            except Exception:  # noqa: BLE001
                logger.exception("EVENT_FAILED session=%s event=%s", self.session_id, event)
                self.report_error("Internal server error")

    async def handle(self, event: str, payload: Dict[str, Any]) -> None:
        """Apply one event, reporting client-caused failures as error events."""
        if not self.is_open:
            return
        try:
            if event == events.JOIN:
                await self.join(JoinEvent.model_validate(payload))
            elif event == events.PRIVATE_MESSAGE:
                await self.send(PrivateMessageIn.model_validate(payload))
            else:
                raise ProtocolError(f"Unknown event '{event}'")
        except ValidationError as exc:
            self.report_error(f"Malformed '{event}' event: {exc.errors()[0]['msg']}")
        except ChatError as exc:
            logger.info("EVENT_REJECTED session=%s event=%s reason=%s", self.session_id, event, exc)
            self.report_error(str(exc) or type(exc).__name__)

    def report_error(self, message: str) -> None:
        try:
            self.push(events.ERROR, {"message": message})
        except SessionClosed:
            pass

    # Transitions

    async def join(self, join: JoinEvent) -> None:
        if self.state is not SessionState.CONNECTING:
            raise ProtocolError("Session has already joined")
        if self.authenticated_as is None:
            raise ProtocolError("Join requires an authenticated connection")
        username = (join.username or self.authenticated_as).strip()
        if username != self.authenticated_as:
            raise ProtocolError("Join username does not match the authenticated user")
        avatar = join.avatar or await run_in_threadpool(self.hub.avatar_for, username) or DEFAULT_AVATAR
        if not self.is_open:
            # Transport went away while the avatar was being resolved.
            return
        self.username = username
        self.avatar = avatar
        self.state = SessionState.IDENTIFIED
        previous = self.hub.presence.register(username, self)
        logger.info("SESSION_JOINED session=%s username=%s", self.session_id, username)
        if previous is not None:
            logger.warning(
                "SESSION_SUPERSEDED username=%s old_session=%s new_session=%s",
                username,
                previous.session_id,
                self.session_id,
            )
            await previous.close()
        self.hub.fanout.broadcast_presence()
        self.hub.fanout.broadcast_join_leave(username, joined=True)

    async def send(self, message: PrivateMessageIn) -> None:
        if self.state is not SessionState.IDENTIFIED:
            raise ProtocolError("Join before sending messages")
        await self.hub.router.route(self, message)

    async def close(self) -> None:
        """Move to CLOSED from any state and release the transport."""
        if not self.is_open:
            return
        was_identified = self.state is SessionState.IDENTIFIED
        self.state = SessionState.CLOSED
        self.hub.forget(self)
        owned_entry = was_identified and self.hub.presence.unregister(self.username, self)
        # Wake run() so it can observe the closed state.
        self._inbox.put_nowait((None, {}))
        if self._writer is not None and self._writer is not asyncio.current_task():
            self._writer.cancel()
        self._discard_outbox()
        try:
            await self.transport.close()
        except Exception as exc:  # noqa: BLE001
            logger.debug("TRANSPORT_CLOSE_FAIL session=%s error=%s", self.session_id, exc)
        if was_identified:
            self.hub.fanout.broadcast_presence()
            if owned_entry:
                self.hub.fanout.broadcast_join_leave(self.username, joined=False)
        logger.info("SESSION_CLOSED session=%s username=%s", self.session_id, self.username)
