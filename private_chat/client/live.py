"""Live socket connection used by the console client."""
import threading
from typing import Any, Callable, Dict, Optional, Set
from urllib.parse import urlencode

from websockets.exceptions import ConnectionClosed
from websockets.sync.client import connect

from ..shared import events
from ..shared.dto import MessageDTO
from ..shared.events import decode_frame, encode_frame

EventCallback = Callable[[str, Dict[str, Any]], None]


class LiveConnection:
    """Keeps presence and unread counters in sync with server events."""

    def __init__(
        self,
        ws_url: str,
        username: str,
        token: str,
        avatar: Optional[str] = None,
        on_event: Optional[EventCallback] = None,
    ):
        self.ws_url = ws_url
        self.username = username
        self.token = token
        self.avatar = avatar
        self.on_event = on_event
        self.online: Set[str] = set()
        self.unread: Dict[str, int] = {}
        self.active_peer: Optional[str] = None
        self.profiles_stale = False
        self._ws = None
        self._reader: Optional[threading.Thread] = None

    def open(self) -> None:
        self._ws = connect(f"{self.ws_url}?{urlencode({'token': self.token})}")
        self._send(events.JOIN, {"username": self.username, "avatar": self.avatar})
        self._reader = threading.Thread(target=self._read_loop, daemon=True)
        self._reader.start()

    def close(self) -> None:
        if self._ws is not None:
            self._ws.close()
            self._ws = None

    def _send(self, event: str, payload: Dict[str, Any]) -> None:
        if self._ws is None:
            raise RuntimeError("Live connection is not open")
        self._ws.send(encode_frame(event, payload))

    def send_message(self, to: str, text: str, attachment: str = "") -> None:
        self._send(events.PRIVATE_MESSAGE, {"from": self.username, "to": to, "message": text, "attachment": attachment})

    def open_chat(self, peer: Optional[str]) -> None:
        self.active_peer = peer
        if peer is not None:
            self.unread[peer] = 0

    def _read_loop(self) -> None:
        ws = self._ws
        try:
            for raw in ws:
                try:
                    event, payload = decode_frame(raw)
                except ValueError:
                    continue
                self.apply(event, payload)
        except ConnectionClosed:
            pass

    def apply(self, event: str, payload: Dict[str, Any]) -> None:
        if event == events.ONLINE_USERS:
            self.online = set(payload.get("usernames", []))
        elif event == events.PROFILE_UPDATED:
            self.profiles_stale = True
        elif event == events.PRIVATE_MESSAGE:
            message = MessageDTO.from_json(payload)
            if message.sender != self.username and message.sender != self.active_peer:
                self.unread[message.sender] = self.unread.get(message.sender, 0) + 1
        if self.on_event:
            self.on_event(event, payload)
