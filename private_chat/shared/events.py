"""Socket event names and JSON frame helpers shared by server and client."""
import json
from typing import Any, Dict, Tuple

JOIN = "join"
PRIVATE_MESSAGE = "privateMessage"
ONLINE_USERS = "onlineUsers"
PROFILE_UPDATED = "profileUpdated"
NOTIFICATION = "notification"
ERROR = "error"


def encode_frame(event: str, payload: Dict[str, Any]) -> str:
    return json.dumps({"event": event, "data": payload})


def decode_frame(raw: str) -> Tuple[str, Dict[str, Any]]:
    """Parse a frame, raising ValueError if it is not an event object."""
    frame = json.loads(raw)
    if not isinstance(frame, dict) or not isinstance(frame.get("event"), str):
        raise ValueError("Frame must be an object with an 'event' name")
    data = frame.get("data") or {}
    if not isinstance(data, dict):
        raise ValueError("Frame data must be an object")
    return frame["event"], data
