"""Shared data transfer object helpers."""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict


@dataclass
class UserDTO:
    username: str
    avatar: str
    display_name: str

    @property
    def label(self) -> str:
        return self.display_name or self.username

    @staticmethod
    def from_json(data: Dict[str, Any]) -> "UserDTO":
        return UserDTO(
            username=data["username"],
            avatar=data.get("avatar", ""),
            display_name=data.get("display_name", ""),
        )


@dataclass
class MessageDTO:
    sender: str
    recipient: str
    body: str
    attachment: str
    created_at: datetime

    @staticmethod
    def from_json(data: Dict[str, Any]) -> "MessageDTO":
        """Build from a history row or from a live ``privateMessage`` event."""
        return MessageDTO(
            sender=data.get("sender", data.get("from", "")),
            recipient=data.get("recipient", data.get("to", "")),
            body=data.get("body", data.get("message", "")) or "",
            attachment=data.get("attachment") or "",
            created_at=datetime.fromisoformat(data.get("created_at", data.get("timestamp"))),
        )
