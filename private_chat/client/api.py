"""HTTP API client for interacting with the private chat server."""
from pathlib import Path
from typing import Any, Dict, List, Optional

import requests

from .storage import get_token


class APIClient:
    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip("/")

    @property
    def ws_url(self) -> str:
        if self.base_url.startswith("https://"):
            return "wss://" + self.base_url[len("https://"):] + "/ws"
        return "ws://" + self.base_url.split("://", 1)[-1] + "/ws"

    def _headers(self) -> Dict[str, str]:
        token = get_token()
        headers: Dict[str, str] = {}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def register(self, username: str, password: str) -> Dict[str, Any]:
        resp = requests.post(
            f"{self.base_url}/auth/register", json={"username": username, "password": password}, timeout=10
        )
        resp.raise_for_status()
        return resp.json()

    def login(self, username: str, password: str) -> Dict[str, Any]:
        resp = requests.post(
            f"{self.base_url}/auth/login", json={"username": username, "password": password}, timeout=10
        )
        resp.raise_for_status()
        return resp.json()

    def list_users(self) -> List[Dict[str, Any]]:
        resp = requests.get(f"{self.base_url}/users", headers=self._headers(), timeout=10)
        resp.raise_for_status()
        return resp.json()

    def get_messages(self, peer: str) -> List[Dict[str, Any]]:
        resp = requests.get(
            f"{self.base_url}/messages/private", params={"peer": peer}, headers=self._headers(), timeout=10
        )
        resp.raise_for_status()
        return resp.json()

    def upload_attachment(self, path: Path) -> str:
        with open(path, "rb") as f:
            resp = requests.post(
                f"{self.base_url}/attachments",
                files={"attachment": (path.name, f, _guess_image_type(path))},
                headers=self._headers(),
                timeout=30,
            )
        resp.raise_for_status()
        return resp.json()["file_url"]

    def update_profile(self, display_name: str, avatar: Optional[Path] = None) -> Dict[str, Any]:
        data = {"display_name": display_name}
        if avatar is None:
            resp = requests.post(f"{self.base_url}/users/profile", data=data, headers=self._headers(), timeout=10)
        else:
            with open(avatar, "rb") as f:
                resp = requests.post(
                    f"{self.base_url}/users/profile",
                    data=data,
                    files={"avatar": (avatar.name, f, _guess_image_type(avatar))},
                    headers=self._headers(),
                    timeout=30,
                )
        resp.raise_for_status()
        return resp.json()


def _guess_image_type(path: Path) -> str:
    suffix = path.suffix.lower().lstrip(".")
    if suffix == "jpg":
        suffix = "jpeg"
    return f"image/{suffix or 'png'}"
