"""Console client for the private chat application."""
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..shared import events
from ..shared.dto import MessageDTO, UserDTO
from ..shared.utils import is_password_strong, is_valid_username
from . import api
from .live import LiveConnection
from .storage import clear_auth, get_server_url, get_token, get_user, store_auth, store_server_url


def format_message(message: MessageDTO, me: str) -> str:
    who = "(you)" if message.sender == me else message.sender
    line = f"[{message.created_at:%H:%M}] {who}: {message.body}"
    if message.attachment:
        line += f" [attachment: {message.attachment}]"
    return line


class ChatClient:
    """Interactive console client for private messaging."""

    def __init__(self, server_url: str):
        self.api = api.APIClient(server_url)
        self.current_user: Optional[Dict[str, Any]] = get_user()
        self.live: Optional[LiveConnection] = None
        self.directory: List[UserDTO] = []

    @property
    def username(self) -> str:
        return self.current_user["username"] if self.current_user else ""

    def register(self) -> None:
        print("=== Register ===")
        username = input("Username: ").strip()
        password = input("Password (min 8 chars): ").strip()

        if not is_valid_username(username):
            print("Usernames are 3-32 letters, digits, '.', '-' or '_'.")
            return
        if not is_password_strong(password):
            print("Password too weak or blacklisted.")
            return
        try:
            self.api.register(username, password)
            print("Registration successful. You can now log in.")
        except Exception as exc:  # noqa: BLE001
            print(f"Registration failed: {exc}")

    def login(self) -> bool:
        print("=== Login ===")
        username = input("Username: ").strip()
        password = input("Password: ").strip()
        try:
            response = self.api.login(username, password)
        except Exception as exc:  # noqa: BLE001
            print(f"Login failed: {exc}")
            return False

        store_auth(response["token"], response["user"])
        self.current_user = response["user"]
        self.live = LiveConnection(
            self.api.ws_url,
            self.username,
            response["token"],
            self.current_user.get("avatar"),
            on_event=self._on_event,
        )
        try:
            self.live.open()
        except Exception as exc:  # noqa: BLE001
            print(f"Live connection unavailable, history only: {exc}")
            self.live = None
        print(f"Welcome, {self.current_user.get('display_name') or self.username}!")
        return True

    def _on_event(self, event: str, payload: Dict[str, Any]) -> None:
        if event == events.PRIVATE_MESSAGE:
            message = MessageDTO.from_json(payload)
            peer = self.live.active_peer if self.live else None
            if peer in (message.sender, message.recipient):
                print(format_message(message, self.username))
            elif message.sender != self.username:
                print(f"* new message from {self.label_for(message.sender)}")
        elif event == events.PROFILE_UPDATED:
            self.refresh_directory()
        elif event == events.NOTIFICATION:
            print(f"* {payload.get('message', '')}")
        elif event == events.ERROR:
            print(f"! {payload.get('message', '')}")

    def refresh_directory(self) -> None:
        """Re-fetch the user list, e.g. after a profileUpdated hint."""
        try:
            self.directory = [UserDTO.from_json(u) for u in self.api.list_users()]
        except Exception as exc:  # noqa: BLE001
            print(f"Could not fetch users: {exc}")
            return
        if self.live:
            self.live.profiles_stale = False

    def label_for(self, username: str) -> str:
        for user in self.directory:
            if user.username == username:
                return user.label
        return username

    def list_users(self) -> List[UserDTO]:
        self.refresh_directory()
        users = self.directory
        online = self.live.online if self.live else set()
        unread = self.live.unread if self.live else {}
        for u in users:
            marker = "*" if u.username in online else " "
            badge = f" ({unread[u.username]} unread)" if unread.get(u.username) else ""
            print(f"{marker} {u.label} (@{u.username}){badge}")
        return users

    def start_chat(self) -> None:
        users = self.list_users()
        peer = input("Chat with (username): ").strip()
        if not any(u.username == peer for u in users):
            print("User not found.")
            return
        self._show_history(peer)
        if not self.live:
            return
        self.live.open_chat(peer)
        try:
            while True:
                print("\nChat commands: [s]end, [a]ttach, [h]istory, [b]ack")
                cmd = input("> ").strip().lower()
                if cmd == "b":
                    break
                if cmd == "s":
                    self._send(peer, input("Message: "))
                if cmd == "a":
                    self._send_attachment(peer)
                if cmd == "h":
                    self._show_history(peer)
        finally:
            self.live.open_chat(None)

    def _show_history(self, peer: str) -> None:
        try:
            history = [MessageDTO.from_json(m) for m in self.api.get_messages(peer)]
        except Exception as exc:  # noqa: BLE001
            print(f"Could not fetch messages: {exc}")
            return
        for message in history:
            print(format_message(message, self.username))
        if not history:
            print("No messages yet.")

    def _send(self, peer: str, text: str, attachment: str = "") -> None:
        if not text.strip() and not attachment:
            print("Nothing to send.")
            return
        try:
            self.live.send_message(peer, text, attachment)
        except Exception as exc:  # noqa: BLE001
            print(f"Failed to send message: {exc}")

    def _send_attachment(self, peer: str) -> None:
        path = Path(input("Image path: ").strip()).expanduser()
        try:
            file_url = self.api.upload_attachment(path)
        except Exception as exc:  # noqa: BLE001
            print(f"Upload failed: {exc}")
            return
        self._send(peer, input("Caption (optional): "), file_url)

    def update_profile(self) -> None:
        display_name = input("Display name: ").strip()
        avatar = input("Avatar image path (blank to keep): ").strip()
        try:
            user = self.api.update_profile(display_name, Path(avatar).expanduser() if avatar else None)
        except Exception as exc:  # noqa: BLE001
            print(f"Profile update failed: {exc}")
            return
        self.current_user = user
        store_auth(get_token() or "", user)
        print("Profile updated.")

    def logout(self) -> None:
        if self.live:
            self.live.close()
            self.live = None
        clear_auth()
        self.current_user = None
        self.directory = []
        print("Logged out.")


def main():
    print("Private Chat Client")
    default_url = get_server_url() or "http://127.0.0.1:8000"
    server_url = input(f"Server URL [{default_url}]: ").strip() or default_url
    store_server_url(server_url)
    client = ChatClient(server_url)

    while True:
        print("\nMenu: [r]egister, [l]ogin, [q]uit")
        choice = input("> ").strip().lower()
        if choice == "q":
            sys.exit(0)
        if choice == "r":
            client.register()
        if choice == "l":
            if client.login():
                while get_token():
                    print("\nUser menu: [u]sers, [c]hat, [p]rofile, [o]logout")
                    sub = input("> ").strip().lower()
                    if sub == "o":
                        client.logout()
                        break
                    if sub == "u":
                        client.list_users()
                    if sub == "c":
                        client.start_chat()
                    if sub == "p":
                        client.update_profile()


if __name__ == "__main__":
    main()
