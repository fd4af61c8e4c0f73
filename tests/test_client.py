"""Unit tests for the console client's API wrapper, storage and live state."""
import tempfile
import unittest
from pathlib import Path
from unittest.mock import MagicMock, patch

from private_chat.client import storage
from private_chat.client.api import APIClient
from private_chat.client.live import LiveConnection
from private_chat.client.main import ChatClient, format_message
from private_chat.shared.dto import MessageDTO, UserDTO
from private_chat.shared.events import decode_frame, encode_frame
from private_chat.shared.utils import is_password_strong, is_valid_username


class TestAPIClient(unittest.TestCase):
    def setUp(self):
        self.client = APIClient("http://chat.local:8000/")

    def test_ws_url(self):
        self.assertEqual(self.client.ws_url, "ws://chat.local:8000/ws")
        self.assertEqual(APIClient("https://chat.example").ws_url, "wss://chat.example/ws")

    @patch("private_chat.client.api.get_token", return_value="tok")
    @patch("private_chat.client.api.requests.get")
    def test_get_messages_sends_peer_and_token(self, mock_get, _):
        mock_get.return_value.json.return_value = []
        self.assertEqual(self.client.get_messages("bob"), [])
        mock_get.assert_called_once_with(
            "http://chat.local:8000/messages/private",
            params={"peer": "bob"},
            headers={"Authorization": "Bearer tok"},
            timeout=10,
        )
        mock_get.return_value.raise_for_status.assert_called_once()

    @patch("private_chat.client.api.requests.post")
    def test_login_posts_credentials(self, mock_post):
        mock_post.return_value.json.return_value = {"token": "t", "user": {"username": "alice"}}
        self.client.login("alice", "pw")
        mock_post.assert_called_once_with(
            "http://chat.local:8000/auth/login", json={"username": "alice", "password": "pw"}, timeout=10
        )

    @patch("private_chat.client.api.get_token", return_value=None)
    @patch("private_chat.client.api.requests.post")
    def test_upload_attachment_returns_url(self, mock_post, _):
        mock_post.return_value.json.return_value = {"file_url": "/uploads/1-ab.png"}
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "cat.JPG"
            path.write_bytes(b"jpeg")
            self.assertEqual(self.client.upload_attachment(path), "/uploads/1-ab.png")
        _, kwargs = mock_post.call_args
        self.assertEqual(kwargs["files"]["attachment"][2], "image/jpeg")
        self.assertEqual(kwargs["headers"], {})


class TestStorage(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        patcher = patch.object(storage, "STORAGE_FILE", Path(self.tmp.name) / "state.json")
        patcher.start()
        self.addCleanup(patcher.stop)
        self.addCleanup(self.tmp.cleanup)

    def test_auth_round_trip_and_clear(self):
        storage.store_server_url("http://x")
        storage.store_auth("tok", {"username": "alice"})
        self.assertEqual(storage.get_token(), "tok")
        self.assertEqual(storage.get_user(), {"username": "alice"})

        storage.clear_auth()
        self.assertIsNone(storage.get_token())
        self.assertEqual(storage.get_server_url(), "http://x")


class TestLiveConnectionState(unittest.TestCase):
    def setUp(self):
        self.events = []
        self.live = LiveConnection("ws://x/ws", "alice", "tok", on_event=lambda e, p: self.events.append(e))

    def message(self, sender, to, text="hey"):
        return {"from": sender, "to": to, "message": text, "attachment": "", "timestamp": "2026-10-18T09:30:00"}

    def test_online_users_replace_previous_view(self):
        self.live.apply("onlineUsers", {"usernames": ["alice", "bob"]})
        self.live.apply("onlineUsers", {"usernames": ["carol"]})
        self.assertEqual(self.live.online, {"carol"})

    def test_unread_counts(self):
        self.live.open_chat("bob")
        self.live.apply("privateMessage", self.message("bob", "alice"))
        self.live.apply("privateMessage", self.message("carol", "alice"))
        self.live.apply("privateMessage", self.message("carol", "alice"))
        self.live.apply("privateMessage", self.message("alice", "carol"))
        self.assertEqual(self.live.unread, {"bob": 0, "carol": 2})

        self.live.open_chat("carol")
        self.assertEqual(self.live.unread["carol"], 0)
        self.assertEqual(len(self.events), 4)

    def test_profile_update_marks_directory_stale(self):
        self.live.apply("profileUpdated", {"username": "bob"})
        self.assertTrue(self.live.profiles_stale)

    def test_send_requires_open_connection(self):
        with self.assertRaises(RuntimeError):
            self.live.send_message("bob", "hi")

    def test_send_message_frame(self):
        self.live._ws = MagicMock()
        self.live.send_message("bob", "hi", "/uploads/a.png")
        self.assertEqual(
            decode_frame(self.live._ws.send.call_args[0][0]),
            ("privateMessage", {"from": "alice", "to": "bob", "message": "hi", "attachment": "/uploads/a.png"}),
        )

    @patch("private_chat.client.live.connect")
    def test_open_passes_token_and_joins(self, mock_connect):
        self.live._read_loop = lambda: None
        self.live.open()
        mock_connect.assert_called_once_with("ws://x/ws?token=tok")
        self.assertEqual(
            decode_frame(mock_connect.return_value.send.call_args[0][0]),
            ("join", {"username": "alice", "avatar": None}),
        )


class TestChatClientDirectory(unittest.TestCase):
    @patch("private_chat.client.main.get_user", return_value={"username": "alice"})
    def setUp(self, _):
        self.client = ChatClient("http://chat.local:8000")
        self.client.api = MagicMock()
        self.client.live = LiveConnection("ws://x/ws", "alice", "tok", on_event=self.client._on_event)

    def test_profile_update_refreshes_directory(self):
        self.client.api.list_users.return_value = [{"username": "bob", "display_name": "Bobby"}]
        self.client.live.apply("profileUpdated", {"username": "bob"})

        self.client.api.list_users.assert_called_once_with()
        self.assertFalse(self.client.live.profiles_stale)
        self.assertEqual(self.client.label_for("bob"), "Bobby")
        self.assertEqual(self.client.label_for("carol"), "carol")

    def test_failed_refresh_keeps_directory_stale(self):
        self.client.api.list_users.side_effect = ConnectionError("down")
        with patch("builtins.print"):
            self.client.live.apply("profileUpdated", {"username": "bob"})
        self.assertTrue(self.client.live.profiles_stale)
        self.assertEqual(self.client.directory, [])


class TestSharedHelpers(unittest.TestCase):
    def test_message_dto_from_history_and_event(self):
        history = MessageDTO.from_json(
            {"sender": "a", "recipient": "b", "body": "x", "attachment": "", "created_at": "2026-10-18T09:30:00"}
        )
        live = MessageDTO.from_json(
            {"from": "a", "to": "b", "message": "x", "attachment": None, "timestamp": "2026-10-18T09:30:00"}
        )
        self.assertEqual(history, live)
        self.assertEqual(format_message(live, "b"), "[09:30] a: x")
        self.assertEqual(format_message(live, "a"), "[09:30] (you): x")

    def test_user_label_prefers_display_name(self):
        self.assertEqual(UserDTO("bob", "", "Bobby").label, "Bobby")
        self.assertEqual(UserDTO.from_json({"username": "bob"}).label, "bob")

    def test_frames(self):
        self.assertEqual(decode_frame(encode_frame("join", {"username": "a"})), ("join", {"username": "a"}))
        self.assertEqual(decode_frame('{"event": "ping"}'), ("ping", {}))
        for raw in ("[]", '{"data": {}}', '{"event": "x", "data": 3}', "nope"):
            with self.assertRaises(ValueError):
                decode_frame(raw)

    def test_policies(self):
        self.assertTrue(is_valid_username("alice_1"))
        self.assertFalse(is_valid_username("al"))
        self.assertFalse(is_valid_username("alice smith"))
        self.assertTrue(is_password_strong("correct horse"))
        self.assertFalse(is_password_strong("password"))
        self.assertFalse(is_password_strong("1234567890"))


if __name__ == "__main__":
    unittest.main()
