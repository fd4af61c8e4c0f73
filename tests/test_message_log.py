"""Unit tests for the SQL-backed message log."""
import threading
import unittest
from datetime import datetime, timedelta
from unittest.mock import patch

from sqlalchemy.exc import OperationalError

from private_chat.server.errors import PersistenceFailure
from private_chat.server.message_log import OutgoingMessage

from fakes import memory_message_log


class TestSqlMessageLog(unittest.TestCase):
    def setUp(self):
        self.log = memory_message_log()

    def test_append_assigns_id_and_timestamp(self):
        stored = self.log.append(OutgoingMessage("alice", "bob", "hi"))
        self.assertEqual(stored.sender, "alice")
        self.assertEqual(stored.recipient, "bob")
        self.assertEqual(stored.body, "hi")
        self.assertEqual(stored.attachment, "")
        self.assertIsInstance(stored.created_at, datetime)
        self.assertIsNotNone(stored.id)

    def test_conversation_includes_both_directions_in_order(self):
        first = self.log.append(OutgoingMessage("alice", "bob", "one"))
        self.log.append(OutgoingMessage("alice", "carol", "elsewhere"))
        second = self.log.append(OutgoingMessage("bob", "alice", "two"))
        third = self.log.append(OutgoingMessage("alice", "bob", "", "/uploads/cat.png"))

        conversation = self.log.query_conversation("bob", "alice")
        self.assertEqual([m.id for m in conversation], [first.id, second.id, third.id])
        self.assertEqual(conversation[-1].attachment, "/uploads/cat.png")
        self.assertEqual(self.log.query_conversation("alice", "bob"), conversation)

    def test_timestamps_strictly_increase_when_clock_stalls(self):
        frozen = datetime(2026, 1, 1, 12, 0, 0)
        with patch("private_chat.server.message_log.datetime") as fake_datetime:
            fake_datetime.utcnow.return_value = frozen
            a = self.log.append(OutgoingMessage("alice", "bob", "a"))
            b = self.log.append(OutgoingMessage("alice", "bob", "b"))
            c = self.log.append(OutgoingMessage("bob", "alice", "c"))
        self.assertEqual(a.created_at, frozen)
        self.assertEqual(b.created_at, frozen + timedelta(microseconds=1))
        self.assertEqual(c.created_at, frozen + timedelta(microseconds=2))

    def test_concurrent_appends_are_each_stored_once(self):
        def send(i):
            self.log.append(OutgoingMessage("alice", "bob", f"msg {i}"))

        threads = [threading.Thread(target=send, args=(i,)) for i in range(20)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        conversation = self.log.query_conversation("alice", "bob")
        self.assertEqual(sorted(m.body for m in conversation), sorted(f"msg {i}" for i in range(20)))
        stamps = [m.created_at for m in conversation]
        self.assertEqual(stamps, sorted(set(stamps)))

    def test_database_error_becomes_persistence_failure(self):
        error = OperationalError("INSERT", {}, Exception("database is locked"))
        with patch("sqlalchemy.orm.Session.commit", side_effect=error):
            with self.assertRaises(PersistenceFailure):
                self.log.append(OutgoingMessage("alice", "bob", "lost"))
        self.assertEqual(self.log.query_conversation("alice", "bob"), [])

    def test_empty_conversation(self):
        self.assertEqual(self.log.query_conversation("alice", "nobody"), [])


if __name__ == "__main__":
    unittest.main()
