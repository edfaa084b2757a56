#!/usr/bin/env python3
import os
import sys
import threading
import unittest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))
from backend.app.session import SessionManager


class TestSessionManager(unittest.TestCase):
    def setUp(self):
        self.sessions = SessionManager()
        self.sid = "acme_session_1"

    def test_first_append_creates_session(self):
        self.assertFalse(self.sessions.has_history(self.sid))
        self.sessions.append_turn(self.sid, "user", "hello")
        self.assertTrue(self.sessions.has_history(self.sid))
        self.assertEqual(self.sessions.get_history(self.sid), [{"role": "user", "content": "hello"}])

    def test_history_is_bounded_and_alternates(self):
        for i in range(25):
            self.sessions.append_turn(self.sid, "user", f"q{i}")
            self.sessions.append_turn(self.sid, "assistant", f"a{i}")
            self.assertLessEqual(len(self.sessions.get_history(self.sid)), 20)

        history = self.sessions.get_history(self.sid)
        self.assertEqual(len(history), 20)
        self.assertEqual(history[0], {"role": "user", "content": "q15"})
        self.assertEqual(history[-1], {"role": "assistant", "content": "a24"})
        for i, turn in enumerate(history):
            self.assertEqual(turn["role"], "user" if i % 2 == 0 else "assistant")

    def test_recent_window(self):
        for i in range(4):
            self.sessions.append_turn(self.sid, "user", f"q{i}")
        self.assertEqual([t["content"] for t in self.sessions.get_history(self.sid, max_messages=2)], ["q2", "q3"])

    def test_unknown_role_rejected(self):
        with self.assertRaises(ValueError):
            self.sessions.append_turn(self.sid, "system", "nope")

    def test_clear_one_and_all(self):
        self.sessions.append_turn("a", "user", "x")
        self.sessions.append_turn("b", "user", "y")

        self.assertTrue(self.sessions.clear("a"))
        self.assertFalse(self.sessions.clear("a"))
        self.assertEqual(self.sessions.active_sessions(), 1)

        self.assertTrue(self.sessions.clear())
        self.assertEqual(self.sessions.active_sessions(), 0)
        self.assertEqual(self.sessions.get_history("b"), [])

    def test_concurrent_exchanges_keep_pairs_together(self):
        def exchange(n):
            with self.sessions.session_lock(self.sid):
                self.sessions.append_turn(self.sid, "user", f"q{n}")
                self.sessions.append_turn(self.sid, "assistant", f"a{n}")

        threads = [threading.Thread(target=exchange, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        history = self.sessions.get_history(self.sid)
        self.assertEqual(len(history), 16)
        for user, assistant in zip(history[::2], history[1::2]):
            self.assertEqual(user["content"][1:], assistant["content"][1:])


if __name__ == "__main__":
    unittest.main()
