"""Tests for the presence registry."""

import itertools
import random
import unittest

from groupchat.errors import AlreadyBoundError
from groupchat.presence import PresenceRegistry


class TestPresenceRegistry(unittest.TestCase):

    def setUp(self):
        self.registry = PresenceRegistry()

    def test_register_returns_full_online_list(self):
        self.assertEqual(self.registry.register("c1", "alice"), ["alice"])
        self.assertEqual(self.registry.register("c2", "bob"), ["alice", "bob"])
        self.assertTrue(self.registry.is_online("bob"))

    def test_connection_binds_once(self):
        self.registry.register("c1", "alice")
        with self.assertRaises(AlreadyBoundError):
            self.registry.register("c1", "bob")
        self.assertEqual(self.registry.bound_user("c1"), "alice")
        self.assertFalse(self.registry.is_online("bob"))

    def test_two_connections_one_entry_one_leave_broadcast(self):
        self.registry.register("c1", "alice")
        self.assertEqual(self.registry.register("c2", "alice"), ["alice"])
        self.assertEqual(self.registry.online_count(), 1)

        self.assertIsNone(self.registry.unregister("c1"))
        self.assertTrue(self.registry.is_online("alice"))
        self.assertEqual(self.registry.unregister("c2"), [])
        self.assertFalse(self.registry.is_online("alice"))

    def test_unknown_or_unbound_connection(self):
        self.assertIsNone(self.registry.unregister("never-joined"))
        self.registry.register("c1", "alice")
        self.assertIsNone(self.registry.unregister("c1-typo"))
        self.assertEqual(self.registry.online_users(), ["alice"])

    def test_online_set_matches_live_bindings(self):
        rng = random.Random(7)
        live = {}
        counter = itertools.count()
        for _ in range(500):
            if live and rng.random() < 0.45:
                connection_id = rng.choice(sorted(live))
                user_id = live.pop(connection_id)
                delta = self.registry.unregister(connection_id)
                if user_id in live.values():
                    self.assertIsNone(delta)
                else:
                    self.assertEqual(delta, sorted(set(live.values())))
            else:
                connection_id = f"c{next(counter)}"
                user_id = rng.choice(["a", "b", "c", "d"])
                live[connection_id] = user_id
                self.registry.register(connection_id, user_id)
            self.assertEqual(self.registry.online_users(), sorted(set(live.values())))


if __name__ == "__main__":
    unittest.main()
