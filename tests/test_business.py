#!/usr/bin/env python3
"""
Tests for the knowledge store (in-memory SQLite) and the business context cache.
"""
import json
import os
import sys
import tempfile
import unittest

from sqlalchemy.exc import IntegrityError

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))
from backend.app.business import BusinessContext, BusinessService
from backend.data.knowledge_store import KnowledgeStore
from backend.data.populate_db import populate_businesses
from kb_fixtures import FakeStore, make_context


class TestKnowledgeStore(unittest.TestCase):
    def setUp(self):
        self.store = KnowledgeStore("sqlite://")
        self.store.add_business("acme", "Acme Plumbing", phone="555-0100", type="plumbing",
                                config={"initial_message": "Hi from Acme!"})

    def test_entries_ordered_by_priority(self):
        self.store.add_entry("acme", "Low?", "low", priority=0)
        self.store.add_entry("acme", "High?", "high", priority=5)
        self.store.add_entry("acme", "Later low?", "later low", priority=0)

        context = self.store.load_business_context("acme")
        self.assertEqual([e.answer for e in context.knowledge_entries], ["high", "later low", "low"])
        self.assertEqual(context.phone, "555-0100")
        self.assertEqual(context.initial_greeting, "Hi from Acme!")
        self.assertIn("Acme Plumbing", context.system_instructions)
        self.assertEqual(len(context.index), 3)

    def test_inactive_entries_excluded(self):
        self.store.add_entry("acme", "Old?", "old", is_active=False)
        self.store.add_entry("acme", "New?", "new")
        context = self.store.load_business_context("acme")
        self.assertEqual([e.answer for e in context.knowledge_entries], ["new"])

    def test_unknown_business(self):
        self.assertIsNone(self.store.load_business_context("nobody"))

    def test_list_and_health(self):
        self.assertEqual([b["id"] for b in self.store.list_businesses()], ["acme"])
        self.assertTrue(self.store.health_check()["database"])

    def test_load_from_file(self):
        seed = {
            "business": {"id": "bloom", "name": "Bloom Florist", "keywords": ["flowers"]},
            "knowledge_base": [{"question": "Do you deliver?", "answer": "Yes, same day.", "category": "delivery"}],
        }
        with tempfile.NamedTemporaryFile("w", suffix=".json", delete=False) as f:
            json.dump(seed, f)
        self.addCleanup(os.remove, f.name)

        self.assertEqual(self.store.load_from_file(f.name), "bloom")
        context = self.store.load_business_context("bloom")
        self.assertEqual(context.knowledge_entries[0].answer, "Yes, same day.")
        self.assertEqual(context.keywords, ("flowers",))
        self.assertEqual(context.categories(), ["delivery"])

    def test_bad_seed_entry_leaves_nothing_behind(self):
        seed = {
            "business": {"id": "bloom", "name": "Bloom Florist"},
            "knowledge_base": [{"question": "Do you deliver?", "answer": "Yes."}, {"question": "No answer?"}],
        }
        with tempfile.NamedTemporaryFile("w", suffix=".json", delete=False) as f:
            json.dump(seed, f)
        self.addCleanup(os.remove, f.name)

        with self.assertRaises(IntegrityError):
            self.store.load_from_file(f.name)
        self.assertIsNone(self.store.load_business_context("bloom"))
        self.assertEqual([b["id"] for b in self.store.list_businesses()], ["acme"])

    def test_seed_directory_loaded_once(self):
        self.assertEqual(populate_businesses(self.store), ["default"])
        self.assertEqual(populate_businesses(self.store), [])

        context = self.store.load_business_context("default")
        self.assertEqual(context.business_name, "Acme Plumbing")
        self.assertGreater(len(context.knowledge_entries), 0)


class TestBusinessContext(unittest.TestCase):
    def test_malformed_records_are_skipped(self):
        context = BusinessContext.build("x", "X Co", [{"question": "Q?", "answer": "A."}, {"answer": "no q"}])
        self.assertEqual(len(context.knowledge_entries), 1)

    def test_default_greeting_and_prompt(self):
        context = BusinessContext.build("x", "X Co", [])
        self.assertEqual(context.initial_greeting, "Welcome to X Co! How can we assist you today?")
        self.assertIn("virtual assistant for X Co", context.system_instructions)

    def test_custom_system_prompt(self):
        context = BusinessContext.build("x", "X Co", [], system_prompt="Be brief.")
        self.assertEqual(context.system_instructions, "Be brief.")


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class TestBusinessService(unittest.TestCase):
    def setUp(self):
        self.clock = FakeClock()
        self.store = FakeStore({"a": make_context(business_id="a"), "b": make_context(business_id="b")})
        self.service = BusinessService(self.store, ttl=300, max_size=1, clock=self.clock)

    def test_cached_until_ttl_expires(self):
        first = self.service.get_business_context("a")
        self.clock.now = 299
        self.assertIs(self.service.get_business_context("a"), first)
        self.assertEqual(self.store.loads, 1)

        self.clock.now = 301
        self.service.get_business_context("a")
        self.assertEqual(self.store.loads, 2)

    def test_unknown_business_not_cached(self):
        self.assertIsNone(self.service.get_business_context("zzz"))
        self.assertEqual(self.service.get_stats()["cache_size"], 0)

    def test_oldest_entry_evicted(self):
        self.service.get_business_context("a")
        self.service.get_business_context("b")
        self.assertEqual(self.service.get_stats(), {"cache_size": 1, "cache_ttl": 300})
        self.service.get_business_context("a")
        self.assertEqual(self.store.loads, 3)

    def test_clear_cache(self):
        self.service.get_business_context("a")
        self.service.clear_cache("a")
        self.service.get_business_context("a")
        self.assertEqual(self.store.loads, 2)
        self.service.clear_cache()
        self.assertEqual(self.service.get_stats()["cache_size"], 0)


if __name__ == "__main__":
    unittest.main()
