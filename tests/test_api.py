#!/usr/bin/env python3
import os
import sys
import unittest
from unittest.mock import Mock

from fastapi.testclient import TestClient

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))
from backend.app.business import BusinessService
from backend.app.controller import Controller
from backend.app.main import create_app, seeded_app
from kb_fixtures import FakeStore, make_context


class TestChatApi(unittest.TestCase):
    def setUp(self):
        store = FakeStore({"acme": make_context()})
        self.generator = Mock()
        self.generator.complete.return_value = "We're open 9 to 5."
        self.generator.available = True
        self.generator.llm_model = "test-model"
        self.controller = Controller(BusinessService(store), generator=self.generator)
        self.client = TestClient(create_app(controller=self.controller, store=store))

    def test_health(self):
        response = self.client.get("/api/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "healthy")

    def test_chat(self):
        response = self.client.post("/api/chat?business=acme", json={"message": "what time are you open"},
                                    headers={"X-Session-Id": "abc"})
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["response"], "We're open 9 to 5.")
        self.assertEqual(body["session_id"], "abc")
        self.assertTrue(body["is_new_conversation"])

        again = self.client.post("/api/chat", json={"message": "2 + 2", "business_id": "acme"},
                                 headers={"X-Session-Id": "abc"})
        self.assertEqual(again.json()["response"], "2 + 2 = 4")
        self.assertFalse(again.json()["is_new_conversation"])

    def test_chat_rejects_empty_message(self):
        response = self.client.post("/api/chat?business=acme", json={"message": "  "})
        self.assertEqual(response.status_code, 400)

    def test_chat_unknown_business(self):
        response = self.client.post("/api/chat?business=nobody", json={"message": "hi"})
        self.assertEqual(response.status_code, 404)

    def test_initial_message(self):
        response = self.client.get("/api/initial-message?business=acme")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["message"], "Welcome to Acme Plumbing! How can we assist you today?")
        self.assertEqual(self.client.get("/api/initial-message?business=nobody").status_code, 404)

    def test_businesses_and_debug(self):
        self.assertEqual(self.client.get("/api/businesses").json()["total"], 1)

        report = self.client.post("/api/debug/test-rag?business=acme", json={"query": "What are your hours?"})
        self.assertEqual(report.status_code, 200)
        self.assertEqual(report.json()["total_kb_entries"], 3)

        stats = self.client.get("/api/debug/stats").json()
        self.assertEqual(stats["services"]["model"], "test-model")

    def test_generated_session_id_is_namespaced_once(self):
        body = self.client.post("/api/chat?business=acme", json={"message": "2 + 2"}).json()
        session_id = body["session_id"]
        self.assertTrue(session_id.startswith("session_"))
        self.assertEqual(list(self.controller.session_manager.memory_sessions), [f"acme_{session_id}"])

    def test_business_details(self):
        response = self.client.get("/api/business/acme")
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["name"], "Acme Plumbing")
        self.assertEqual(body["knowledge_base_count"], 3)
        self.assertEqual(body["categories"], ["hours", "location", "pricing"])
        self.assertNotIn("system_instructions", body)
        self.assertEqual(self.client.get("/api/business/nobody").status_code, 404)

    def test_knowledge_base_listing(self):
        response = self.client.get("/api/debug/knowledge-base?business=acme")
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["total_entries"], 3)
        self.assertIn({"question": "What are your hours?", "answer": "9am-5pm Mon-Fri",
                       "category": "hours", "priority": 1}, body["entries"])
        self.assertEqual(self.client.get("/api/debug/knowledge-base?business=nobody").status_code, 404)

    def test_knowledge_base_listing_cuts_long_answers(self):
        listing = self.controller.knowledge_base("acme", preview_chars=5)
        self.assertIn("9am-5...", [e["answer"] for e in listing["entries"]])

    def test_cache_and_session_admin(self):
        self.client.post("/api/chat?business=acme", json={"message": "2 + 2"}, headers={"X-Session-Id": "s"})
        self.assertEqual(self.client.get("/api/admin/sessions").json()["active_sessions"], 1)

        self.assertEqual(self.client.post("/api/business/acme/cache/clear").status_code, 200)
        self.client.post("/api/admin/cache/clear")
        self.assertEqual(self.client.get("/api/admin/sessions").json()["active_sessions"], 0)


class TestSeededApp(unittest.TestCase):
    def test_seed_businesses_are_served(self):
        client = TestClient(seeded_app("sqlite://"))
        self.assertEqual([b["id"] for b in client.get("/api/businesses").json()["businesses"]], ["default"])
        greeting = client.get("/api/initial-message").json()["message"]
        self.assertIn("Acme Plumbing", greeting)


if __name__ == "__main__":
    unittest.main()
