"""Tests for the Flask API: notification ingest, rule CRUD, status."""

import shutil
import tempfile
import unittest
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

from notify_forwarder.logging_utils import error_buffer
from notify_forwarder.managers.rules import RuleStore
from notify_forwarder.models import ForwardRule, RuleType
from notify_forwarder.services.pipeline import NotificationPipeline
from notify_forwarder.web.server import create_app


class TestWebApi(unittest.TestCase):
    def setUp(self):
        self.storage = tempfile.mkdtemp()
        self.addCleanup(lambda: shutil.rmtree(self.storage, ignore_errors=True))
        self.rule_store = RuleStore(self.storage)
        self.dispatcher = MagicMock()
        self.orchestrator = SimpleNamespace(
            rule_store=self.rule_store,
            pipeline=NotificationPipeline(self.rule_store, self.dispatcher),
            version="1.2.3",
            uptime_seconds=12.34,
        )
        self.client = create_app(self.orchestrator).test_client()

    def _http_rule(self, rule_id="r1"):
        rule = ForwardRule(
            id=rule_id,
            name="hook",
            type=RuleType.HTTP,
            app_package_name="com.chat.app",
            server_url="https://h.example/$text",
        )
        self.rule_store.save(rule)
        return rule

    def test_health(self):
        r = self.client.get("/health")
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.get_json(), {"status": "ok"})

    def test_ingest_dispatches_matching_rules(self):
        self._http_rule("r1")
        r = self.client.post(
            "/api/notifications",
            json={"package": "com.chat.app", "visibility": 1, "extras": {"android.title": "Alice", "android.text": "hello"}},
        )
        self.assertEqual(r.status_code, 202)
        self.assertEqual(r.get_json(), {"matched": ["r1"]})
        event, rules = self.dispatcher.dispatch.call_args[0]
        self.assertEqual(event.text, "hello")
        self.assertEqual([x.id for x in rules], ["r1"])

    def test_ingest_no_match(self):
        self._http_rule("r1")
        r = self.client.post("/api/notifications", json={"package": "com.other"})
        self.assertEqual(r.status_code, 202)
        self.assertEqual(r.get_json(), {"matched": []})
        self.dispatcher.dispatch.assert_not_called()

    def test_ingest_tolerates_malformed_messages(self):
        self._http_rule("r1")
        r = self.client.post(
            "/api/notifications",
            json={"package": "com.chat.app", "extras": {"android.text": "hi", "android.messages": 7}},
        )
        self.assertEqual(r.status_code, 202)
        self.assertEqual(r.get_json(), {"matched": ["r1"]})

    def test_ingest_rejects_non_object(self):
        r = self.client.post("/api/notifications", json=["a"])
        self.assertEqual(r.status_code, 400)
        r = self.client.post("/api/notifications", data="not json", content_type="text/plain")
        self.assertEqual(r.status_code, 400)

    def test_create_rule_generates_id(self):
        r = self.client.post(
            "/api/rules",
            json={"name": "mqtt", "type": "mqtt", "app_package_name": "com.a", "broker_host": "b", "topic": "t"},
        )
        self.assertEqual(r.status_code, 201)
        body = r.get_json()
        self.assertTrue(body["id"].isdigit())
        self.assertEqual(body["type"], "MQTT")
        self.assertEqual(body["port"], "1883")
        self.assertIsNotNone(self.rule_store.get_by_id(body["id"]))

    @patch("notify_forwarder.web.routes.api.time.time", return_value=1700000000.5)
    def test_ids_created_in_same_millisecond_are_distinct(self, _mock_time):
        body = {"type": "HTTP", "app_package_name": "com.a", "server_url": "http://h"}
        first = self.client.post("/api/rules", json={**body, "name": "one"}).get_json()
        second = self.client.post("/api/rules", json={**body, "name": "two"}).get_json()
        self.assertEqual(first["id"], "1700000000500")
        self.assertEqual(second["id"], "1700000000501")
        self.assertEqual(self.rule_store.get_by_id(first["id"]).name, "one")
        self.assertEqual(len(self.rule_store.list()), 2)

    def test_create_rule_invalid(self):
        r = self.client.post("/api/rules", json={"type": "SMTP", "app_package_name": "com.a"})
        self.assertEqual(r.status_code, 400)
        self.assertIn("error", r.get_json())
        self.assertEqual(self.rule_store.list(), ())

    def test_list_and_get_rule(self):
        self._http_rule("r1")
        r = self.client.get("/api/rules")
        self.assertEqual([x["id"] for x in r.get_json()["rules"]], ["r1"])
        r = self.client.get("/api/rules/r1")
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.get_json()["server_url"], "https://h.example/$text")
        self.assertEqual(self.client.get("/api/rules/missing").status_code, 404)

    def test_update_rule(self):
        self._http_rule("r1")
        r = self.client.put(
            "/api/rules/r1",
            json={"id": "ignored", "type": "HTTP", "app_package_name": "com.chat.app", "filter_keywords": "urgent"},
        )
        self.assertEqual(r.status_code, 200)
        self.assertEqual(self.rule_store.get_by_id("r1").filter_keywords, "urgent")
        self.assertIsNone(self.rule_store.get_by_id("ignored"))
        r = self.client.put("/api/rules/missing", json={"type": "HTTP", "app_package_name": "a"})
        self.assertEqual(r.status_code, 404)

    def test_delete_rule(self):
        self._http_rule("r1")
        self.assertEqual(self.client.delete("/api/rules/r1").status_code, 200)
        self.assertIsNone(self.rule_store.get_by_id("r1"))
        self.assertEqual(self.client.delete("/api/rules/r1").status_code, 404)

    def test_status(self):
        error_buffer.clear()
        self.addCleanup(error_buffer.clear)
        error_buffer.append("2026-01-01 00:00:00", "ERROR", "boom")
        error_buffer.append("2026-01-01 00:00:01", "ERROR", "HTTP 500", rule_id="r1", forwarder="HTTP")
        self._http_rule("r1")
        body = self.client.get("/api/status").get_json()
        self.assertEqual(body["version"], "1.2.3")
        self.assertEqual(body["rules"], 1)
        self.assertEqual(body["uptime_seconds"], 12.3)
        self.assertEqual(body["errors"][0]["rule"], "r1")
        self.assertEqual(body["errors"][1]["message"], "boom")
        self.assertNotIn("rule", body["errors"][1])
        self.assertEqual(body["failures_by_rule"], {"r1": 1})


if __name__ == "__main__":
    unittest.main()
