"""
Forwarder Orchestrator - wires the rule store, forwarders, pipeline, and web app.
"""

import logging
import time

from voluptuous import Invalid

from notify_forwarder.config import RULE_SCHEMA
from notify_forwarder.constants import DEFAULT_REDACTION_PLACEHOLDERS
from notify_forwarder.managers.rules import RuleStore
from notify_forwarder.models import ForwardRule, RuleType
from notify_forwarder.services.notifications import (
    ForwardingDispatcher,
    HttpWebhookForwarder,
    MqttPublishForwarder,
)
from notify_forwarder.services.pipeline import NotificationPipeline
from notify_forwarder.web.server import create_app

logger = logging.getLogger("notify-forwarder")


class ForwarderOrchestrator:
    """Owns every long-lived component and their startup/shutdown."""

    def __init__(self, config: dict, version: str = "unknown"):
        self.config = config
        self.version = version
        self._start_time = time.time()
        self._stopped = False

        self.rule_store = RuleStore(config["STORAGE_PATH"], config.get("RULES_FILE", "rules.json"))

        self.http_forwarder = HttpWebhookForwarder(
            timeout=config.get("HTTP_TIMEOUT", 10),
            max_workers=config.get("HTTP_MAX_WORKERS", 4),
        )
        self.mqtt_forwarder = MqttPublishForwarder(
            connect_timeout=config.get("MQTT_CONNECT_TIMEOUT", 10),
            publish_timeout=config.get("MQTT_PUBLISH_TIMEOUT", 10),
            keepalive=config.get("MQTT_KEEPALIVE", 60),
            client_id_prefix=config.get("MQTT_CLIENT_ID_PREFIX", "MessageBox_"),
            max_workers=config.get("MQTT_MAX_WORKERS", 4),
        )
        self.dispatcher = ForwardingDispatcher(
            {
                RuleType.HTTP: self.http_forwarder,
                RuleType.MQTT: self.mqtt_forwarder,
            }
        )
        self.pipeline = NotificationPipeline(
            self.rule_store,
            self.dispatcher,
            redaction_placeholders=config.get("REDACTION_PLACEHOLDERS") or DEFAULT_REDACTION_PLACEHOLDERS,
        )

        self.flask_app = create_app(self)

    @property
    def uptime_seconds(self) -> float:
        return time.time() - self._start_time

    def seed_rules(self, records: list[dict]) -> int:
        """Upsert rule records from config; returns how many were saved."""
        saved = 0
        for record in records or []:
            try:
                validated = RULE_SCHEMA(record)
            except Invalid as e:
                logger.error("Skipping invalid rule from config: %s", e)
                continue
            if not validated.get("id"):
                logger.error("Skipping rule from config without id: %s", validated.get("name"))
                continue
            self.rule_store.save(ForwardRule.from_dict(validated))
            saved += 1
        return saved

    def start_services(self):
        """Seed configured rules; forwarder pools start lazily on first dispatch."""
        seeded = self.seed_rules(self.config.get("RULES") or [])
        if seeded:
            logger.info("Seeded %d rule(s) from config", seeded)
        logger.info(
            "Notification forwarder ready with %d rule(s) (store: %s)",
            len(self.rule_store.list()), self.rule_store.file_path,
        )

    def stop(self):
        """Graceful shutdown: let in-flight forwards finish within their own timeouts."""
        if self._stopped:
            return
        self._stopped = True
        logger.info("Shutting down orchestrator...")
        self.dispatcher.shutdown(wait=True)
