"""Forwarding providers (HTTP webhook, MQTT publish)."""

from notify_forwarder.services.notifications.providers.http_webhook import (
    HttpWebhookForwarder,
)
from notify_forwarder.services.notifications.providers.mqtt_publish import (
    MqttPublishForwarder,
)

__all__ = ["HttpWebhookForwarder", "MqttPublishForwarder"]
