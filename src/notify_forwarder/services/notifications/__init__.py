"""Forwarding transports: forwarder interface, dispatcher, and providers (HTTP webhook, MQTT)."""

from notify_forwarder.services.notifications.base import (
    BaseForwarder,
    DispatchResult,
)
from notify_forwarder.services.notifications.dispatcher import ForwardingDispatcher
from notify_forwarder.services.notifications.providers import (
    HttpWebhookForwarder,
    MqttPublishForwarder,
)

__all__ = [
    "BaseForwarder",
    "DispatchResult",
    "ForwardingDispatcher",
    "HttpWebhookForwarder",
    "MqttPublishForwarder",
]
