"""MQTT publish forwarder: one ephemeral broker session per forward.

Each dispatch renders its payload immediately, then a worker opens a
dedicated clean session (tcp://host:port), publishes once at QoS 1, and
tears the session down. Sessions are never pooled: two publishes sharing a
client id would make the broker drop one of them. The session is released
on every exit path (validation failure, connect failure, publish failure).
"""

import itertools
import json
import logging
import threading
import time
from collections.abc import Iterator
from concurrent.futures import Future, ThreadPoolExecutor
from contextlib import contextmanager
from typing import Any

import paho.mqtt.client as mqtt

from notify_forwarder.constants import (
    DEFAULT_MQTT_CLIENT_ID_PREFIX,
    DEFAULT_MQTT_CONNECT_TIMEOUT,
    DEFAULT_MQTT_KEEPALIVE,
    DEFAULT_MQTT_MAX_WORKERS,
    DEFAULT_MQTT_PUBLISH_TIMEOUT,
    MQTT_QOS,
)
from notify_forwarder.models import ForwardRule, NotificationEvent
from notify_forwarder.services.notifications.base import BaseForwarder, DispatchResult
from notify_forwarder.services.template import build_context, now_millis, render

logger = logging.getLogger("notify-forwarder")

_client_seq = itertools.count(1)


class MqttSessionError(Exception):
    """Broker session could not be established."""


def build_payload(rule: ForwardRule, event: NotificationEvent, now: int | None = None) -> str:
    """Rendered message template, or the default flat JSON object."""
    now = now if now is not None else now_millis()
    if rule.message_template:
        return render(rule.message_template, build_context(event, rule, now))
    return json.dumps(
        {
            "app_package": event.source_package,
            "app_name": rule.app_name,
            "title": event.title,
            "content": event.text,
            "time": now,
        },
        ensure_ascii=False,
        separators=(",", ":"),
    )


def generate_client_id(prefix: str = DEFAULT_MQTT_CLIENT_ID_PREFIX) -> str:
    """Per-call client id: prefix + epoch ms + process-wide sequence number."""
    return f"{prefix}{now_millis()}_{next(_client_seq)}"


def _new_client(client_id: str) -> mqtt.Client:
    # paho-mqtt 2.x: callback_api_version required; type stubs may not
    # export CallbackAPIVersion
    callback_api_version = getattr(mqtt, "CallbackAPIVersion", None)
    if callback_api_version is not None:
        return mqtt.Client(
            callback_api_version.VERSION2, client_id=client_id, clean_session=True
        )
    return mqtt.Client(client_id=client_id, clean_session=True)


def _close_session(client: mqtt.Client, broker: str) -> None:
    """Disconnect and stop the network loop; cleanup errors are only logged."""
    try:
        client.disconnect()
    except Exception as e:
        logger.warning("Error disconnecting MQTT session to %s: %s", broker, e)
    try:
        client.loop_stop()
    except Exception as e:
        logger.warning("Error stopping MQTT loop for %s: %s", broker, e)


@contextmanager
def mqtt_session(
    host: str,
    port: int,
    client_id: str,
    username: str = "",
    password: str = "",
    connect_timeout: float = DEFAULT_MQTT_CONNECT_TIMEOUT,
    keepalive: int = DEFAULT_MQTT_KEEPALIVE,
) -> Iterator[mqtt.Client]:
    """Open a connected MQTT session and always tear it down on exit.

    Raises:
        MqttSessionError: no CONNACK within connect_timeout, or the broker
            refused the connection.
        OSError: the TCP connection could not be opened.
    """
    broker = f"tcp://{host}:{port}"
    client = _new_client(client_id)
    if username:
        client.username_pw_set(username, password)
        logger.debug("Connecting to %s as %s", broker, username)
    else:
        logger.debug("Connecting to %s anonymously", broker)
    client.connect_timeout = connect_timeout

    connack = threading.Event()
    outcome: dict[str, Any] = {}

    def _on_connect(client: mqtt.Client, userdata: Any, flags: Any, reason_code: Any, properties: Any = None) -> None:
        outcome["rc"] = getattr(reason_code, "value", reason_code)
        connack.set()

    client.on_connect = _on_connect
    try:
        client.connect(host, port, keepalive=keepalive)
        client.loop_start()
        if not connack.wait(connect_timeout):
            raise MqttSessionError(f"No CONNACK from {broker} within {connect_timeout}s")
        if outcome.get("rc") != 0:
            raise MqttSessionError(f"{broker} refused connection (rc={outcome.get('rc')})")
        logger.debug("Connected to %s as client %s", broker, client_id)
        yield client
    finally:
        _close_session(client, broker)


class MqttPublishForwarder(BaseForwarder):
    """Publishes one message per MQTT rule over an ephemeral session."""

    name = "MQTT"

    def __init__(
        self,
        connect_timeout: float = DEFAULT_MQTT_CONNECT_TIMEOUT,
        publish_timeout: float = DEFAULT_MQTT_PUBLISH_TIMEOUT,
        keepalive: int = DEFAULT_MQTT_KEEPALIVE,
        client_id_prefix: str = DEFAULT_MQTT_CLIENT_ID_PREFIX,
        max_workers: int = DEFAULT_MQTT_MAX_WORKERS,
    ) -> None:
        self._connect_timeout = float(connect_timeout)
        self._publish_timeout = float(publish_timeout)
        self._keepalive = int(keepalive)
        self._client_id_prefix = client_id_prefix
        self._executor = ThreadPoolExecutor(
            max_workers=max(1, int(max_workers)), thread_name_prefix="mqtt-forward"
        )

    def dispatch(self, rule: ForwardRule, event: NotificationEvent) -> Future:
        payload = build_payload(rule, event)
        return self._executor.submit(self.publish, rule, payload)

    def publish(self, rule: ForwardRule, payload: str) -> DispatchResult:
        """Blocking connect/publish/disconnect for one rule. Never raises."""
        if not rule.broker_host.strip():
            logger.error("MQTT rule %s has no broker host, not connecting", rule.id, extra=self._tags(rule))
            return self._result(rule, "failure", "broker host is empty")
        try:
            port = int(str(rule.port).strip())
        except ValueError:
            logger.error("MQTT rule %s has invalid port %r", rule.id, rule.port, extra=self._tags(rule))
            return self._result(rule, "failure", f"invalid port {rule.port!r}")

        client_id = rule.client_id.strip() or generate_client_id(self._client_id_prefix)
        broker = f"tcp://{rule.broker_host}:{port}"
        try:
            with mqtt_session(
                rule.broker_host,
                port,
                client_id,
                username=rule.username,
                password=rule.password,
                connect_timeout=self._connect_timeout,
                keepalive=self._keepalive,
            ) as client:
                if not rule.topic.strip():
                    logger.error("MQTT rule %s has no topic, not publishing", rule.id, extra=self._tags(rule))
                    return self._result(rule, "failure", "topic is empty")
                info = client.publish(rule.topic, payload.encode("utf-8"), qos=MQTT_QOS)
                if info.rc != mqtt.MQTT_ERR_SUCCESS:
                    logger.warning("MQTT publish for rule %s failed: rc=%s", rule.id, info.rc, extra=self._tags(rule))
                    return self._result(rule, "failure", f"rc={info.rc}")
                info.wait_for_publish(timeout=self._publish_timeout)
                if not info.is_published():
                    logger.warning(
                        "MQTT publish for rule %s not acknowledged within %ss",
                        rule.id, self._publish_timeout, extra=self._tags(rule),
                    )
                    return self._result(rule, "failure", "publish not acknowledged")
        except Exception as e:
            logger.error(
                "MQTT forward for rule %s to %s failed: %s", rule.id, broker, e, extra=self._tags(rule)
            )
            return self._result(rule, "failure", str(e))

        logger.info("Published MQTT message for rule %s to %s topic %s", rule.id, broker, rule.topic)
        return self._result(rule, "success")

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
