"""Forwarding dispatcher: per-rule fan-out to the transport forwarders.

Each matched rule is handed to the forwarder for its type inside its own
try block, so one rule's failure never blocks or fails another. Forwarders
do their network work on their own worker pools; nothing here waits on it.
"""

import logging
from collections.abc import Iterable, Mapping
from concurrent.futures import Future

from notify_forwarder.logging_utils import forward_tags
from notify_forwarder.models import ForwardRule, NotificationEvent, RuleType
from notify_forwarder.services.notifications.base import BaseForwarder

logger = logging.getLogger("notify-forwarder")


class ForwardingDispatcher:
    """Routes matched rules to the HTTP or MQTT forwarder."""

    def __init__(self, forwarders: Mapping[RuleType, BaseForwarder]) -> None:
        self._forwarders = dict(forwarders)

    def dispatch(self, event: NotificationEvent, rules: Iterable[ForwardRule]) -> list[Future]:
        """Start one forward per rule. Returns the futures that were started."""
        futures: list[Future] = []
        for rule in rules:
            forwarder = self._forwarders.get(rule.type)
            if forwarder is None:
                logger.warning("No forwarder for rule %s of type %s", rule.id, rule.type)
                continue
            try:
                futures.append(forwarder.dispatch(rule, event))
                logger.debug("Dispatched %s rule %s (%s)", forwarder.name, rule.id, rule.name)
            except Exception as e:
                logger.exception(
                    "%s forwarder failed for rule %s: %s", forwarder.name, rule.id, e,
                    extra=forward_tags(rule.id, forwarder.name),
                )
        return futures

    def shutdown(self, wait: bool = True) -> None:
        for forwarder in self._forwarders.values():
            try:
                forwarder.shutdown(wait=wait)
            except Exception as e:
                logger.warning("Error shutting down %s forwarder: %s", forwarder.name, e)
