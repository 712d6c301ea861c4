"""Notification pipeline: extract, match, dispatch.

on_event() is called once per posted notification, possibly from several
threads at once. It holds no mutable state; each call works on its own
snapshot of the rule list.
"""

import logging
from collections.abc import Iterable

from notify_forwarder.constants import DEFAULT_REDACTION_PLACEHOLDERS
from notify_forwarder.managers.rules import RuleStore
from notify_forwarder.models import ForwardRule, RawNotification
from notify_forwarder.services.extractor import extract
from notify_forwarder.services.matcher import match
from notify_forwarder.services.notifications.dispatcher import ForwardingDispatcher

logger = logging.getLogger("notify-forwarder")


class NotificationPipeline:
    """Entry point for notification events."""

    def __init__(
        self,
        rule_store: RuleStore,
        dispatcher: ForwardingDispatcher,
        redaction_placeholders: Iterable[str] = DEFAULT_REDACTION_PLACEHOLDERS,
    ) -> None:
        self._rule_store = rule_store
        self._dispatcher = dispatcher
        self._redaction_placeholders = tuple(redaction_placeholders)

    def on_event(self, raw: RawNotification | dict) -> list[ForwardRule]:
        """Forward one notification to every matching rule; returns the matches."""
        if isinstance(raw, dict):
            raw = RawNotification.from_dict(raw)
        event = extract(raw, self._redaction_placeholders)

        rules = self._rule_store.list()
        if not rules:
            logger.debug("No rules configured, skipping notification from %s", event.source_package)
            return []

        matched = match(event, rules)
        if not matched:
            logger.debug("No rule matched notification from %s", event.source_package)
            return []

        logger.info(
            "Notification from %s matched %d rule(s): %s",
            event.source_package, len(matched), ", ".join(r.id for r in matched),
        )
        self._dispatcher.dispatch(event, matched)
        return matched
