"""Notification content extraction with lock-screen redaction fallbacks.

Turns a RawNotification into a NotificationEvent. When the notification is
PRIVATE or SECRET the visible title/text may be a placeholder, so the public
version and the expanded style fields (big text, inbox lines, messages,
remote input history) are consulted in priority order. Extraction never
raises; anything unavailable leaves the best value found so far.
"""

import logging
from collections.abc import Iterable
from typing import Any

from notify_forwarder.constants import (
    DEFAULT_REDACTION_PLACEHOLDERS,
    EXTRA_BIG_TEXT,
    EXTRA_REMOTE_INPUT_HISTORY,
    EXTRA_TEXT,
    EXTRA_TEXT_LINES,
    EXTRA_TITLE,
    SYSTEM_PACKAGE,
)
from notify_forwarder.models import NotificationEvent, RawNotification

logger = logging.getLogger("notify-forwarder")


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _join_lines(value: Any) -> str:
    """Newline-join a list of char sequences; '' for anything else."""
    if not isinstance(value, (list, tuple)) or not value:
        return ""
    return "\n".join(_as_text(v) for v in value)


def _last_message_text(raw: RawNotification) -> str:
    if not raw.messages:
        return ""
    try:
        return _as_text(raw.messages[-1].text)
    except Exception as e:
        logger.debug("Could not read message-style content from %s: %s", raw.package, e)
        return ""


def extract(
    raw: RawNotification,
    redaction_placeholders: Iterable[str] = DEFAULT_REDACTION_PLACEHOLDERS,
) -> NotificationEvent:
    """Build a NotificationEvent from a raw payload, recovering redacted text."""
    extras = raw.extras or {}
    title = _as_text(extras.get(EXTRA_TITLE))
    text = _as_text(extras.get(EXTRA_TEXT))
    placeholders = frozenset(redaction_placeholders)

    def redacted() -> bool:
        return not text or text in placeholders

    if raw.visibility.may_be_redacted:
        if raw.public_extras is not None:
            public_title = _as_text(raw.public_extras.get(EXTRA_TITLE))
            public_text = _as_text(raw.public_extras.get(EXTRA_TEXT))
            if public_title:
                title = public_title
            if public_text:
                text = public_text

        fallbacks = [
            ("big text", lambda: _as_text(extras.get(EXTRA_BIG_TEXT))),
            ("text lines", lambda: _join_lines(extras.get(EXTRA_TEXT_LINES))),
            ("messages", lambda: _last_message_text(raw)),
        ]
        if raw.package == SYSTEM_PACKAGE:
            fallbacks.append(
                ("remote input history", lambda: _join_lines(extras.get(EXTRA_REMOTE_INPUT_HISTORY)))
            )
        for source, candidate in fallbacks:
            if not redacted():
                break
            value = candidate()
            if value:
                text = value
                logger.debug("Recovered redacted text for %s from %s", raw.package, source)

    logger.debug(
        "Extracted notification from %s (visibility=%s): title=%r text=%r",
        raw.package, raw.visibility.name, title, text,
    )
    return NotificationEvent(
        source_package=raw.package,
        title=title,
        text=text,
        visibility=raw.visibility,
        posted_at_millis=raw.post_time,
    )
