"""Placeholder substitution for webhook URLs and MQTT message templates.

Placeholders are ``$title``, ``$text``, ``$app_package``, ``$app_name`` and
``$time``. Substitution is a single regex pass, so a substituted value that
itself contains ``$text`` (for example) is never expanded again. Unknown
tokens such as ``$foo`` are left as written.
"""

import re
import time
from collections.abc import Callable, Iterable, Mapping
from urllib.parse import quote_plus

from notify_forwarder.constants import (
    PLACEHOLDER_APP_NAME,
    PLACEHOLDER_APP_PACKAGE,
    PLACEHOLDER_TEXT,
    PLACEHOLDER_TIME,
    PLACEHOLDER_TITLE,
    TEMPLATE_PLACEHOLDERS,
    URL_PLACEHOLDERS,
)
from notify_forwarder.models import ForwardRule, NotificationEvent

_PATTERN_CACHE: dict[tuple[str, ...], re.Pattern] = {}


def _pattern(names: tuple[str, ...]) -> re.Pattern:
    pattern = _PATTERN_CACHE.get(names)
    if pattern is None:
        # Longest first so $app_package is not shadowed by a shorter name.
        alternation = "|".join(re.escape(n) for n in sorted(names, key=len, reverse=True))
        pattern = re.compile(r"\$(" + alternation + ")")
        _PATTERN_CACHE[names] = pattern
    return pattern


def now_millis() -> int:
    return int(time.time() * 1000)


def render(
    template: str,
    context: Mapping[str, str],
    placeholders: Iterable[str] | None = None,
    encode: Callable[[str], str] | None = None,
) -> str:
    """Substitute recognized placeholders in template with context values.

    Args:
        template: Text containing ``$name`` tokens.
        context: Values keyed by placeholder name (without ``$``).
        placeholders: Names to recognize; defaults to all five. Names missing
            from context are left untouched.
        encode: Optional transform applied to each substituted value.

    Returns:
        The rendered string. Never raises for any template content.
    """
    if not template or "$" not in template:
        return template or ""
    names = tuple(placeholders) if placeholders is not None else TEMPLATE_PLACEHOLDERS
    names = tuple(n for n in names if n in context)
    if not names:
        return template

    def _sub(m: re.Match) -> str:
        value = str(context[m.group(1)])
        return encode(value) if encode else value

    return _pattern(names).sub(_sub, template)


def build_context(
    event: NotificationEvent,
    rule: ForwardRule,
    now: int | None = None,
) -> dict[str, str]:
    """Variables available to MQTT message templates."""
    return {
        PLACEHOLDER_TITLE: event.title,
        PLACEHOLDER_TEXT: event.text,
        PLACEHOLDER_APP_PACKAGE: event.source_package,
        PLACEHOLDER_APP_NAME: rule.app_name,
        PLACEHOLDER_TIME: str(now if now is not None else now_millis()),
    }


def encode_url_value(value: str) -> str:
    """UTF-8 form encoding (space becomes '+'), as webhook receivers expect."""
    return quote_plus(value, encoding="utf-8")


def render_url(url: str, title: str, text: str) -> str:
    """Render a webhook URL: only $title/$text, each value percent-encoded."""
    return render(
        url,
        {PLACEHOLDER_TITLE: title, PLACEHOLDER_TEXT: text},
        placeholders=URL_PLACEHOLDERS,
        encode=encode_url_value,
    )
