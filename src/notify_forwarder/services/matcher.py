"""Rule matching: package equality plus optional keyword filter."""

from collections.abc import Iterable

from notify_forwarder.models import ForwardRule, NotificationEvent


def parse_keywords(filter_keywords: str) -> list[str]:
    """Split a comma-separated filter into trimmed, non-empty keywords."""
    return [k.strip() for k in (filter_keywords or "").split(",") if k.strip()]


def rule_matches(rule: ForwardRule, event: NotificationEvent) -> bool:
    # Empty package on a rule never matches; a rule targets exactly one app.
    if not rule.app_package_name or rule.app_package_name != event.source_package:
        return False
    keywords = parse_keywords(rule.filter_keywords)
    if not keywords:
        return True
    content = event.content
    return any(k in content for k in keywords)


def match(event: NotificationEvent, rules: Iterable[ForwardRule]) -> list[ForwardRule]:
    """Return the rules that apply to event (case-sensitive substring match)."""
    return [r for r in rules if rule_matches(r, event)]
