"""
Base interface for forwarders and the standard dispatch result type.

Forwarders return DispatchResult (not transport-specific objects) so callers
and logs see the same shape whether a rule went out over HTTP or MQTT.
"""

from abc import ABC, abstractmethod
from concurrent.futures import Future
from typing import NotRequired, TypedDict

from notify_forwarder.logging_utils import forward_tags
from notify_forwarder.models import ForwardRule, NotificationEvent


class DispatchResult(TypedDict):
    """Outcome of one forward attempt.

    forwarder, rule and status are always set; message carries the failure
    reason or the HTTP status code.
    """

    forwarder: str
    rule: str
    status: str  # "success" or "failure"
    message: NotRequired[str | None]


class BaseForwarder(ABC):
    """Abstract base for rule transports (HTTP webhook, MQTT publish)."""

    name: str = "BASE"

    @abstractmethod
    def dispatch(self, rule: ForwardRule, event: NotificationEvent) -> Future:
        """Forward event under rule without blocking the caller.

        Everything needed from event is captured before returning; the work
        itself runs on the forwarder's worker pool. The returned Future
        resolves to a DispatchResult and never carries an exception.
        """
        ...

    @abstractmethod
    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting work and release worker threads."""
        ...

    def _tags(self, rule: ForwardRule) -> dict:
        """Logging extra that attributes a failure record to rule in /api/status."""
        return forward_tags(rule.id, self.name)

    def _result(self, rule: ForwardRule, status: str, message: str | None = None) -> DispatchResult:
        result: DispatchResult = {"forwarder": self.name, "rule": rule.id, "status": status}
        if message is not None:
            result["message"] = message
        return result
