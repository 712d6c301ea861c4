"""HTTP webhook forwarder.

Renders the rule's server URL ($title/$text, percent-encoded) and POSTs an
empty form body to it on a worker thread. The caller never waits; failures
(connection errors, timeouts, invalid URLs, non-2xx) are only logged.
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor

import requests

from notify_forwarder.constants import (
    DEFAULT_HTTP_MAX_WORKERS,
    DEFAULT_HTTP_TIMEOUT,
    WEBHOOK_CONTENT_TYPE,
)
from notify_forwarder.models import ForwardRule, NotificationEvent
from notify_forwarder.services.notifications.base import BaseForwarder, DispatchResult
from notify_forwarder.services.template import render_url

logger = logging.getLogger("notify-forwarder")


class HttpWebhookForwarder(BaseForwarder):
    """POSTs to a templated webhook URL for HTTP rules."""

    name = "HTTP"

    def __init__(
        self,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
        max_workers: int = DEFAULT_HTTP_MAX_WORKERS,
    ) -> None:
        self._timeout = float(timeout)
        self._executor = ThreadPoolExecutor(
            max_workers=max(1, int(max_workers)), thread_name_prefix="http-forward"
        )

    def dispatch(self, rule: ForwardRule, event: NotificationEvent) -> Future:
        url = render_url(rule.server_url, event.title, event.text)
        logger.debug("HTTP rule %s (%s): rendered URL %s", rule.id, rule.name, url)
        return self._executor.submit(self.post, rule, url)

    def post(self, rule: ForwardRule, url: str) -> DispatchResult:
        """Blocking POST of an empty form body; always returns a result."""
        try:
            resp = requests.post(
                url,
                data=b"",
                headers={"Content-Type": WEBHOOK_CONTENT_TYPE},
                # (connect, read)
                timeout=(self._timeout, self._timeout),
            )
        except requests.RequestException as e:
            logger.error("HTTP forward for rule %s failed: %s", rule.id, e, extra=self._tags(rule))
            return self._result(rule, "failure", str(e))
        except Exception as e:
            # urllib3 rejects some malformed hosts with a bare ValueError
            logger.error(
                "HTTP forward for rule %s failed, invalid URL %s: %s", rule.id, url, e,
                extra=self._tags(rule),
            )
            return self._result(rule, "failure", str(e))

        try:
            if resp.status_code >= 300:
                logger.warning(
                    "HTTP forward for rule %s returned HTTP %s", rule.id, resp.status_code,
                    extra=self._tags(rule),
                )
                return self._result(rule, "failure", f"HTTP {resp.status_code}")
            logger.info("HTTP forward for rule %s succeeded: HTTP %s", rule.id, resp.status_code)
            return self._result(rule, "success", f"HTTP {resp.status_code}")
        finally:
            resp.close()

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
