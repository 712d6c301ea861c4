"""Logging setup and the recent-failure buffer behind /api/status.

Forwarders log failures with ``extra=forward_tags(rule_id, forwarder)`` so the
buffer can attribute each WARNING/ERROR record to the rule that produced it.
Records without tags (config, rule store, web) are kept too, just unattributed.
"""

import logging
import threading
import time
from collections import Counter

from notify_forwarder.constants import ERROR_BUFFER_MAX_SIZE

logger = logging.getLogger("notify-forwarder")

MAX_MESSAGE_LENGTH = 500


def forward_tags(rule_id: str, forwarder: str) -> dict:
    """Logging ``extra`` mapping that ties a record to a rule and transport."""
    return {"rule_id": rule_id, "forwarder": forwarder}


class ErrorBuffer:
    """Recent WARNING+ records, newest first, plus per-rule failure counts.

    The entry list is bounded; the counters are not, so /api/status can still
    report how often a rule failed after its entries rotated out.
    """

    def __init__(self, max_size: int = ERROR_BUFFER_MAX_SIZE):
        self._entries: list[dict] = []
        self._max_size = max_size
        self._failures: Counter = Counter()
        self._lock = threading.Lock()

    def append(
        self,
        timestamp: str,
        level: str,
        message: str,
        rule_id: str | None = None,
        forwarder: str | None = None,
    ) -> None:
        entry = {"ts": timestamp, "level": level, "message": (message or "")[:MAX_MESSAGE_LENGTH]}
        if rule_id is not None:
            entry["rule"] = rule_id
            entry["forwarder"] = forwarder
        with self._lock:
            self._entries.append(entry)
            del self._entries[:-self._max_size]
            if rule_id is not None:
                self._failures[rule_id] += 1

    def get_all(self) -> list[dict]:
        with self._lock:
            return list(reversed(self._entries))

    def failures_by_rule(self) -> dict[str, int]:
        with self._lock:
            return dict(self._failures)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._failures.clear()


class ErrorBufferHandler(logging.Handler):
    """Copies WARNING+ records into an ErrorBuffer, keeping forward tags."""

    def __init__(self, buffer: ErrorBuffer):
        super().__init__(level=logging.WARNING)
        self._buffer = buffer

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self._buffer.append(
                time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(record.created)),
                record.levelname,
                record.getMessage(),
                rule_id=getattr(record, "rule_id", None),
                forwarder=getattr(record, "forwarder", None),
            )
        except Exception:
            self.handleError(record)


error_buffer = ErrorBuffer()


def setup_logging(log_level: str):
    """Apply the configured level and attach the status buffer once."""
    level = getattr(logging, log_level.upper(), logging.INFO)
    logging.getLogger().setLevel(level)
    logger.setLevel(level)

    if not any(isinstance(h, ErrorBufferHandler) for h in logger.handlers):
        logger.addHandler(ErrorBufferHandler(error_buffer))

    # Werkzeug logs every ingest request; urllib3 every webhook connection
    for name in ("werkzeug", "urllib3", "paho"):
        logging.getLogger(name).setLevel(logging.WARNING)

    logger.info("Log level set to %s", log_level.upper())
