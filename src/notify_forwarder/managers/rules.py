"""Thread-safe forwarding rule storage.

Rules live in a JSON file under the application storage path so they
persist across restarts. The file is read once at startup; the in-memory
list is the source of truth afterwards and every change is written back
atomically. The lock covers concurrent Flask request threads editing rules
while notification threads take snapshots.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading

from voluptuous import Invalid

from notify_forwarder.config import RULE_SCHEMA
from notify_forwarder.constants import DEFAULT_RULES_FILENAME
from notify_forwarder.models import ForwardRule

logger = logging.getLogger("notify-forwarder")


class RuleStore:
    """Durable mapping from rule id to ForwardRule.

    list() returns an immutable snapshot; callers never see later edits.
    """

    def __init__(self, storage_path: str, filename: str = DEFAULT_RULES_FILENAME) -> None:
        """Initialize and load existing rules.

        Args:
            storage_path: Directory under which the rules file is created
                (e.g. config STORAGE_PATH).
            filename: Rules file name.
        """
        self._storage_path = os.path.realpath(os.path.abspath(storage_path))
        self._file_path = os.path.join(self._storage_path, filename)
        self._lock = threading.Lock()
        self._rules: list[ForwardRule] = self._load()

    @property
    def file_path(self) -> str:
        return self._file_path

    def list(self) -> tuple[ForwardRule, ...]:
        with self._lock:
            return tuple(self._rules)

    def get_by_id(self, rule_id: str) -> ForwardRule | None:
        with self._lock:
            for rule in self._rules:
                if rule.id == rule_id:
                    return rule
        return None

    def save(self, rule: ForwardRule) -> None:
        """Insert rule, or replace the stored rule with the same id."""
        with self._lock:
            rules = list(self._rules)
            for i, existing in enumerate(rules):
                if existing.id == rule.id:
                    rules[i] = rule
                    break
            else:
                rules.append(rule)
            self._write(rules)
            self._rules = rules

    def delete(self, rule_id: str) -> bool:
        """Remove the rule with rule_id. Returns False if there was none."""
        with self._lock:
            rules = [r for r in self._rules if r.id != rule_id]
            if len(rules) == len(self._rules):
                return False
            self._write(rules)
            self._rules = rules
            return True

    def _load(self) -> list[ForwardRule]:
        """Read and validate the rules file; missing or invalid file = no rules."""
        if not os.path.isfile(self._file_path):
            return []
        try:
            with open(self._file_path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error("Could not read rules file %s: %s", self._file_path, e)
            return []
        if not isinstance(data, list):
            logger.error("Rules file %s does not contain a list", self._file_path)
            return []

        rules: list[ForwardRule] = []
        for record in data:
            try:
                validated = RULE_SCHEMA(record)
            except Invalid as e:
                logger.warning("Skipping invalid rule %r in %s: %s", record, self._file_path, e)
                continue
            if not validated.get("id"):
                logger.warning("Skipping rule without id in %s", self._file_path)
                continue
            rules.append(ForwardRule.from_dict(validated))
        logger.info("Loaded %d rule(s) from %s", len(rules), self._file_path)
        return rules

    def _write(self, rules: list[ForwardRule]) -> None:
        """Write rules as JSON atomically; creates parent dir and file if needed."""
        os.makedirs(self._storage_path, exist_ok=True)
        tmp_fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=self._storage_path,
            delete=False,
            suffix=".tmp",
            encoding="utf-8",
        )
        tmp_path = tmp_fd.name
        try:
            json.dump([r.to_dict() for r in rules], tmp_fd, indent=2, ensure_ascii=False)
            tmp_fd.close()
            os.replace(tmp_path, self._file_path)
        except Exception:
            tmp_fd.close()
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise
