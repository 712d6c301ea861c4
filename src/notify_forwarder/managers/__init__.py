"""Persistent state managers."""

from notify_forwarder.managers.rules import RuleStore

__all__ = ["RuleStore"]
