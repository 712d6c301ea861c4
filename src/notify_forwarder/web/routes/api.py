"""API blueprint: notification ingest, rule CRUD, status."""

import logging
import threading
import time

from flask import Blueprint, jsonify, request
from voluptuous import Invalid

from notify_forwarder.config import RULE_SCHEMA
from notify_forwarder.logging_utils import error_buffer
from notify_forwarder.models import ForwardRule

logger = logging.getLogger("notify-forwarder")


def create_bp(orchestrator):
    """Create API blueprint with routes closed over orchestrator."""
    bp = Blueprint("api", __name__)
    rule_store = orchestrator.rule_store
    pipeline = orchestrator.pipeline
    # Serializes id generation with the save that claims the id
    create_lock = threading.Lock()

    def _new_rule_id() -> str:
        """Creation time in ms, bumped past ids already in the store."""
        candidate = int(time.time() * 1000)
        while rule_store.get_by_id(str(candidate)) is not None:
            candidate += 1
        return str(candidate)

    def _validated_rule(body, rule_id: str | None = None):
        """Return (ForwardRule, None) or (None, error response)."""
        if not isinstance(body, dict):
            return None, (jsonify({"error": "Request body must be a JSON object"}), 400)
        if rule_id is not None:
            body = {**body, "id": rule_id}
        try:
            validated = RULE_SCHEMA(body)
        except Invalid as e:
            return None, (jsonify({"error": str(e)}), 400)
        if not validated.get("id"):
            # Same id scheme as rules created on the device: creation time in ms
            validated["id"] = _new_rule_id()
        return ForwardRule.from_dict(validated), None

    @bp.route("/notifications", methods=["POST"])
    def ingest_notification():
        body = request.get_json(silent=True)
        if not isinstance(body, dict):
            return jsonify({"error": "Request body must be a JSON object"}), 400
        matched = pipeline.on_event(body)
        return jsonify({"matched": [r.id for r in matched]}), 202

    @bp.route("/rules", methods=["GET"])
    def list_rules():
        return jsonify({"rules": [r.to_dict() for r in rule_store.list()]})

    @bp.route("/rules/<rule_id>", methods=["GET"])
    def get_rule(rule_id):
        rule = rule_store.get_by_id(rule_id)
        if rule is None:
            return jsonify({"error": "Rule not found"}), 404
        return jsonify(rule.to_dict())

    @bp.route("/rules", methods=["POST"])
    def create_rule():
        with create_lock:
            rule, error = _validated_rule(request.get_json(silent=True))
            if error:
                return error
            rule_store.save(rule)
        logger.info("Saved rule %s (%s, %s)", rule.id, rule.name, rule.type.value)
        return jsonify(rule.to_dict()), 201

    @bp.route("/rules/<rule_id>", methods=["PUT"])
    def update_rule(rule_id):
        if rule_store.get_by_id(rule_id) is None:
            return jsonify({"error": "Rule not found"}), 404
        rule, error = _validated_rule(request.get_json(silent=True), rule_id)
        if error:
            return error
        rule_store.save(rule)
        logger.info("Updated rule %s", rule.id)
        return jsonify(rule.to_dict())

    @bp.route("/rules/<rule_id>", methods=["DELETE"])
    def delete_rule(rule_id):
        if not rule_store.delete(rule_id):
            return jsonify({"error": "Rule not found"}), 404
        logger.info("Deleted rule %s", rule_id)
        return jsonify({"deleted": rule_id})

    @bp.route("/status")
    def status():
        return jsonify({
            "version": orchestrator.version,
            "uptime_seconds": round(orchestrator.uptime_seconds, 1),
            "rules": len(rule_store.list()),
            "errors": error_buffer.get_all(),
            "failures_by_rule": error_buffer.failures_by_rule(),
        })

    return bp
