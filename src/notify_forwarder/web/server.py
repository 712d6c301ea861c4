"""Flask app for notification ingest and rule management."""

import logging

from flask import Flask, jsonify

from notify_forwarder.web.routes import create_api_bp

logger = logging.getLogger('notify-forwarder')


def create_app(orchestrator):
    """Create Flask app with all blueprints. Routes close over orchestrator."""
    app = Flask(__name__)
    app.register_blueprint(create_api_bp(orchestrator), url_prefix='/api')

    @app.route('/health')
    def health():
        return jsonify({"status": "ok"})

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({"error": "Method not allowed"}), 405

    return app
