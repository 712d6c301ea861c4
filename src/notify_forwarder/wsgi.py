"""
Gunicorn entry point: ``notify_forwarder.wsgi:application``.

Loading this module builds the orchestrator, seeds configured rules and
installs SIGTERM/SIGINT handlers that drain the forwarder pools before exit.
"""

import logging
import os
import signal

from notify_forwarder.constants import SINGLE_WORKER_ENV
from notify_forwarder.main import bootstrap
from notify_forwarder.orchestrator import ForwarderOrchestrator

logger = logging.getLogger("notify-forwarder")


def _install_shutdown(orchestrator: ForwarderOrchestrator) -> None:
    def _on_signal(signum: int, frame) -> None:
        logger.info("Signal %s received, draining forwarders", signum)
        orchestrator.stop()
        raise SystemExit(0)

    for sig in (signal.SIGTERM, signal.SIGINT):
        signal.signal(sig, _on_signal)


def create_application():
    """Bootstrap the service and return its Flask app."""
    if os.environ.get(SINGLE_WORKER_ENV) != "1":
        raise RuntimeError(
            f"{SINGLE_WORKER_ENV}=1 is required: start with run_server.py, or run "
            "gunicorn with -w 1 and set it yourself. Rules are held in process "
            "memory and would diverge across workers."
        )
    _, orchestrator = bootstrap()
    orchestrator.start_services()
    _install_shutdown(orchestrator)
    return orchestrator.flask_app


application = create_application()
