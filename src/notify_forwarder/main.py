#!/usr/bin/env python3
"""
Notification Forwarder - Bootstrap and entry point.

Provides bootstrap() for the WSGI worker (notify_forwarder.wsgi). The server is
started via run_server.py (Gunicorn); do not run Flask's built-in server.

Run the app with: python run_server.py
"""

import logging
import sys
from pathlib import Path

from notify_forwarder.config import load_config
from notify_forwarder.constants import (
    DEFAULT_FLASK_PORT,
    DEFAULT_WEB_THREADS,
    SHUTDOWN_MARGIN_SECONDS,
)
from notify_forwarder.logging_utils import setup_logging
from notify_forwarder.orchestrator import ForwarderOrchestrator

# Early logging for config loading (reconfigured after config is loaded)
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %I:%M:%S %p",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logger = logging.getLogger("notify-forwarder")


def _load_version() -> str:
    """Load version from version.txt.

    Looks next to this module first (installed package data), then at the
    project root (running from source or pip install -e .).
    """
    try:
        pkg_dir = Path(__file__).resolve().parent
        for candidate in (
            pkg_dir / "version.txt",
            pkg_dir.parent.parent / "version.txt",
        ):
            if candidate.exists():
                return candidate.read_text().strip()
    except OSError:
        pass
    return "unknown"


def bootstrap() -> tuple[dict, ForwarderOrchestrator]:
    """Load config, setup logging, create and return (config, orchestrator).

    Used by the WSGI entry point (wsgi.py). Does not start the web server.
    """
    config = load_config()
    setup_logging(config.get("LOG_LEVEL", "INFO"))

    version = _load_version()
    logger.info("VERSION = %s", version)

    orchestrator = ForwarderOrchestrator(config, version=version)
    return config, orchestrator


def shutdown_budget(config: dict) -> float:
    """Seconds a stopping worker may need to drain in-flight forwards.

    A webhook can take a connect plus a read timeout; an MQTT forward a
    connect plus a publish acknowledgement wait.
    """
    http = 2 * float(config.get("HTTP_TIMEOUT", 10))
    mqtt = float(config.get("MQTT_CONNECT_TIMEOUT", 10)) + float(config.get("MQTT_PUBLISH_TIMEOUT", 10))
    return max(http, mqtt) + SHUTDOWN_MARGIN_SECONDS


def gunicorn_argv(config: dict) -> list[str]:
    """Command line for the single-worker Gunicorn server serving wsgi:application."""
    host = config.get("FLASK_HOST", "0.0.0.0")
    port = config.get("FLASK_PORT", DEFAULT_FLASK_PORT)
    return [
        sys.executable, "-m", "gunicorn",
        "--bind", f"{host}:{port}",
        "--workers", "1",
        "--threads", str(config.get("WEB_THREADS", DEFAULT_WEB_THREADS)),
        "--graceful-timeout", str(int(shutdown_budget(config))),
        "--capture-output",
        "--enable-stdio-inheritance",
        "notify_forwarder.wsgi:application",
    ]


def main():
    """Entry point: direct user to run_server.py (Gunicorn is the only server)."""
    logger.error(
        "Notification Forwarder must be started with run_server.py (Gunicorn). "
        "Do not use python -m notify_forwarder.main to run the server."
    )
    sys.exit(1)


if __name__ == "__main__":
    main()
