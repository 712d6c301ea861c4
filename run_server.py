#!/usr/bin/env python3
"""
Start the notification forwarder under Gunicorn.

Bind address, request threads and the graceful shutdown window all come from
load_config(); see notify_forwarder.main.gunicorn_argv. The process is replaced
by Gunicorn (os.execvp), so container signals reach it directly.

Usage: python run_server.py
"""

import os
import sys

if __name__ == "__main__":
    _src = os.path.join(os.path.dirname(os.path.abspath(__file__)), "src")
    if os.path.isdir(_src) and _src not in sys.path:
        sys.path.insert(0, _src)

from notify_forwarder.config import load_config
from notify_forwarder.main import gunicorn_argv
from notify_forwarder.constants import SINGLE_WORKER_ENV


def main() -> None:
    argv = gunicorn_argv(load_config())
    os.environ[SINGLE_WORKER_ENV] = "1"
    os.execvp(argv[0], argv)


if __name__ == "__main__":
    main()
