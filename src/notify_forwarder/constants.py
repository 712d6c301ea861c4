"""
Shared constants for notification extraction, templating, and transports.

Centralizes the platform extras keys, placeholder vocabulary, and transport
defaults so the extractor, template engine, and forwarders do not duplicate
magic strings or numbers.
"""

# Platform notification extras keys (Android Notification.EXTRA_*). The ingest
# adapter passes extras through under these names.
EXTRA_TITLE: str = "android.title"
EXTRA_TEXT: str = "android.text"
EXTRA_BIG_TEXT: str = "android.bigText"
EXTRA_TEXT_LINES: str = "android.textLines"
EXTRA_MESSAGES: str = "android.messages"
EXTRA_REMOTE_INPUT_HISTORY: str = "android.remoteInputHistory"

# Package name the platform itself posts under (synthetic-input notifications).
SYSTEM_PACKAGE: str = "android"

# Text shown in place of hidden content on the lock screen. First entry is the
# placeholder observed on the reference devices (zh-CN ROM).
DEFAULT_REDACTION_PLACEHOLDERS: tuple[str, ...] = ("内容已隐藏", "Contents hidden")

# Template placeholders. HTTP URLs only support title/text.
PLACEHOLDER_TITLE: str = "title"
PLACEHOLDER_TEXT: str = "text"
PLACEHOLDER_APP_PACKAGE: str = "app_package"
PLACEHOLDER_APP_NAME: str = "app_name"
PLACEHOLDER_TIME: str = "time"
TEMPLATE_PLACEHOLDERS: tuple[str, ...] = (
    PLACEHOLDER_APP_PACKAGE,
    PLACEHOLDER_APP_NAME,
    PLACEHOLDER_TITLE,
    PLACEHOLDER_TEXT,
    PLACEHOLDER_TIME,
)
URL_PLACEHOLDERS: tuple[str, ...] = (PLACEHOLDER_TITLE, PLACEHOLDER_TEXT)

# HTTP webhook: empty form body, per-phase timeout in seconds.
WEBHOOK_CONTENT_TYPE: str = "application/x-www-form-urlencoded"
DEFAULT_HTTP_TIMEOUT: float = 10.0
DEFAULT_HTTP_MAX_WORKERS: int = 4

# MQTT: QoS 1 ("at least once"), plain tcp, default port as stored on rules.
MQTT_QOS: int = 1
DEFAULT_MQTT_PORT: str = "1883"
DEFAULT_MQTT_CONNECT_TIMEOUT: float = 10.0
DEFAULT_MQTT_PUBLISH_TIMEOUT: float = 10.0
DEFAULT_MQTT_KEEPALIVE: int = 60
DEFAULT_MQTT_CLIENT_ID_PREFIX: str = "MessageBox_"
DEFAULT_MQTT_MAX_WORKERS: int = 4

# Rule store file under STORAGE_PATH.
DEFAULT_RULES_FILENAME: str = "rules.json"

# Error buffer for /api/status: max number of recent ERROR/WARNING log entries.
ERROR_BUFFER_MAX_SIZE: int = 10

# Web server (Gunicorn, single worker). Threads bound concurrent API requests;
# shutdown allows in-flight forwards to finish their own timeouts plus a margin.
DEFAULT_FLASK_PORT: int = 5080
DEFAULT_WEB_THREADS: int = 8
SHUTDOWN_MARGIN_SECONDS: float = 5.0
# Set by run_server.py; wsgi.py refuses to load without it. The rule store
# lives in process memory, so a second worker would serve a stale copy.
SINGLE_WORKER_ENV: str = "NOTIFY_FORWARDER_SINGLE_WORKER"
