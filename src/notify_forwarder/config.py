"""Configuration loading and validation."""

import os
import logging
import sys

import yaml
from voluptuous import (
    ALLOW_EXTRA,
    All,
    Coerce,
    In,
    Invalid,
    Optional,
    Range,
    REMOVE_EXTRA,
    Required,
    Schema,
    Upper,
)

from notify_forwarder.constants import (
    DEFAULT_HTTP_MAX_WORKERS,
    DEFAULT_HTTP_TIMEOUT,
    DEFAULT_MQTT_CLIENT_ID_PREFIX,
    DEFAULT_MQTT_CONNECT_TIMEOUT,
    DEFAULT_MQTT_KEEPALIVE,
    DEFAULT_MQTT_MAX_WORKERS,
    DEFAULT_MQTT_PORT,
    DEFAULT_MQTT_PUBLISH_TIMEOUT,
    DEFAULT_REDACTION_PLACEHOLDERS,
    DEFAULT_RULES_FILENAME,
    DEFAULT_FLASK_PORT,
    DEFAULT_WEB_THREADS,
)

logger = logging.getLogger('notify-forwarder')


# One forwarding rule record (rules.json entries, config.yaml `rules`, API bodies).
# Transport-specific fields are optional here; blank broker host or topic is
# reported when the rule is dispatched, not when it is stored.
RULE_SCHEMA = Schema({
    Optional('id'): Coerce(str),
    Optional('name', default=''): str,
    # HTTP or MQTT (case-insensitive on input, stored upper-case).
    Required('type'): All(str, Upper, In(['HTTP', 'MQTT'])),
    # Exact package name of the source app; empty matches nothing.
    Required('app_package_name'): str,
    Optional('app_name', default=''): str,
    # Comma-separated keywords; empty = forward everything from the app.
    Optional('filter_keywords', default=''): str,
    # HTTP: webhook URL, may contain $title / $text.
    Optional('server_url', default=''): str,
    # MQTT connection and message.
    Optional('broker_host', default=''): str,
    Optional('port', default=DEFAULT_MQTT_PORT): Coerce(str),
    Optional('client_id', default=''): str,
    Optional('username', default=''): str,
    Optional('password', default=''): str,
    Optional('topic', default=''): str,
    # May contain $title, $text, $app_package, $app_name, $time.
    Optional('message_template', default=''): str,
}, extra=REMOVE_EXTRA)


CONFIG_SCHEMA = Schema({
    Optional('settings'): {
        Optional('log_level'): str,                    # DEBUG, INFO, WARNING, ERROR.
        Optional('redaction_placeholders'): [str],     # Lock-screen texts that mean "content hidden".
    },
    Optional('storage'): {
        Optional('path'): str,                         # Directory holding the rules file.
        Optional('rules_file'): str,                   # Rules file name under storage path.
    },
    Optional('http'): {
        Optional('timeout_seconds'): All(Coerce(float), Range(min=0.1)),  # Connect and read bound.
        Optional('max_workers'): All(int, Range(min=1)),                  # Concurrent webhook requests.
    },
    Optional('mqtt'): {
        Optional('connect_timeout_seconds'): All(Coerce(float), Range(min=0.1)),
        Optional('publish_timeout_seconds'): All(Coerce(float), Range(min=0.1)),
        Optional('keepalive'): All(int, Range(min=1)),
        Optional('client_id_prefix'): str,             # Used when a rule has no client id.
        Optional('max_workers'): All(int, Range(min=1)),  # Concurrent broker sessions.
    },
    Optional('web'): {
        Optional('host'): str,
        Optional('port'): int,
        Optional('threads'): All(int, Range(min=1)),   # Gunicorn request threads.
    },
    # Rules upserted into the rule store at startup.
    Optional('rules'): [RULE_SCHEMA],
}, extra=ALLOW_EXTRA)


def load_config() -> dict:
    """Load configuration from config.yaml merged with environment variables.

    Priority (highest to lowest):
    1. Environment variables
    2. config.yaml
    3. Default values
    """
    config = {
        'LOG_LEVEL': 'INFO',
        'REDACTION_PLACEHOLDERS': list(DEFAULT_REDACTION_PLACEHOLDERS),
        'STORAGE_PATH': '/app/storage',
        'RULES_FILE': DEFAULT_RULES_FILENAME,
        'HTTP_TIMEOUT': DEFAULT_HTTP_TIMEOUT,
        'HTTP_MAX_WORKERS': DEFAULT_HTTP_MAX_WORKERS,
        'MQTT_CONNECT_TIMEOUT': DEFAULT_MQTT_CONNECT_TIMEOUT,
        'MQTT_PUBLISH_TIMEOUT': DEFAULT_MQTT_PUBLISH_TIMEOUT,
        'MQTT_KEEPALIVE': DEFAULT_MQTT_KEEPALIVE,
        'MQTT_CLIENT_ID_PREFIX': DEFAULT_MQTT_CLIENT_ID_PREFIX,
        'MQTT_MAX_WORKERS': DEFAULT_MQTT_MAX_WORKERS,
        'FLASK_HOST': '0.0.0.0',
        'FLASK_PORT': DEFAULT_FLASK_PORT,
        'WEB_THREADS': DEFAULT_WEB_THREADS,
        'RULES': [],
    }

    config_paths = ['/app/config.yaml', '/app/storage/config.yaml', './config.yaml']
    config_loaded = False

    for path in config_paths:
        if os.path.exists(path):
            try:
                logger.info(f"Loading config from {path}")
                with open(path, 'r') as f:
                    yaml_config = yaml.safe_load(f) or {}

                try:
                    yaml_config = CONFIG_SCHEMA(yaml_config)
                except Invalid as e:
                    logger.error(f"Invalid configuration in {path}: {e}")
                    sys.exit(1)

                if 'settings' in yaml_config:
                    settings = yaml_config['settings']
                    config['LOG_LEVEL'] = settings.get('log_level', config['LOG_LEVEL'])
                    placeholders = settings.get('redaction_placeholders')
                    if placeholders:
                        config['REDACTION_PLACEHOLDERS'] = [str(p) for p in placeholders]

                if 'storage' in yaml_config:
                    storage = yaml_config['storage']
                    config['STORAGE_PATH'] = storage.get('path', config['STORAGE_PATH'])
                    config['RULES_FILE'] = storage.get('rules_file', config['RULES_FILE'])

                if 'http' in yaml_config:
                    http_cfg = yaml_config['http']
                    config['HTTP_TIMEOUT'] = http_cfg.get('timeout_seconds', config['HTTP_TIMEOUT'])
                    config['HTTP_MAX_WORKERS'] = http_cfg.get('max_workers', config['HTTP_MAX_WORKERS'])

                if 'mqtt' in yaml_config:
                    mqtt_cfg = yaml_config['mqtt']
                    config['MQTT_CONNECT_TIMEOUT'] = mqtt_cfg.get('connect_timeout_seconds', config['MQTT_CONNECT_TIMEOUT'])
                    config['MQTT_PUBLISH_TIMEOUT'] = mqtt_cfg.get('publish_timeout_seconds', config['MQTT_PUBLISH_TIMEOUT'])
                    config['MQTT_KEEPALIVE'] = mqtt_cfg.get('keepalive', config['MQTT_KEEPALIVE'])
                    config['MQTT_CLIENT_ID_PREFIX'] = mqtt_cfg.get('client_id_prefix', config['MQTT_CLIENT_ID_PREFIX'])
                    config['MQTT_MAX_WORKERS'] = mqtt_cfg.get('max_workers', config['MQTT_MAX_WORKERS'])

                if 'web' in yaml_config:
                    web = yaml_config['web']
                    config['FLASK_HOST'] = web.get('host', config['FLASK_HOST'])
                    config['FLASK_PORT'] = web.get('port', config['FLASK_PORT'])
                    config['WEB_THREADS'] = web.get('threads', config['WEB_THREADS'])

                config['RULES'] = list(yaml_config.get('rules') or [])

                config_loaded = True
                break

            except Exception as e:
                logger.error(f"Error loading config from {path}: {e}")

    if not config_loaded:
        logger.info("No config.yaml found, using defaults")

    # Environment variables override everything (for deployment)
    config['LOG_LEVEL'] = os.getenv('LOG_LEVEL') or config['LOG_LEVEL']
    config['STORAGE_PATH'] = os.getenv('STORAGE_PATH') or config['STORAGE_PATH']
    config['FLASK_HOST'] = os.getenv('FLASK_HOST') or config['FLASK_HOST']
    config['FLASK_PORT'] = int(os.getenv('FLASK_PORT', str(config['FLASK_PORT'])))
    config['HTTP_TIMEOUT'] = float(os.getenv('HTTP_TIMEOUT', str(config['HTTP_TIMEOUT'])))
    config['MQTT_CONNECT_TIMEOUT'] = float(os.getenv('MQTT_CONNECT_TIMEOUT', str(config['MQTT_CONNECT_TIMEOUT'])))

    return config
