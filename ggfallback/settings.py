"""
Django settings for the GoldenGate fallback activation project.

Only the management commands are used; there is no web surface and no
database of our own (the checkpoint tool connects to Oracle directly).
"""

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.environ.get('DJANGO_SECRET_KEY', 'ggfallback-insecure-local-key')

DEBUG = os.environ.get('DJANGO_DEBUG', 'False').lower() in ('1', 'true', 'yes')

ALLOWED_HOSTS = []

INSTALLED_APPS = [
    'cutover',
]

DATABASES = {}

USE_TZ = True
TIME_ZONE = 'UTC'


def _env_bool(name, default):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.lower() in ('1', 'true', 'yes', 'on')


# ====================================
# GOLDENGATE
# ====================================
GOLDENGATE_CONFIG = {
    # Internal deployments use self-signed certificates
    'VERIFY_TLS': _env_bool('GG_VERIFY_TLS', False),
    'REQUEST_TIMEOUT': float(os.environ.get('GG_REQUEST_TIMEOUT', 90)),
    'POLL_INTERVAL': float(os.environ.get('GG_POLL_INTERVAL', 2)),
    'WAIT_TIMEOUT': float(os.environ.get('GG_WAIT_TIMEOUT', 30)),
    'SETTLE_DELAY': float(os.environ.get('GG_SETTLE_DELAY', 5)),
    'LOG_DIR': os.environ.get('GG_LOG_DIR', '.'),
    'STOPPED_STATUSES': ['stopped', 'abended', 'killed'],
    # Per kind/action overrides, e.g. {'replicat': {'start': ['OGG-15445']}}
    'ACK_MARKERS': {},
    'ALREADY_MARKERS': {},
}


# ====================================
# LOGGING
# ====================================
LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{asctime} {levelname} {name} {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'loggers': {
        'cutover': {
            'handlers': ['console'],
            'level': os.environ.get('CUTOVER_LOG_LEVEL', 'WARNING'),
            'propagate': False,
        },
        'ggfallback': {
            'handlers': ['console'],
            'level': os.environ.get('CUTOVER_LOG_LEVEL', 'WARNING'),
            'propagate': False,
        },
    },
}
