"""Test settings for SmartPark project.

In-memory SQLite, eager Celery and a deterministic simulated gateway.
Set DB_ENGINE/DB_NAME to run the suite (including the concurrency
tests) against PostgreSQL.
"""

from .base import *  # noqa: F401,F403

DEBUG = False

SECRET_KEY = 'test-secret-key'

if get_env('DB_ENGINE') is None:  # noqa: F405
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': ':memory:',
        }
    }

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

STORAGES = {
    'default': {'BACKEND': 'django.core.files.storage.FileSystemStorage'},
    'staticfiles': {'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage'},
}

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = 'memory://'
CELERY_RESULT_BACKEND = 'cache+memory://'

PAYMENT_GATEWAY = {
    **PAYMENT_GATEWAY,  # noqa: F405
    'API_URL': '',
    'API_KEY': '',
    'CHARGE_SUCCESS_RATE': 1.0,
    'REFUND_SUCCESS_RATE': 1.0,
    'SIMULATED_LATENCY': 0,
}

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "handlers": {"null": {"class": "logging.NullHandler"}},
    "root": {"handlers": ["null"], "level": "WARNING"},
}
