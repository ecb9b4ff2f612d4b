"""Production settings for SmartPark project.

This module extends the base settings with production specific
configuration. Ensure that sensitive values are provided via
environment variables and that security settings are appropriate for
production use.
"""

from .base import *  # noqa: F401,F403

# Never run with debug enabled in production
DEBUG = False

SECRET_KEY = get_env('DJANGO_SECRET_KEY', required=True)  # noqa: F405

# Allowed hosts should be defined explicitly via environment variable
ALLOWED_HOSTS = get_env('DJANGO_ALLOWED_HOSTS', '').split(',')  # noqa: F405

# Configure secure proxies and cookies
CSRF_COOKIE_SECURE = True
SESSION_COOKIE_SECURE = True

# A real gateway is mandatory in production
PAYMENT_GATEWAY = {  # noqa: F405
    **PAYMENT_GATEWAY,  # noqa: F405
    'API_URL': get_env('PAYMENT_GATEWAY_API_URL', required=True),  # noqa: F405
    'API_KEY': get_env('PAYMENT_GATEWAY_API_KEY', required=True),  # noqa: F405
}
