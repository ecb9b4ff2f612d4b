"""Development settings for SmartPark project.

This module extends the base settings with development specific
configuration, such as enabling debug, allowing all hosts and slowing
down the simulated payment gateway. Do not use these settings in production!
"""

from .base import *  # noqa: F401,F403

# Enable debug mode for development
DEBUG = True

# Allow all hosts in development
ALLOWED_HOSTS = ['*']

# Slow the simulated gateway down a little so the UI can show progress
PAYMENT_GATEWAY = {**PAYMENT_GATEWAY, 'SIMULATED_LATENCY': 1}  # noqa: F405
