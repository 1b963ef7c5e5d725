"""Development settings for TripDesk.

Debug on, all hosts allowed, e-mail printed to the console. Do not use
these settings in production!
"""

from .base import *  # noqa: F401,F403

DEBUG = True

ALLOWED_HOSTS = ['*']

EMAIL_BACKEND = 'django.core.mail.backends.console.EmailBackend'
