"""Test settings against PostgreSQL.

Same as ``test`` but on a real PostgreSQL server, so ``select_for_update``
row locks are taken and the concurrent booking test runs instead of being
skipped:

    DB_HOST=localhost DB_USER=postgres DB_PASSWORD=postgres \
        pytest --ds=config.settings.test_postgres
"""

import os

from .test import *  # noqa: F401,F403

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.postgresql',
        'NAME': os.environ.get('DB_NAME', 'tripdesk'),
        'USER': os.environ.get('DB_USER', 'postgres'),
        'PASSWORD': os.environ.get('DB_PASSWORD', ''),
        'HOST': os.environ.get('DB_HOST', 'localhost'),
        'PORT': os.environ.get('DB_PORT', '5432'),
    }
}
