"""
Test settings: DATABASE_URL when provided (CI Postgres), in-memory SQLite otherwise.
SELECT ... FOR UPDATE is a no-op on SQLite; the suite is single-threaded.
"""
import os

os.environ.setdefault('DATABASE_URL', 'sqlite://:memory:')

from .base import *

DEBUG = False

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

LOGGING['root']['level'] = 'WARNING'
LOGGING['loggers']['retests']['level'] = 'WARNING'
