"""
Development settings
"""
from .base import *

DEBUG = True

LOGGING['loggers']['retests']['level'] = env('RETEST_LOG_LEVEL', default='DEBUG')
