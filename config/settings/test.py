"""Test settings for Homestead project.

In-memory SQLite, eager Celery, locmem email and fixed gateway secrets so
signatures can be produced inside tests.
"""

from .base import *  # noqa: F401,F403

DEBUG = False

SECRET_KEY = 'test-secret-key'
ENCRYPTION_KEY = 'test-encryption-key'

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

EMAIL_BACKEND = 'django.core.mail.backends.locmem.EmailBackend'

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = 'memory://'
CELERY_RESULT_BACKEND = 'cache+memory://'

STORAGES = {
    'default': {'BACKEND': 'django.core.files.storage.FileSystemStorage'},
    'staticfiles': {'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage'},
}

PAYMENT_GATEWAY = {
    'KEY_ID': 'rzp_test_key',
    'KEY_SECRET': 'test-key-secret',
    'WEBHOOK_SECRET': 'test-webhook-secret',
    'API_BASE_URL': 'https://api.razorpay.test/v1',
    'TIMEOUT': 5,
    'REQUIRE_SIGNATURE': True,
    'SIMULATE': False,
    'MERCHANT_NAME': 'Homestead',
}

PAYMENT_SESSION_TTL_MINUTES = 30

BOOKING_LEDGER_MAX_ATTEMPTS = 3
BOOKING_LEDGER_BACKOFF_SECONDS = 0
BOOKING_LEDGER_MAX_BACKOFF_SECONDS = 0

SMS_GATEWAY_URL = ''
BOOKING_ADMIN_EMAILS = ['ops@homestead.test']
