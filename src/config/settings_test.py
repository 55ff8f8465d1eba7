"""Settings for the pytest run.

Seeds the environment before importing the base settings so the
fail-fast ``SECRET_KEY`` lookup succeeds without a ``.env`` file.
"""

import os

os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("PAYMENT_GATEWAY_SECRET_KEY", "sk_test_webhook_secret")
os.environ.setdefault("PAYMENT_GATEWAY_BASE_URL", "https://gateway.test")
os.environ.setdefault("PAYMENT_CALLBACK_URL", "https://shop.test")

from config.settings import *  # noqa: E402,F401,F403

DEBUG = False

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
    }
}

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]
