"""
Django settings for lingocards.

Every deployment-specific value can be overridden from the environment.
"""

import os
from pathlib import Path

from lingocards.log import configure_logging

BASE_DIR = Path(__file__).resolve().parent.parent


def env_bool(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY", "dev-only-insecure-key")
DEBUG = env_bool("DJANGO_DEBUG", False)
ALLOWED_HOSTS = [
    h.strip()
    for h in os.environ.get("DJANGO_ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",")
    if h.strip()
]

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django.contrib.auth",
    "rest_framework",
    "lingocards",
    "study",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
    "lingocards.middleware.HeaderUserMiddleware",
]

ROOT_URLCONF = "lingocards.urls"
WSGI_APPLICATION = "lingocards.wsgi.application"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": os.environ.get("LINGOCARDS_DB_PATH", str(BASE_DIR / "db.sqlite3")),
        "OPTIONS": {
            # Seconds a writer waits on a locked database before OperationalError
            "timeout": float(os.environ.get("LINGOCARDS_DB_TIMEOUT", "5")),
            # Take the write lock at BEGIN so concurrent reviews queue on it
            "transaction_mode": "IMMEDIATE",
        },
        "TEST": {
            # File backed so threaded tests share one database
            "NAME": os.environ.get(
                "LINGOCARDS_TEST_DB_PATH", str(BASE_DIR / "test_db.sqlite3")
            ),
        },
    }
}

AUTH_USER_MODEL = "lingocards.User"
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [
        "lingocards.authentication.HeaderUserAuthentication",
    ],
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.IsAuthenticated",
    ],
    "DEFAULT_RENDERER_CLASSES": [
        "rest_framework.renderers.JSONRenderer",
    ],
    "EXCEPTION_HANDLER": "study.api.exceptions.exception_handler",
    "UNAUTHENTICATED_USER": "django.contrib.auth.models.AnonymousUser",
}

# Seconds a review or edit waits for the per-card lock; None waits forever
_store_timeout = os.environ.get("STUDY_STORE_TIMEOUT_SECONDS", "5")
STUDY_STORE_TIMEOUT_SECONDS = float(_store_timeout) if _store_timeout else None

LOGGING_CONFIG = None
LOG_LEVEL = os.environ.get("LINGOCARDS_LOG_LEVEL", "INFO")
LOG_JSON = env_bool("LINGOCARDS_LOG_JSON", not DEBUG)
configure_logging(LOG_LEVEL, json=LOG_JSON)
