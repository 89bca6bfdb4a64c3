"""
Base Django settings for the Finance Records application.

Shared configuration for every environment. Environment modules (dev,
production, test) import everything from here and override what differs:
database, security flags, CORS origins and logging handlers.
"""

import os
from pathlib import Path

from decouple import Csv, config

from .utils import parse_duration

BASE_DIR = Path(__file__).resolve().parent.parent.parent

# =============================================================================
# CORE SETTINGS
# =============================================================================

SECRET_KEY = config("SECRET_KEY", default="django-insecure-change-me")
DEBUG = False
ALLOWED_HOSTS = []

ENVIRONMENT = "base"

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    # Third-party apps
    "rest_framework",
    "corsheaders",
    # Local apps
    "users",
    "finance",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "corsheaders.middleware.CorsMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
    "core.middleware.RequestLoggingMiddleware",
]

ROOT_URLCONF = "core.urls"
WSGI_APPLICATION = "core.wsgi.application"
APPEND_SLASH = False

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

# =============================================================================
# AUTHENTICATION & PASSWORD HASHING
# =============================================================================

AUTH_USER_MODEL = "users.User"

# Work factor for bcrypt password hashes
BCRYPT_ROUNDS = config("BCRYPT_ROUNDS", default=12, cast=int)

PASSWORD_HASHERS = [
    "users.hashers.ConfiguredBCryptSHA256PasswordHasher",
    "django.contrib.auth.hashers.PBKDF2PasswordHasher",
]

AUTH_PASSWORD_VALIDATORS = []

# =============================================================================
# DATABASE
# =============================================================================

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# Upper bound of pooled psycopg connections per process
DB_POOL_MAX_SIZE = config("DB_POOL_MAX_SIZE", default=10, cast=int)

# Attempts at allocating a sequential transaction id before giving up
TRANSACTION_ID_MAX_ATTEMPTS = config("TRANSACTION_ID_MAX_ATTEMPTS", default=5, cast=int)

# =============================================================================
# DJANGO REST FRAMEWORK
# =============================================================================

REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [
        "users.authentication.BearerTokenAuthentication",
    ],
    "DEFAULT_PERMISSION_CLASSES": [
        "users.permissions.IsIdentified",
    ],
    "DEFAULT_RENDERER_CLASSES": [
        "rest_framework.renderers.JSONRenderer",
    ],
    "DEFAULT_PARSER_CLASSES": [
        "rest_framework.parsers.JSONParser",
        "rest_framework.parsers.FormParser",
        "rest_framework.parsers.MultiPartParser",
    ],
    "DEFAULT_PAGINATION_CLASS": "core.pagination.EnvelopePagination",
    "EXCEPTION_HANDLER": "core.exceptions.envelope_exception_handler",
    "COERCE_DECIMAL_TO_STRING": False,
    "UNAUTHENTICATED_USER": "django.contrib.auth.models.AnonymousUser",
}

# =============================================================================
# JWT CONFIGURATION
# =============================================================================

JWT_SECRET = config("JWT_SECRET", default=SECRET_KEY)
JWT_EXPIRES_IN = config("JWT_EXPIRES_IN", default="24h")
JWT_REFRESH_EXPIRES_IN = config("JWT_REFRESH_EXPIRES_IN", default="7d")

SIMPLE_JWT = {
    "ACCESS_TOKEN_LIFETIME": parse_duration(JWT_EXPIRES_IN),
    "REFRESH_TOKEN_LIFETIME": parse_duration(JWT_REFRESH_EXPIRES_IN),
    "ALGORITHM": "HS256",
    "SIGNING_KEY": JWT_SECRET,
    "AUTH_HEADER_TYPES": ("Bearer",),
    "USER_ID_FIELD": "id",
    "USER_ID_CLAIM": "userId",
    "TOKEN_TYPE_CLAIM": "type",
    "UPDATE_LAST_LOGIN": False,
}

# =============================================================================
# FILE UPLOADS (RECEIPTS)
# =============================================================================

UPLOAD_DIR = config("UPLOAD_DIR", default=str(BASE_DIR / "uploads"))
ALLOWED_FILE_TYPES = config(
    "ALLOWED_FILE_TYPES",
    default="image/jpeg,image/png,image/gif,application/pdf",
    cast=Csv(),
)
MAX_FILE_SIZE = config("MAX_FILE_SIZE", default=5 * 1024 * 1024, cast=int)

# Origin allowed to embed receipts served by the file viewer
FILE_VIEW_ALLOWED_ORIGIN = config(
    "FILE_VIEW_ALLOWED_ORIGIN", default="http://localhost:3000"
)

MEDIA_ROOT = UPLOAD_DIR
MEDIA_URL = "/uploads/"

FILE_UPLOAD_MAX_MEMORY_SIZE = MAX_FILE_SIZE
DATA_UPLOAD_MAX_MEMORY_SIZE = MAX_FILE_SIZE

# =============================================================================
# CORS
# =============================================================================

CORS_ALLOWED_ORIGINS = config(
    "CORS_ORIGIN", default="http://localhost:3000", cast=Csv()
)
CORS_ALLOW_CREDENTIALS = True

# =============================================================================
# INTERNATIONALIZATION & STATIC FILES
# =============================================================================

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

STATIC_URL = "/static/"
STATIC_ROOT = BASE_DIR / "staticfiles"

# =============================================================================
# LOGGING
# =============================================================================

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "structured": {
            "format": "{asctime} [{levelname}] {name}: {message}",
            "style": "{",
        },
    },
    "handlers": {
        "console": {
            "level": "INFO",
            "class": "logging.StreamHandler",
            "formatter": "structured",
        },
    },
    "loggers": {
        "django": {
            "handlers": ["console"],
            "level": "INFO",
            "propagate": False,
        },
        "django.request": {
            "handlers": ["console"],
            "level": "WARNING",
            "propagate": False,
        },
        "django.security": {
            "handlers": ["console"],
            "level": "WARNING",
            "propagate": False,
        },
        "django.db.backends": {
            "handlers": ["console"],
            "level": "WARNING",
            "propagate": False,
        },
        "core": {
            "handlers": ["console"],
            "level": "INFO",
            "propagate": False,
        },
        "users": {
            "handlers": ["console"],
            "level": "INFO",
            "propagate": False,
        },
        "finance": {
            "handlers": ["console"],
            "level": "INFO",
            "propagate": False,
        },
    },
}
