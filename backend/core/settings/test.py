# flake8: noqa
"""
Test settings for the Finance Records application.

In-memory SQLite, a fast password hasher and a throwaway upload directory.
"""

import tempfile

from .base import *

ENVIRONMENT = "test"

DEBUG = False
SECRET_KEY = "test-secret-key"
ALLOWED_HOSTS = ["testserver", "localhost"]

JWT_SECRET = "test-jwt-secret"
SIMPLE_JWT["SIGNING_KEY"] = JWT_SECRET

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

PASSWORD_HASHERS = [
    "django.contrib.auth.hashers.MD5PasswordHasher",
]
BCRYPT_ROUNDS = 4

UPLOAD_DIR = tempfile.mkdtemp(prefix="finance-records-uploads-")
MEDIA_ROOT = UPLOAD_DIR
FILE_VIEW_ALLOWED_ORIGIN = "http://localhost:3000"

CORS_ALLOWED_ORIGINS = ["http://localhost:3000"]

# Keep test output quiet
for logger_name in ["django", "core", "users", "finance"]:
    LOGGING["loggers"][logger_name]["level"] = "CRITICAL"
