# flake8: noqa
"""
Development settings for the Finance Records backend.

Local PostgreSQL, permissive CORS for the frontend dev server, and DEBUG
logging to ``logs/dev.log`` next to the project.
"""

from .base import *
import logging
from .utils import (
    load_environment_config,
    parse_duration,
    rotating_log_handler,
    route_project_loggers,
)

config = load_environment_config("development")

ENVIRONMENT = "development"

# =============================================================================
# SECURITY
# =============================================================================

DEBUG = True
SECRET_KEY = config("SECRET_KEY", default="django-insecure-dev-key-change-in-production")
ALLOWED_HOSTS = ["localhost", "127.0.0.1", "0.0.0.0"]

JWT_SECRET = config("JWT_SECRET", default=SECRET_KEY)
SIMPLE_JWT.update(
    {
        "SIGNING_KEY": JWT_SECRET,
        "ACCESS_TOKEN_LIFETIME": parse_duration(
            config("JWT_EXPIRES_IN", default=JWT_EXPIRES_IN)
        ),
        "REFRESH_TOKEN_LIFETIME": parse_duration(
            config("JWT_REFRESH_EXPIRES_IN", default=JWT_REFRESH_EXPIRES_IN)
        ),
    }
)

# The frontend dev server runs on port 3000
CORS_ALLOWED_ORIGINS = ["http://localhost:3000", "http://127.0.0.1:3000"]
CORS_ALLOW_ALL_ORIGINS = True

# =============================================================================
# DATABASE
# =============================================================================

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.postgresql",
        "NAME": config("POSTGRES_DB", default="finance_records"),
        "USER": config("POSTGRES_USER", default="postgres"),
        "PASSWORD": config("POSTGRES_PASSWORD", default=""),
        "HOST": config("DB_HOST", default="localhost"),
        "PORT": config("DB_PORT", default="5432"),
        "OPTIONS": {
            "pool": {"min_size": 1, "max_size": DB_POOL_MAX_SIZE, "timeout": 10},
        },
    }
}

os.makedirs(UPLOAD_DIR, exist_ok=True)

# =============================================================================
# LOGGING
# =============================================================================

LOG_DIR = BASE_DIR / "logs"
os.makedirs(LOG_DIR, exist_ok=True)

# "DEBUG" prints every SQL statement
SQL_LOG_LEVEL = config("SQL_LOG_LEVEL", default="INFO")

LOGGING["handlers"]["dev_file"] = rotating_log_handler(
    LOG_DIR / "dev.log", "DEBUG", 10, backup_count=5
)
route_project_loggers(LOGGING, ["console", "dev_file"], "DEBUG")
LOGGING["loggers"]["django.db.backends"]["level"] = SQL_LOG_LEVEL

logger = logging.getLogger(__name__)
logger.info(
    "Development environment initialized",
    extra={
        "environment": ENVIRONMENT,
        "database": DATABASES["default"]["NAME"],
        "upload_dir": UPLOAD_DIR,
        "sql_log_level": SQL_LOG_LEVEL,
        "action": "environment_startup",
        "component": "settings",
    },
)
