# flake8: noqa
"""
Production settings for the Finance Records backend.

Every secret and host comes from ``.env.production`` (or the process
environment); there are no insecure fallbacks here.
"""

from .base import *
import logging
from .utils import (
    load_environment_config,
    parse_duration,
    rotating_log_handler,
    route_project_loggers,
)

config = load_environment_config("production")

ENVIRONMENT = "production"

# =============================================================================
# SECURITY
# =============================================================================

DEBUG = False
SECRET_KEY = config("SECRET_KEY")
ALLOWED_HOSTS = config("ALLOWED_HOSTS", default="", cast=Csv())

SECURE_SSL_REDIRECT = config("SECURE_SSL_REDIRECT", default=True, cast=bool)
SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")
SESSION_COOKIE_SECURE = True
CSRF_COOKIE_SECURE = True
SECURE_CONTENT_TYPE_NOSNIFF = True

CORS_ALLOWED_ORIGINS = config("CORS_ORIGIN", cast=Csv())
CORS_ALLOW_ALL_ORIGINS = False

# Tokens are signed with their own secret, never the Django SECRET_KEY
JWT_SECRET = config("JWT_SECRET")
SIMPLE_JWT.update(
    {
        "SIGNING_KEY": JWT_SECRET,
        "ACCESS_TOKEN_LIFETIME": parse_duration(config("JWT_EXPIRES_IN", default="24h")),
        "REFRESH_TOKEN_LIFETIME": parse_duration(
            config("JWT_REFRESH_EXPIRES_IN", default="7d")
        ),
    }
)
BCRYPT_ROUNDS = config("BCRYPT_ROUNDS", default=12, cast=int)

# =============================================================================
# RECEIPTS
# =============================================================================

UPLOAD_DIR = config("UPLOAD_DIR", default="/var/lib/finance-records/uploads")
MEDIA_ROOT = UPLOAD_DIR
FILE_VIEW_ALLOWED_ORIGIN = config("FILE_VIEW_ALLOWED_ORIGIN")
os.makedirs(UPLOAD_DIR, exist_ok=True)

# =============================================================================
# DATABASE
# =============================================================================

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.postgresql",
        "NAME": config("POSTGRES_DB"),
        "USER": config("POSTGRES_USER"),
        "PASSWORD": config("POSTGRES_PASSWORD"),
        "HOST": config("DB_HOST"),
        "PORT": config("DB_PORT", default="5432"),
        "OPTIONS": {
            "connect_timeout": 5,
            "pool": {
                "min_size": 2,
                "max_size": config("DB_POOL_MAX_SIZE", default=10, cast=int),
                "timeout": 10,
            },
        },
    }
}

# =============================================================================
# LOGGING
# =============================================================================

LOG_DIR = Path(config("LOG_DIR", default="/var/log/finance-records"))
os.makedirs(LOG_DIR, exist_ok=True)

LOGGING["handlers"].update(
    {
        "app_file": rotating_log_handler(LOG_DIR / "app.log", "INFO", 100),
        "error_file": rotating_log_handler(LOG_DIR / "errors.log", "ERROR", 50),
        "security_file": rotating_log_handler(LOG_DIR / "security.log", "WARNING", 50),
    }
)
route_project_loggers(LOGGING, ["console", "app_file", "error_file"], "INFO")

# Authentication failures are logged by the users app
LOGGING["loggers"]["users"]["handlers"].append("security_file")
LOGGING["loggers"]["django.security"]["handlers"] = ["security_file"]
LOGGING["loggers"]["django.db.backends"]["level"] = "ERROR"

# Static files are served by the application process behind the proxy
MIDDLEWARE.insert(1, "whitenoise.middleware.WhiteNoiseMiddleware")

logger = logging.getLogger(__name__)
logger.info(
    "Production environment initialized",
    extra={
        "environment": ENVIRONMENT,
        "allowed_hosts": ALLOWED_HOSTS,
        "upload_dir": UPLOAD_DIR,
        "log_dir": str(LOG_DIR),
        "action": "environment_startup",
        "component": "settings",
    },
)
