"""
Django AppConfig for the users application.
"""

from django.apps import AppConfig


class UsersConfig(AppConfig):
    """Accounts, profiles, bearer-token authentication and role gates."""

    default_auto_field = "django.db.models.BigAutoField"

    # Application name (Python path)
    name = "users"
