"""
URL configuration for authentication, users and profiles.
"""

from django.urls import include, path

from core.routers import OptionalSlashRouter

from . import views

router = OptionalSlashRouter()

# Login, refresh, logout, current identity, password change
router.register(r"auth", views.AuthViewSet, basename="auth")

# Administrator-only account management
router.register(r"users", views.UserViewSet, basename="user")

# Profiles and profile statistics
router.register(r"profiles", views.ProfileViewSet, basename="profile")

urlpatterns = [
    path("", include(router.urls)),
]
