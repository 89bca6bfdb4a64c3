"""
User and profile models for the Finance Records application.

A ``User`` holds credentials (email + password hash). Its ``Profile`` shares
the same primary key and holds everything else: display name, phone, role and
the active flag that authentication checks on every request.
"""

import uuid

from django.contrib.auth.models import AbstractUser, BaseUserManager
from django.db import models, transaction


class Role(models.TextChoices):
    """Closed set of roles; authorization gates match on these exhaustively."""

    ADMINISTRATOR = "administrator", "Administrator"
    MANAGER = "manager", "Manager"
    VIEWER = "viewer", "Viewer"


class UserManager(BaseUserManager):
    """Manager keyed on email; every user is created together with its profile."""

    use_in_migrations = True

    def _create_user(self, email, password, profile_fields=None, **extra_fields):
        if not email:
            raise ValueError("The email address must be set")

        email = self.normalize_email(email).lower()
        user = self.model(email=email, **extra_fields)
        user.set_password(password)

        with transaction.atomic(using=self._db):
            user.save(using=self._db)
            profile_fields = dict(profile_fields or {})
            profile_fields.setdefault("name", email.split("@")[0])
            Profile.objects.using(self._db).create(user=user, **profile_fields)
        return user

    def create_user(self, email, password=None, profile_fields=None, **extra_fields):
        extra_fields.setdefault("is_staff", False)
        extra_fields.setdefault("is_superuser", False)
        return self._create_user(email, password, profile_fields, **extra_fields)

    def create_superuser(self, email, password=None, profile_fields=None, **extra_fields):
        extra_fields.setdefault("is_staff", True)
        extra_fields.setdefault("is_superuser", True)
        profile_fields = dict(profile_fields or {})
        profile_fields.setdefault("role", Role.ADMINISTRATOR)
        return self._create_user(email, password, profile_fields, **extra_fields)


class User(AbstractUser):
    """
    Credential record. Email is the login identifier.

    ``name`` and ``role`` proxy to the profile so the authenticated identity
    carries id, email, name and role.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    username = None
    email = models.EmailField(
        unique=True,
        help_text="User's unique email address, used to log in",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = []

    objects = UserManager()

    class Meta:
        db_table = "users"
        ordering = ["-created_at"]

    def __str__(self):
        return self.email

    @property
    def name(self):
        profile = self._get_profile()
        return profile.name if profile else None

    @property
    def role(self):
        profile = self._get_profile()
        return profile.role if profile else None

    def _get_profile(self):
        try:
            return self.profile
        except Profile.DoesNotExist:
            return None


class Profile(models.Model):
    """
    Role and contact information paired 1:1 with a user (same identifier).
    """

    user = models.OneToOneField(
        User,
        on_delete=models.CASCADE,
        primary_key=True,
        db_column="id",
        related_name="profile",
    )
    name = models.CharField(max_length=100)
    phone = models.CharField(max_length=20, null=True, blank=True)
    role = models.CharField(max_length=20, choices=Role.choices, default=Role.VIEWER)
    # Inactive profiles cannot authenticate
    status = models.BooleanField(default=True)
    avatar = models.CharField(max_length=500, null=True, blank=True)
    last_login = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "profiles"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["role"], name="profiles_role_4f6c2a_idx"),
            models.Index(fields=["status"], name="profiles_status_9b1e7d_idx"),
        ]

    def __str__(self):
        return f"{self.name} ({self.role})"

    @property
    def is_active(self):
        return self.status
