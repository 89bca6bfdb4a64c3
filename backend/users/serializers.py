"""
Serializers for authentication, user administration and profiles.

Input serializers carry the per-field rules (format, length, enumerations)
that run before any service is called; every violation is collected and
reported together. Output serializers shape the user/profile payloads.
Request keys that the wire contract spells in camelCase (``currentPassword``,
``newPassword``, ``confirmPassword``) are mapped to snake_case via ``source``.
"""

import logging

from rest_framework import serializers

from core.serializers import QueryFilterSerializer
from core.validators import phone_validator

from .models import Profile, Role, User

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6

NAME_ERRORS = {
    "min_length": "Name must be between 2 and 100 characters",
    "max_length": "Name must be between 2 and 100 characters",
    "blank": "Name must be between 2 and 100 characters",
    "required": "Name is required",
}
EMAIL_ERRORS = {
    "invalid": "Please provide a valid email address",
    "required": "Please provide a valid email address",
    "blank": "Please provide a valid email address",
}


def _password_field(message, **kwargs):
    return serializers.CharField(
        write_only=True,
        trim_whitespace=False,
        min_length=MIN_PASSWORD_LENGTH,
        error_messages={"min_length": message, "required": message, "blank": message},
        **kwargs,
    )


def _name_field(**kwargs):
    return serializers.CharField(
        min_length=2, max_length=100, error_messages=NAME_ERRORS, **kwargs
    )


def _phone_field(**kwargs):
    return serializers.CharField(
        max_length=20,
        validators=[phone_validator],
        error_messages={"invalid": "Please provide a valid phone number"},
        **kwargs,
    )


class NormalizedEmailField(serializers.EmailField):
    def to_internal_value(self, data):
        return super().to_internal_value(data).strip().lower()


# =============================================================================
# AUTHENTICATION
# =============================================================================


class LoginSerializer(serializers.Serializer):
    email = NormalizedEmailField(error_messages=EMAIL_ERRORS)
    password = _password_field("Password must be at least 6 characters long")


class ChangePasswordSerializer(serializers.Serializer):
    """Current password, new password and a matching confirmation."""

    currentPassword = serializers.CharField(
        source="current_password",
        write_only=True,
        trim_whitespace=False,
        error_messages={
            "required": "Current password is required",
            "blank": "Current password is required",
        },
    )
    newPassword = _password_field(
        "New password must be at least 6 characters long", source="new_password"
    )
    confirmPassword = serializers.CharField(
        source="confirm_password",
        write_only=True,
        trim_whitespace=False,
        required=False,
        allow_blank=True,
    )

    def validate(self, attrs):
        if attrs.get("confirm_password") != attrs.get("new_password"):
            raise serializers.ValidationError(
                {"confirmPassword": "Password confirmation does not match"}
            )
        return attrs


# =============================================================================
# USERS (ADMINISTRATION)
# =============================================================================


class UserSerializer(serializers.ModelSerializer):
    """User joined with its profile, as returned by the admin endpoints."""

    user_created_at = serializers.DateTimeField(source="created_at", read_only=True)
    name = serializers.CharField(source="profile.name", read_only=True)
    phone = serializers.CharField(source="profile.phone", read_only=True)
    role = serializers.CharField(source="profile.role", read_only=True)
    status = serializers.BooleanField(source="profile.status", read_only=True)
    avatar = serializers.CharField(source="profile.avatar", read_only=True)
    last_login = serializers.DateTimeField(source="profile.last_login", read_only=True)
    created_at = serializers.DateTimeField(source="profile.created_at", read_only=True)

    class Meta:
        model = User
        fields = [
            "id",
            "email",
            "user_created_at",
            "name",
            "phone",
            "role",
            "status",
            "avatar",
            "last_login",
            "created_at",
        ]
        read_only_fields = fields


class CurrentUserSerializer(serializers.ModelSerializer):
    """Authenticated identity with profile details (``/auth/me``)."""

    name = serializers.CharField(source="profile.name", read_only=True)
    phone = serializers.CharField(source="profile.phone", read_only=True)
    role = serializers.CharField(source="profile.role", read_only=True)
    status = serializers.BooleanField(source="profile.status", read_only=True)
    avatar = serializers.CharField(source="profile.avatar", read_only=True)
    last_login = serializers.DateTimeField(source="profile.last_login", read_only=True)
    created_at = serializers.DateTimeField(source="profile.created_at", read_only=True)

    class Meta:
        model = User
        fields = [
            "id",
            "email",
            "name",
            "phone",
            "role",
            "status",
            "avatar",
            "last_login",
            "created_at",
        ]
        read_only_fields = fields


class UserCreateSerializer(serializers.Serializer):
    email = NormalizedEmailField(error_messages=EMAIL_ERRORS)
    password = _password_field("Password must be at least 6 characters long")
    name = _name_field()
    phone = _phone_field(required=False, allow_null=True, allow_blank=True)
    role = serializers.ChoiceField(
        choices=Role.choices,
        error_messages={
            "invalid_choice": "Role must be one of administrator, manager or viewer",
            "required": "Role must be one of administrator, manager or viewer",
        },
    )

    def validate_phone(self, value):
        return value or None


class UserUpdateSerializer(serializers.Serializer):
    """All fields optional; only submitted fields are updated."""

    name = _name_field(required=False)
    phone = _phone_field(required=False, allow_null=True, allow_blank=True)
    role = serializers.ChoiceField(
        choices=Role.choices,
        required=False,
        error_messages={
            "invalid_choice": "Role must be one of administrator, manager or viewer",
        },
    )
    status = serializers.BooleanField(
        required=False,
        error_messages={"invalid": "Status must be a boolean value"},
    )

    def validate_phone(self, value):
        return value or None


class ResetPasswordSerializer(serializers.Serializer):
    newPassword = serializers.CharField(
        source="new_password",
        write_only=True,
        trim_whitespace=False,
        required=False,
        allow_blank=True,
        allow_null=True,
    )


# =============================================================================
# PROFILES
# =============================================================================


class ProfileSerializer(serializers.ModelSerializer):
    id = serializers.UUIDField(source="user_id", read_only=True)
    email = serializers.EmailField(source="user.email", read_only=True)

    class Meta:
        model = Profile
        fields = [
            "id",
            "name",
            "email",
            "phone",
            "role",
            "status",
            "avatar",
            "last_login",
            "created_at",
        ]
        read_only_fields = fields


class ProfileUpdateSerializer(serializers.Serializer):
    name = _name_field(required=False)
    phone = _phone_field(required=False, allow_null=True, allow_blank=True)

    def validate_phone(self, value):
        return value or None


class ProfileFilterSerializer(QueryFilterSerializer):
    """Query-string filters for the profile listing."""

    search = serializers.CharField(required=False, allow_blank=True)
    role = serializers.ChoiceField(choices=Role.choices, required=False)
    status = serializers.BooleanField(required=False, allow_null=True)


class UserFilterSerializer(QueryFilterSerializer):
    search = serializers.CharField(required=False, allow_blank=True)
