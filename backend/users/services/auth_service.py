"""
Login, token refresh and password change flows.
"""

import logging

from django.db import transaction
from django.utils import timezone

from core.exceptions import (
    AccountDeactivated,
    AppError,
    InvalidCredentials,
    InvalidCurrentPassword,
    InvalidRefreshToken,
    RefreshTokenRequired,
    UserNotFound,
)

from ..models import Profile, User
from .credential_service import REFRESH, CredentialService

logger = logging.getLogger(__name__)


class AuthService:
    """
    Credential checks and token issuance for the ``/auth`` endpoints.
    """

    def __init__(self, credential_service=None):
        self.credential_service = credential_service or CredentialService()

    def login(self, email, password):
        """
        Authenticate by email and password and issue an access/refresh pair.

        Args:
            email: Normalized email address
            password: Plaintext password

        Returns:
            dict: ``user`` summary plus ``token`` and ``refreshToken``

        Raises:
            InvalidCredentials: Unknown email or wrong password
            AccountDeactivated: Profile is inactive
        """
        logger.info(
            "Login attempt",
            extra={
                "email": email,
                "action": "login_attempt",
                "component": "AuthService",
            },
        )

        try:
            user = User.objects.select_related("profile").get(email__iexact=email)
            profile = user.profile
        except (User.DoesNotExist, Profile.DoesNotExist):
            logger.warning(
                "Login failed - unknown email",
                extra={
                    "email": email,
                    "action": "login_failed_unknown_email",
                    "component": "AuthService",
                    "severity": "medium",
                },
            )
            raise InvalidCredentials()

        if not profile.status:
            logger.warning(
                "Login refused - account deactivated",
                extra={
                    "user_id": str(user.id),
                    "action": "login_failed_deactivated",
                    "component": "AuthService",
                    "severity": "medium",
                },
            )
            raise AccountDeactivated()

        if not self.credential_service.verify_password(password, user.password):
            logger.warning(
                "Login failed - wrong password",
                extra={
                    "user_id": str(user.id),
                    "action": "login_failed_wrong_password",
                    "component": "AuthService",
                    "severity": "medium",
                },
            )
            raise InvalidCredentials()

        Profile.objects.filter(pk=user.pk).update(last_login=timezone.now())
        tokens = self.credential_service.issue_token_pair(user.id)

        logger.info(
            "Login successful",
            extra={
                "user_id": str(user.id),
                "user_role": profile.role,
                "action": "login_success",
                "component": "AuthService",
            },
        )

        return {
            "user": {
                "id": str(user.id),
                "email": user.email,
                "name": profile.name,
                "role": profile.role,
            },
            "token": tokens.access,
            "refreshToken": tokens.refresh,
        }

    def refresh(self, refresh_token):
        """
        Exchange a refresh token for a new access/refresh pair.

        Raises:
            RefreshTokenRequired: No token supplied
            InvalidRefreshToken: Token invalid, expired or not a refresh token
            UserNotFound: Subject missing or inactive
        """
        if not refresh_token:
            raise RefreshTokenRequired()

        try:
            payload = self.credential_service.verify_token(refresh_token, REFRESH)
        except AppError as e:
            logger.warning(
                "Refresh token rejected",
                extra={
                    "error_code": e.error_code,
                    "action": "token_refresh_rejected",
                    "component": "AuthService",
                    "severity": "medium",
                },
            )
            raise InvalidRefreshToken()

        user_id = self.credential_service.user_id_from_payload(payload)
        if not User.objects.filter(id=user_id, profile__status=True).exists():
            raise UserNotFound()

        tokens = self.credential_service.issue_token_pair(user_id)

        logger.info(
            "Tokens refreshed",
            extra={
                "user_id": str(user_id),
                "action": "token_refresh_success",
                "component": "AuthService",
            },
        )
        return {"token": tokens.access, "refreshToken": tokens.refresh}

    @transaction.atomic
    def change_password(self, user, current_password, new_password):
        """
        Replace the caller's password after verifying the current one.

        Raises:
            InvalidCurrentPassword: Current password does not match
        """
        user = User.objects.select_for_update().get(pk=user.pk)

        if not self.credential_service.verify_password(current_password, user.password):
            logger.warning(
                "Password change refused - wrong current password",
                extra={
                    "user_id": str(user.id),
                    "action": "password_change_failed",
                    "component": "AuthService",
                    "severity": "medium",
                },
            )
            raise InvalidCurrentPassword()

        user.password = self.credential_service.hash_password(new_password)
        user.save(update_fields=["password", "updated_at"])

        logger.info(
            "Password changed",
            extra={
                "user_id": str(user.id),
                "action": "password_changed",
                "component": "AuthService",
            },
        )
