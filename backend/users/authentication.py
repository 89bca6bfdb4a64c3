"""
Bearer-token authentication for DRF views.

Resolves ``Authorization: Bearer <token>`` to an active user joined with its
profile. A missing header leaves the request anonymous so the permission
chain decides; a present but bad token is rejected here.
"""

import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework.authentication import BaseAuthentication, get_authorization_header

from core.exceptions import AppError, InvalidToken, UserNotFound

from .models import User
from .services.credential_service import ACCESS, CredentialService

logger = logging.getLogger(__name__)

AUTH_KEYWORD = b"bearer"


class BearerTokenAuthentication(BaseAuthentication):
    """
    Unauthenticated -> Identified step of the request chain.

    Returns ``(user, payload)`` on success, ``None`` when no bearer token was
    sent, and raises ``InvalidToken`` / ``TokenExpired`` / ``UserNotFound``
    otherwise.
    """

    www_authenticate_realm = "api"

    def __init__(self):
        self.credential_service = CredentialService()

    def authenticate(self, request):
        raw_token = self.get_raw_token(request)
        if raw_token is None:
            return None

        payload = self.credential_service.verify_token(raw_token, ACCESS)
        user = self.get_user(payload)

        logger.debug(
            "Bearer token authenticated",
            extra={
                "user_id": str(user.id),
                "user_role": user.profile.role,
                "action": "bearer_authenticated",
                "component": "BearerTokenAuthentication",
            },
        )
        return user, payload

    def get_raw_token(self, request):
        header = get_authorization_header(request).split()
        if not header or header[0].lower() != AUTH_KEYWORD:
            return None
        if len(header) != 2:
            raise InvalidToken()
        try:
            return header[1].decode()
        except UnicodeError:
            raise InvalidToken()

    def get_user(self, payload):
        user_id = self.credential_service.user_id_from_payload(payload)
        try:
            return User.objects.select_related("profile").get(
                id=user_id, profile__status=True
            )
        except (User.DoesNotExist, ValueError):
            logger.warning(
                "Token subject not found or inactive",
                extra={
                    "user_id": str(user_id),
                    "action": "bearer_user_not_found",
                    "component": "BearerTokenAuthentication",
                    "severity": "medium",
                },
            )
            raise UserNotFound()
        except DjangoValidationError:
            # Subject claim is not a UUID
            raise InvalidToken()

    def authenticate_header(self, request):
        return f'Bearer realm="{self.www_authenticate_realm}"'


class OptionalBearerTokenAuthentication(BearerTokenAuthentication):
    """Same resolution, but any failure leaves the request anonymous."""

    def authenticate(self, request):
        try:
            return super().authenticate(request)
        except AppError as e:
            logger.debug(
                "Optional authentication skipped",
                extra={
                    "error_code": e.error_code,
                    "action": "optional_auth_skipped",
                    "component": "OptionalBearerTokenAuthentication",
                },
            )
            return None
