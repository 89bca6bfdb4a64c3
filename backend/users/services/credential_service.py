"""
Password hashing and signed-token issuance/verification.

Passwords go through Django's configured hasher (bcrypt with the configured
work factor). Tokens are simplejwt access/refresh tokens carrying the user id
and the token kind; lifetimes and the signing key come from ``SIMPLE_JWT``.
"""

import logging
from collections import namedtuple

from django.contrib.auth.hashers import check_password, make_password
from rest_framework_simplejwt.exceptions import ExpiredTokenError, TokenError
from rest_framework_simplejwt.settings import api_settings
from rest_framework_simplejwt.tokens import AccessToken, RefreshToken

from core.exceptions import InvalidToken, TokenExpired

logger = logging.getLogger(__name__)

TokenPair = namedtuple("TokenPair", ["access", "refresh"])

ACCESS = "access"
REFRESH = "refresh"

TOKEN_CLASSES = {
    ACCESS: AccessToken,
    REFRESH: RefreshToken,
}


class CredentialService:
    """
    Stateless credential helper shared by authentication and the auth endpoints.
    """

    def hash_password(self, plaintext):
        return make_password(plaintext)

    def verify_password(self, plaintext, password_hash):
        """Never raises on mismatch; empty or unusable hashes simply fail."""
        if not plaintext or not password_hash:
            return False
        return check_password(plaintext, password_hash)

    def issue_token(self, user_id, kind=ACCESS):
        """
        Issue a signed token for ``user_id``.

        Args:
            user_id: Identifier of the user the token represents
            kind: ``"access"`` or ``"refresh"``

        Returns:
            str: Encoded JWT
        """
        token_class = self._token_class(kind)
        token = token_class()
        token[api_settings.USER_ID_CLAIM] = str(user_id)

        logger.debug(
            "Token issued",
            extra={
                "user_id": str(user_id),
                "token_kind": kind,
                "action": "token_issued",
                "component": "CredentialService",
            },
        )
        return str(token)

    def issue_token_pair(self, user_id):
        return TokenPair(
            access=self.issue_token(user_id, ACCESS),
            refresh=self.issue_token(user_id, REFRESH),
        )

    def verify_token(self, raw_token, kind=ACCESS):
        """
        Verify signature, expiry and kind of ``raw_token``.

        Args:
            raw_token: Encoded JWT
            kind: Expected token kind

        Returns:
            dict: Token payload

        Raises:
            TokenExpired: If the token has expired
            InvalidToken: On bad signature, malformed token or wrong kind
        """
        token_class = self._token_class(kind)
        try:
            token = token_class(raw_token)
        except ExpiredTokenError:
            raise TokenExpired()
        except TokenError as e:
            logger.debug(
                "Token verification failed",
                extra={
                    "token_kind": kind,
                    "error_message": str(e),
                    "action": "token_verification_failed",
                    "component": "CredentialService",
                },
            )
            raise InvalidToken()

        if api_settings.USER_ID_CLAIM not in token.payload:
            raise InvalidToken()
        return token.payload

    def user_id_from_payload(self, payload):
        return payload[api_settings.USER_ID_CLAIM]

    def _token_class(self, kind):
        try:
            return TOKEN_CLASSES[kind]
        except KeyError:
            raise ValueError(f"Unknown token kind: {kind}")
