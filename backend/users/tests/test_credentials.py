"""
Unit tests for password hashing and token issuance/verification.
"""

from datetime import timedelta

import pytest
from rest_framework_simplejwt.tokens import AccessToken

from core.exceptions import InvalidToken, TokenExpired
from users.services.credential_service import ACCESS, REFRESH, CredentialService


class TestPasswordHashing:
    def test_hash_then_verify(self, credential_service):
        password_hash = credential_service.hash_password("correct horse")

        assert password_hash != "correct horse"
        assert credential_service.verify_password("correct horse", password_hash)
        assert not credential_service.verify_password("wrong horse", password_hash)

    def test_verify_with_empty_inputs_is_false(self, credential_service):
        password_hash = credential_service.hash_password("secret123")

        assert credential_service.verify_password("", password_hash) is False
        assert credential_service.verify_password("secret123", "") is False
        assert credential_service.verify_password("secret123", None) is False

    def test_verify_with_garbage_hash_is_false(self, credential_service):
        assert credential_service.verify_password("secret123", "not-a-hash") is False

    def test_bcrypt_hasher_uses_configured_rounds(self, credential_service, settings):
        settings.PASSWORD_HASHERS = ["users.hashers.ConfiguredBCryptSHA256PasswordHasher"]
        settings.BCRYPT_ROUNDS = 5

        password_hash = credential_service.hash_password("correct horse")

        assert password_hash.startswith("bcrypt_sha256$$2b$05$")
        assert credential_service.verify_password("correct horse", password_hash)
        assert not credential_service.verify_password("wrong horse", password_hash)

    def test_bcrypt_hashes_are_salted(self, credential_service, settings):
        settings.PASSWORD_HASHERS = ["users.hashers.ConfiguredBCryptSHA256PasswordHasher"]
        settings.BCRYPT_ROUNDS = 4

        first = credential_service.hash_password("secret123")
        second = credential_service.hash_password("secret123")

        assert first != second
        assert credential_service.verify_password("secret123", second)


class TestTokens:
    def test_access_token_round_trip(self, credential_service):
        token = credential_service.issue_token("11111111-1111-1111-1111-111111111111")

        payload = credential_service.verify_token(token)

        assert credential_service.user_id_from_payload(payload) == (
            "11111111-1111-1111-1111-111111111111"
        )
        assert payload["type"] == ACCESS

    def test_token_pair_kinds(self, credential_service):
        pair = credential_service.issue_token_pair("abc")

        assert credential_service.verify_token(pair.access, ACCESS)["userId"] == "abc"
        assert credential_service.verify_token(pair.refresh, REFRESH)["userId"] == "abc"

    def test_refresh_token_rejected_as_access(self, credential_service):
        refresh = credential_service.issue_token("abc", REFRESH)

        with pytest.raises(InvalidToken):
            credential_service.verify_token(refresh, ACCESS)

    def test_access_token_rejected_as_refresh(self, credential_service):
        access = credential_service.issue_token("abc", ACCESS)

        with pytest.raises(InvalidToken):
            credential_service.verify_token(access, REFRESH)

    def test_malformed_token(self, credential_service):
        with pytest.raises(InvalidToken) as exc_info:
            credential_service.verify_token("not.a.token")

        assert exc_info.value.error_code == "INVALID_TOKEN"
        assert exc_info.value.status_code == 401

    def test_tampered_signature(self, credential_service):
        token = credential_service.issue_token("abc")
        tampered = token[:-2] + ("AA" if not token.endswith("AA") else "BB")

        with pytest.raises(InvalidToken):
            credential_service.verify_token(tampered)

    def test_expired_token(self, credential_service):
        token = AccessToken()
        token["userId"] = "abc"
        token.set_exp(lifetime=timedelta(seconds=-10))

        with pytest.raises(TokenExpired) as exc_info:
            credential_service.verify_token(str(token))

        assert exc_info.value.error_code == "TOKEN_EXPIRED"

    def test_token_without_user_claim(self, credential_service):
        token = AccessToken()

        with pytest.raises(InvalidToken):
            credential_service.verify_token(str(token))

    def test_unknown_kind(self, credential_service):
        with pytest.raises(ValueError):
            credential_service.issue_token("abc", "session")
