"""
API tests for the authentication endpoints and the bearer-token chain.

Covers:
- Login (success, wrong password, unknown email, deactivated account)
- Current identity, logout and token refresh
- Password change
- Missing, malformed, expired and orphaned tokens
"""

from datetime import timedelta

from rest_framework import status
from rest_framework_simplejwt.tokens import AccessToken

from users.models import Profile, User
from users.services.credential_service import REFRESH

from .base import BaseAPITestCase
from .factories import DEFAULT_PASSWORD

LOGIN_URL = "/api/auth/login"
REFRESH_URL = "/api/auth/refresh"
ME_URL = "/api/auth/me"
LOGOUT_URL = "/api/auth/logout"
CHANGE_PASSWORD_URL = "/api/auth/change-password"


class LoginTests(BaseAPITestCase):
    def test_login_returns_token_pair_and_user(self):
        response = self.client.post(
            LOGIN_URL,
            {"email": self.manager.email, "password": DEFAULT_PASSWORD},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        body = response.json()
        self.assertTrue(body["success"])
        self.assertEqual(body["message"], "Login successful")
        self.assertEqual(body["data"]["user"]["id"], str(self.manager.id))
        self.assertEqual(body["data"]["user"]["role"], "manager")
        self.assertEqual(body["data"]["user"]["name"], "Mark Manager")

        payload = self.credentials.verify_token(body["data"]["token"])
        self.assertEqual(payload["userId"], str(self.manager.id))
        self.credentials.verify_token(body["data"]["refreshToken"], REFRESH)

    def test_login_email_is_case_insensitive(self):
        response = self.client.post(
            LOGIN_URL,
            {"email": self.viewer.email.upper(), "password": DEFAULT_PASSWORD},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_login_records_last_login(self):
        self.client.post(
            LOGIN_URL,
            {"email": self.viewer.email, "password": DEFAULT_PASSWORD},
            format="json",
        )

        self.assertIsNotNone(Profile.objects.get(pk=self.viewer.pk).last_login)

    def test_wrong_password(self):
        response = self.client.post(
            LOGIN_URL,
            {"email": self.viewer.email, "password": "not-the-password"},
            format="json",
        )

        body = self.assertError(response, status.HTTP_401_UNAUTHORIZED, "INVALID_CREDENTIALS")
        self.assertEqual(body["error"], "Invalid email or password")

    def test_unknown_email_looks_like_wrong_password(self):
        response = self.client.post(
            LOGIN_URL,
            {"email": "nobody@example.com", "password": DEFAULT_PASSWORD},
            format="json",
        )

        body = self.assertError(response, status.HTTP_401_UNAUTHORIZED, "INVALID_CREDENTIALS")
        self.assertEqual(body["error"], "Invalid email or password")

    def test_deactivated_account(self):
        Profile.objects.filter(pk=self.viewer.pk).update(status=False)

        response = self.client.post(
            LOGIN_URL,
            {"email": self.viewer.email, "password": DEFAULT_PASSWORD},
            format="json",
        )

        self.assertError(response, status.HTTP_401_UNAUTHORIZED, "ACCOUNT_DEACTIVATED")

    def test_validation_errors_are_aggregated(self):
        response = self.client.post(
            LOGIN_URL, {"email": "not-an-email", "password": "123"}, format="json"
        )

        body = self.assertError(response, status.HTTP_400_BAD_REQUEST, "VALIDATION_ERROR")
        fields = {item["field"] for item in body["details"]}
        self.assertEqual(fields, {"email", "password"})

    def test_password_value_is_masked_in_details(self):
        response = self.client.post(
            LOGIN_URL, {"email": "a@example.com", "password": "123"}, format="json"
        )

        body = self.assertError(response, status.HTTP_400_BAD_REQUEST, "VALIDATION_ERROR")
        password_errors = [d for d in body["details"] if d["field"] == "password"]
        self.assertEqual(password_errors[0]["value"], "***")


class CurrentUserTests(BaseAPITestCase):
    def test_me_returns_identity_with_profile(self):
        self.authenticate(self.viewer)

        response = self.client.get(ME_URL)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        user = response.json()["data"]["user"]
        self.assertEqual(user["id"], str(self.viewer.id))
        self.assertEqual(user["email"], self.viewer.email)
        self.assertEqual(user["role"], "viewer")
        self.assertTrue(user["status"])

    def test_me_with_trailing_slash(self):
        self.authenticate(self.viewer)

        response = self.client.get(ME_URL + "/")

        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_logout(self):
        self.authenticate(self.viewer)

        response = self.client.post(LOGOUT_URL)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()["message"], "Logout successful")

    def test_logout_requires_token(self):
        response = self.client.post(LOGOUT_URL)

        self.assertError(response, status.HTTP_401_UNAUTHORIZED, "NO_TOKEN")


class TokenChainTests(BaseAPITestCase):
    def test_missing_token(self):
        response = self.client.get(ME_URL)

        body = self.assertError(response, status.HTTP_401_UNAUTHORIZED, "NO_TOKEN")
        self.assertEqual(body["error"], "Access token required")

    def test_malformed_token(self):
        self.client.credentials(HTTP_AUTHORIZATION="Bearer garbage")

        response = self.client.get(ME_URL)

        self.assertError(response, status.HTTP_401_UNAUTHORIZED, "INVALID_TOKEN")

    def test_refresh_token_is_not_an_access_token(self):
        self.authenticate(self.viewer, REFRESH)

        response = self.client.get(ME_URL)

        self.assertError(response, status.HTTP_401_UNAUTHORIZED, "INVALID_TOKEN")

    def test_expired_token(self):
        token = AccessToken()
        token["userId"] = str(self.viewer.id)
        token.set_exp(lifetime=timedelta(seconds=-10))
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")

        response = self.client.get(ME_URL)

        self.assertError(response, status.HTTP_401_UNAUTHORIZED, "TOKEN_EXPIRED")

    def test_token_for_deactivated_user(self):
        self.authenticate(self.viewer)
        Profile.objects.filter(pk=self.viewer.pk).update(status=False)

        response = self.client.get(ME_URL)

        self.assertError(response, status.HTTP_401_UNAUTHORIZED, "USER_NOT_FOUND")

    def test_token_for_deleted_user(self):
        self.authenticate(self.viewer)
        User.objects.filter(pk=self.viewer.pk).delete()

        response = self.client.get(ME_URL)

        self.assertError(response, status.HTTP_401_UNAUTHORIZED, "USER_NOT_FOUND")


class RefreshTests(BaseAPITestCase):
    def test_refresh_issues_new_pair(self):
        refresh = self.credentials.issue_token(self.viewer.id, REFRESH)

        response = self.client.post(REFRESH_URL, {"refreshToken": refresh}, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.json()["data"]
        self.assertEqual(
            self.credentials.verify_token(data["token"])["userId"], str(self.viewer.id)
        )
        self.credentials.verify_token(data["refreshToken"], REFRESH)

    def test_refresh_token_required(self):
        response = self.client.post(REFRESH_URL, {}, format="json")

        self.assertError(response, status.HTTP_400_BAD_REQUEST, "REFRESH_TOKEN_REQUIRED")

    def test_access_token_rejected_for_refresh(self):
        access = self.credentials.issue_token(self.viewer.id)

        response = self.client.post(REFRESH_URL, {"refreshToken": access}, format="json")

        self.assertError(response, status.HTTP_401_UNAUTHORIZED, "INVALID_REFRESH_TOKEN")

    def test_refresh_for_deactivated_user(self):
        refresh = self.credentials.issue_token(self.viewer.id, REFRESH)
        Profile.objects.filter(pk=self.viewer.pk).update(status=False)

        response = self.client.post(REFRESH_URL, {"refreshToken": refresh}, format="json")

        self.assertError(response, status.HTTP_401_UNAUTHORIZED, "USER_NOT_FOUND")


class ChangePasswordTests(BaseAPITestCase):
    def setUp(self):
        super().setUp()
        self.authenticate(self.viewer)

    def test_change_password(self):
        response = self.client.post(
            CHANGE_PASSWORD_URL,
            {
                "currentPassword": DEFAULT_PASSWORD,
                "newPassword": "brandnew456",
                "confirmPassword": "brandnew456",
            },
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.viewer.refresh_from_db()
        self.assertTrue(self.credentials.verify_password("brandnew456", self.viewer.password))

        self.logout()
        login = self.client.post(
            LOGIN_URL,
            {"email": self.viewer.email, "password": "brandnew456"},
            format="json",
        )
        self.assertEqual(login.status_code, status.HTTP_200_OK)

    def test_wrong_current_password(self):
        response = self.client.post(
            CHANGE_PASSWORD_URL,
            {
                "currentPassword": "not-the-password",
                "newPassword": "brandnew456",
                "confirmPassword": "brandnew456",
            },
            format="json",
        )

        self.assertError(response, status.HTTP_400_BAD_REQUEST, "INVALID_CURRENT_PASSWORD")
        self.viewer.refresh_from_db()
        self.assertTrue(self.credentials.verify_password(DEFAULT_PASSWORD, self.viewer.password))

    def test_confirmation_mismatch(self):
        response = self.client.post(
            CHANGE_PASSWORD_URL,
            {
                "currentPassword": DEFAULT_PASSWORD,
                "newPassword": "brandnew456",
                "confirmPassword": "different789",
            },
            format="json",
        )

        body = self.assertError(response, status.HTTP_400_BAD_REQUEST, "VALIDATION_ERROR")
        self.assertEqual(body["details"][0]["field"], "confirmPassword")
        self.assertEqual(body["details"][0]["message"], "Password confirmation does not match")

    def test_new_password_too_short(self):
        response = self.client.post(
            CHANGE_PASSWORD_URL,
            {
                "currentPassword": DEFAULT_PASSWORD,
                "newPassword": "abc",
                "confirmPassword": "abc",
            },
            format="json",
        )

        body = self.assertError(response, status.HTTP_400_BAD_REQUEST, "VALIDATION_ERROR")
        self.assertIn("newPassword", {item["field"] for item in body["details"]})
