"""
Shared API test case with bearer-token helpers.
"""

from rest_framework.test import APITestCase

from users.services.credential_service import ACCESS, CredentialService

from .factories import AdminFactory, ManagerFactory, UserFactory


class BaseAPITestCase(APITestCase):
    """One user per role; requests are anonymous until ``authenticate`` is called."""

    def setUp(self):
        super().setUp()
        self.credentials = CredentialService()
        self.admin = AdminFactory(name="Alice Admin")
        self.manager = ManagerFactory(name="Mark Manager")
        self.viewer = UserFactory(name="Vera Viewer")

    def authenticate(self, user, kind=ACCESS):
        token = self.credentials.issue_token(user.id, kind)
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")
        return token

    def logout(self):
        self.client.credentials()

    def assertError(self, response, status_code, code):
        self.assertEqual(response.status_code, status_code, response.content)
        body = response.json()
        self.assertFalse(body["success"])
        self.assertEqual(body["code"], code)
        return body
