import pytest

from users.models import Role
from users.services.credential_service import CredentialService

from .factories import UserFactory


@pytest.fixture
def credential_service():
    return CredentialService()


@pytest.fixture
def admin_user(db):
    return UserFactory(email="admin@example.com", name="Admin", role=Role.ADMINISTRATOR)


@pytest.fixture
def manager_user(db):
    return UserFactory(email="manager@example.com", name="Manager", role=Role.MANAGER)


@pytest.fixture
def viewer_user(db):
    return UserFactory(email="viewer@example.com", name="Viewer", role=Role.VIEWER)
