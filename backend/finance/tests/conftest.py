# finance/tests/conftest.py
from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest
from django.core.files.storage import FileSystemStorage

from finance.models import TransactionType
from finance.services.category_service import CategoryService
from finance.services.receipt_service import ReceiptService
from finance.services.subcategory_service import SubcategoryService
from finance.services.transaction_service import TransactionService
from users.models import Role
from users.tests.factories import UserFactory

from .factories import CategoryFactory, SubcategoryFactory, TransactionFactory

# =============================================================================
# USER FIXTURES
# =============================================================================


@pytest.fixture
def admin_user(db):
    return UserFactory(name="Alice Admin", role=Role.ADMINISTRATOR)


@pytest.fixture
def manager_user(db):
    return UserFactory(name="Mark Manager", role=Role.MANAGER)


@pytest.fixture
def viewer_user(db):
    return UserFactory(name="Vera Viewer", role=Role.VIEWER)


# =============================================================================
# CATEGORY FIXTURES
# =============================================================================


@pytest.fixture
def category(db, manager_user):
    return CategoryFactory(id="cat-food-1", name="Food", created_by=manager_user)


@pytest.fixture
def other_category(db, manager_user):
    return CategoryFactory(id="cat-travel-1", name="Travel", created_by=manager_user)


@pytest.fixture
def subcategory(db, category):
    return SubcategoryFactory(id="sub-groceries-1", name="Groceries", category=category)


# =============================================================================
# TRANSACTION FIXTURES
# =============================================================================


@pytest.fixture
def expense(db, category, subcategory, manager_user):
    return TransactionFactory(
        id="txn-001",
        amount=Decimal("42.50"),
        type=TransactionType.EXPENSE,
        description="Weekly groceries",
        date=date(2024, 3, 10),
        category=category,
        subcategory=subcategory,
        created_by=manager_user,
    )


@pytest.fixture
def transaction_data(category, subcategory):
    """Validated transaction input as produced by ``TransactionInputSerializer``."""
    return {
        "amount": Decimal("100.00"),
        "type": TransactionType.INCOME,
        "description": "Consulting invoice",
        "date": date(2024, 4, 1),
        "category_id": category.id,
        "subcategory_id": subcategory.id,
    }


# =============================================================================
# SERVICE FIXTURES
# =============================================================================


@pytest.fixture
def receipt_storage(tmp_path, settings):
    settings.UPLOAD_DIR = str(tmp_path)
    settings.MEDIA_ROOT = str(tmp_path)
    return FileSystemStorage(location=str(tmp_path), base_url="/uploads/")


@pytest.fixture
def receipt_service(receipt_storage):
    return ReceiptService(storage=receipt_storage)


@pytest.fixture
def category_service():
    return CategoryService()


@pytest.fixture
def subcategory_service():
    return SubcategoryService()


@pytest.fixture
def transaction_service(receipt_service):
    return TransactionService(receipt_service=receipt_service)


@pytest.fixture
def stored_receipt(receipt_storage):
    """Write a receipt file and return its public URL."""

    def _store(filename="receipt.pdf", content=b"%PDF-1.4 receipt"):
        Path(receipt_storage.path(filename)).write_bytes(content)
        return f"/uploads/{filename}"

    return _store
