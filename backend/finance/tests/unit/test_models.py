# finance/tests/unit/test_models.py
import pytest
from django.db import IntegrityError, transaction
from django.db.models import ProtectedError

from core.validators import is_uuid
from finance.models import Category, Subcategory, Transaction, new_identifier

from ..factories import SubcategoryFactory, TransactionFactory


def test_new_identifier_is_uuid_string():
    first, second = new_identifier(), new_identifier()

    assert is_uuid(first)
    assert isinstance(first, str)
    assert first != second


@pytest.mark.django_db
class TestCategoryModel:
    def test_str(self, category):
        assert str(category) == "Food"

    def test_default_id(self, manager_user):
        category = Category.objects.create(name="Health", created_by=manager_user)

        assert is_uuid(category.id)

    def test_name_is_unique(self, category):
        with pytest.raises(IntegrityError), transaction.atomic():
            Category.objects.create(name="Food")

    def test_protected_by_subcategories(self, category, subcategory):
        with pytest.raises(ProtectedError):
            category.delete()

    def test_creator_removal_keeps_category(self, category, manager_user):
        manager_user.delete()

        category.refresh_from_db()
        assert category.created_by is None


@pytest.mark.django_db
class TestSubcategoryModel:
    def test_str(self, subcategory):
        assert str(subcategory) == "cat-food-1 / Groceries"

    def test_name_unique_per_category(self, category, subcategory):
        with pytest.raises(IntegrityError), transaction.atomic():
            Subcategory.objects.create(name="Groceries", category=category)

    def test_same_name_allowed_in_other_category(self, subcategory, other_category):
        SubcategoryFactory(name="Groceries", category=other_category)

        assert Subcategory.objects.filter(name="Groceries").count() == 2


@pytest.mark.django_db
class TestTransactionModel:
    def test_default_ordering_newest_first(self, manager_user):
        TransactionFactory(id="txn-010", date="2024-01-01", created_by=manager_user)
        TransactionFactory(id="txn-011", date="2024-03-01", created_by=manager_user)
        TransactionFactory(id="txn-012", date="2024-02-01", created_by=manager_user)

        assert list(Transaction.objects.values_list("id", flat=True)) == [
            "txn-011",
            "txn-012",
            "txn-010",
        ]

    def test_category_in_use_is_protected(self, expense, category):
        with pytest.raises(ProtectedError):
            category.delete()

    def test_create_forces_insert(self, expense, manager_user):
        with pytest.raises(IntegrityError), transaction.atomic():
            Transaction.objects.create(
                id=expense.id,
                amount="1.00",
                type="income",
                description="Duplicate",
                date="2024-01-01",
                created_by=manager_user,
            )
