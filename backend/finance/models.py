"""
Database models for the financial records application.

Categories group subcategories; transactions optionally reference one of
each. Identifiers are strings: categories and subcategories accept legacy
``cat-<word>-<n>`` / ``sub-<word>-<n>`` ids and get UUID strings when created
through the API, transactions use sequential ``txn-<n>`` ids.
"""

import logging
import uuid

from django.conf import settings
from django.db import models

# Get structured logger for this module
logger = logging.getLogger(__name__)


def new_identifier():
    return str(uuid.uuid4())


# -------------------------------------------------------------------
# CATEGORIES
# -------------------------------------------------------------------
# Two-level classification used by transactions


class Category(models.Model):
    """
    Top-level transaction category.

    Deletion is refused while any subcategory or transaction references it;
    the check lives in ``CategoryService`` and ``PROTECT`` backs it up.
    """

    id = models.CharField(primary_key=True, max_length=50, default=new_identifier)
    name = models.CharField(max_length=100, unique=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        db_column="created_by",
        related_name="created_categories",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "categories"
        ordering = ["name"]
        verbose_name_plural = "categories"

    def __str__(self):
        return self.name


class Subcategory(models.Model):
    """Second-level category; the name is unique within its parent."""

    id = models.CharField(primary_key=True, max_length=50, default=new_identifier)
    name = models.CharField(max_length=100)
    category = models.ForeignKey(
        Category, on_delete=models.PROTECT, related_name="subcategories"
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        db_column="created_by",
        related_name="created_subcategories",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "subcategories"
        ordering = ["category__name", "name"]
        verbose_name_plural = "subcategories"
        constraints = [
            models.UniqueConstraint(
                fields=["category", "name"], name="uniq_subcategory_name_per_category"
            ),
        ]

    def __str__(self):
        return f"{self.category_id} / {self.name}"


# -------------------------------------------------------------------
# TRANSACTIONS
# -------------------------------------------------------------------
# Income and expense records with an optional receipt attachment


class TransactionType(models.TextChoices):
    INCOME = "income", "Income"
    EXPENSE = "expense", "Expense"


class Transaction(models.Model):
    """
    Financial transaction record.

    ``id`` is allocated by ``generate_next_transaction_id`` and never reused.
    ``receipt_url`` points at a file managed by ``ReceiptService``
    (``/uploads/<filename>``).
    """

    id = models.CharField(primary_key=True, max_length=20)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    type = models.CharField(max_length=10, choices=TransactionType.choices)
    description = models.CharField(max_length=500)
    date = models.DateField()
    category = models.ForeignKey(
        Category,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="transactions",
    )
    subcategory = models.ForeignKey(
        Subcategory,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="transactions",
    )
    receipt_url = models.CharField(max_length=500, null=True, blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        db_column="created_by",
        related_name="created_transactions",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "transactions"
        ordering = ["-date", "-created_at"]
        indexes = [
            models.Index(fields=["date"], name="idx_transactions_date"),
            models.Index(fields=["type", "date"], name="idx_transactions_type_date"),
        ]

    def __str__(self):
        return f"{self.id} {self.type} {self.amount}"
