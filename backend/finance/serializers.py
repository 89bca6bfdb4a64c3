"""
Serializers for categories, subcategories and transactions.

Input serializers validate the request body before any service runs and
report every violation at once; output serializers flatten the related
names (category, subcategory, creator) into the payload.
"""

import logging
from decimal import Decimal

from rest_framework import serializers

from core.serializers import QueryFilterSerializer
from core.validators import IdentifierFormatValidator

from .models import Category, Subcategory, Transaction, TransactionType

logger = logging.getLogger(__name__)

AMOUNT_MESSAGE = "Amount must be a positive number"
DESCRIPTION_MESSAGE = "Description must be between 2 and 500 characters"
DATE_MESSAGE = "Please provide a valid date"
TYPE_MESSAGE = "Type must be either income or expense"


def _length_errors(message):
    return {
        "min_length": message,
        "max_length": message,
        "blank": message,
        "required": message,
    }


def _reference_field(kind, message, **kwargs):
    return serializers.CharField(
        validators=[IdentifierFormatValidator(kind)],
        error_messages={"invalid": message, "blank": message, "required": message},
        **kwargs,
    )


# -------------------------------------------------------------------
# CATEGORIES
# -------------------------------------------------------------------


class CategorySerializer(serializers.ModelSerializer):
    created_by_name = serializers.CharField(
        source="created_by.profile.name", read_only=True, default=None
    )

    class Meta:
        model = Category
        fields = ["id", "name", "created_at", "updated_at", "created_by_name"]
        read_only_fields = fields


class CategoryDetailSerializer(CategorySerializer):
    """Single category with the number of subcategories it groups."""

    subcategories_count = serializers.IntegerField(read_only=True)

    class Meta(CategorySerializer.Meta):
        fields = CategorySerializer.Meta.fields + ["subcategories_count"]
        read_only_fields = fields


class CategoryInputSerializer(serializers.Serializer):
    name = serializers.CharField(
        min_length=2,
        max_length=100,
        error_messages=_length_errors("Category name must be between 2 and 100 characters"),
    )


class CategoryFilterSerializer(QueryFilterSerializer):
    search = serializers.CharField(required=False)


# -------------------------------------------------------------------
# SUBCATEGORIES
# -------------------------------------------------------------------


class SubcategorySerializer(serializers.ModelSerializer):
    category_id = serializers.CharField(read_only=True)
    category_name = serializers.CharField(
        source="category.name", read_only=True, default=None
    )
    created_by_name = serializers.CharField(
        source="created_by.profile.name", read_only=True, default=None
    )

    class Meta:
        model = Subcategory
        fields = [
            "id",
            "name",
            "category_id",
            "category_name",
            "created_at",
            "updated_at",
            "created_by_name",
        ]
        read_only_fields = fields


class SubcategoryInputSerializer(serializers.Serializer):
    name = serializers.CharField(
        min_length=2,
        max_length=100,
        error_messages=_length_errors(
            "Subcategory name must be between 2 and 100 characters"
        ),
    )
    category_id = _reference_field("category", "Invalid category ID format")


class SubcategoryFilterSerializer(QueryFilterSerializer):
    search = serializers.CharField(required=False)
    category_id = _reference_field(
        "category", "Invalid category ID format", required=False
    )


# -------------------------------------------------------------------
# TRANSACTIONS
# -------------------------------------------------------------------


class TransactionSerializer(serializers.ModelSerializer):
    category_id = serializers.CharField(read_only=True)
    subcategory_id = serializers.CharField(read_only=True)
    category_name = serializers.CharField(
        source="category.name", read_only=True, default=None
    )
    subcategory_name = serializers.CharField(
        source="subcategory.name", read_only=True, default=None
    )
    created_by_name = serializers.CharField(
        source="created_by.profile.name", read_only=True, default=None
    )

    class Meta:
        model = Transaction
        fields = [
            "id",
            "amount",
            "type",
            "description",
            "date",
            "receipt_url",
            "category_id",
            "subcategory_id",
            "created_at",
            "updated_at",
            "category_name",
            "subcategory_name",
            "created_by_name",
        ]
        read_only_fields = fields


class TransactionInputSerializer(serializers.Serializer):
    """
    Body of transaction create and update (PUT).

    ``category_id`` / ``subcategory_id`` may be omitted, null or empty (no
    reference). ``receipt_url`` omitted keeps the current receipt on update;
    null or empty removes it.
    """

    amount = serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        min_value=Decimal("0.01"),
        error_messages={
            "invalid": AMOUNT_MESSAGE,
            "required": AMOUNT_MESSAGE,
            "null": AMOUNT_MESSAGE,
            "min_value": AMOUNT_MESSAGE,
        },
    )
    type = serializers.ChoiceField(
        choices=TransactionType.choices,
        error_messages={"invalid_choice": TYPE_MESSAGE, "required": TYPE_MESSAGE},
    )
    description = serializers.CharField(
        min_length=2, max_length=500, error_messages=_length_errors(DESCRIPTION_MESSAGE)
    )
    date = serializers.DateField(
        error_messages={"invalid": DATE_MESSAGE, "required": DATE_MESSAGE}
    )
    category_id = _reference_field(
        "category",
        "Invalid category ID format",
        required=False,
        allow_null=True,
        allow_blank=True,
    )
    subcategory_id = _reference_field(
        "subcategory",
        "Invalid subcategory ID format",
        required=False,
        allow_null=True,
        allow_blank=True,
    )
    receipt_url = serializers.CharField(
        max_length=500, required=False, allow_null=True, allow_blank=True
    )

    def validate_category_id(self, value):
        return value or None

    def validate_subcategory_id(self, value):
        return value or None


class TransactionFilterSerializer(QueryFilterSerializer):
    """Query-string filters for the transaction listing."""

    search = serializers.CharField(required=False)
    type = serializers.ChoiceField(
        choices=TransactionType.choices,
        required=False,
        error_messages={"invalid_choice": TYPE_MESSAGE},
    )
    category_id = _reference_field(
        "category", "Invalid category ID format", required=False
    )
    subcategory_id = _reference_field(
        "subcategory", "Invalid subcategory ID format", required=False
    )
    start_date = serializers.DateField(
        required=False, error_messages={"invalid": DATE_MESSAGE}
    )
    end_date = serializers.DateField(
        required=False, error_messages={"invalid": DATE_MESSAGE}
    )
    min_amount = serializers.DecimalField(
        max_digits=None, decimal_places=None, required=False
    )
    max_amount = serializers.DecimalField(
        max_digits=None, decimal_places=None, required=False
    )


class TransactionStatsFilterSerializer(QueryFilterSerializer):
    start_date = serializers.DateField(
        required=False, error_messages={"invalid": DATE_MESSAGE}
    )
    end_date = serializers.DateField(
        required=False, error_messages={"invalid": DATE_MESSAGE}
    )
